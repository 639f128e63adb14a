"""Configuration management for RPC endpoints, token sources and API keys.

Loads configuration from environment variables or .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_RPC_URL = "http://localhost:8547"  # Arbitrum nitro dev node
DEFAULT_CHAIN_ID = 412346
DEFAULT_DEPLOYMENTS_DIR = "deployments"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class AppConfig:
    """Runtime configuration for the benchmark."""

    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    deployments_dir: Path = Path(DEFAULT_DEPLOYMENTS_DIR)

    # Optional override for the known-symbol table (YAML)
    metadata_path: Optional[Path] = None

    # CoinGecko (optional - public API works without key)
    coingecko_api_key: Optional[str] = None

    # Default wallet for the compare command
    wallet_address: Optional[str] = None

    request_timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        metadata = os.getenv("PORTFOLIO_BENCH_METADATA")
        return cls(
            rpc_url=os.getenv("PORTFOLIO_BENCH_RPC_URL", DEFAULT_RPC_URL),
            chain_id=_int_env("PORTFOLIO_BENCH_CHAIN_ID", DEFAULT_CHAIN_ID),
            deployments_dir=Path(
                os.getenv("PORTFOLIO_BENCH_DEPLOYMENTS_DIR", DEFAULT_DEPLOYMENTS_DIR)
            ),
            metadata_path=Path(metadata) if metadata else None,
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            wallet_address=os.getenv("PORTFOLIO_BENCH_WALLET") or None,
            request_timeout=_float_env("PORTFOLIO_BENCH_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        )

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """
        Load configuration from .env file and environment variables.

        Args:
            env_file: Optional path to .env file. If not provided,
                      looks for .env in the current working directory.

        Returns:
            AppConfig instance with loaded values
        """
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path.cwd() / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        return cls.from_env()

    @property
    def deployment_file(self) -> Path:
        """Deployment record written by the contract deploy script."""
        return self.deployments_dir / f"{self.chain_id}_latest.json"

    def has_coingecko_key(self) -> bool:
        """Check if a CoinGecko Pro API key is configured (optional)."""
        return bool(self.coingecko_api_key)


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(key, f"expected an integer, got {raw!r}")


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(key, f"expected a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(key, "must be positive")
    return value


# Global config instance (lazy loaded)
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reload_config(env_file: Optional[Path] = None) -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = AppConfig.load(env_file)
    return _config
