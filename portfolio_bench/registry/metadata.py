"""Known-symbol table: static metadata for every token the tool tracks.

The table drives three things:
- which deployment entries the registry accepts as tokens
- the display name and decimals attached to each token
- the CoinGecko id and fallback USD price used by the price oracle

Defaults cover the ten mock tokens deployed by the contract scripts.
A YAML file can replace them:

    tokens:
      WETH:
        name: Wrapped ETH
        decimals: 18
        coingecko_id: weth
        fallback_price_usd: 2000
"""

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TokenMetadata(BaseModel):
    """Static metadata for one known symbol."""

    symbol: str
    name: str
    decimals: int = Field(ge=0, le=255)
    coingecko_id: str | None = None
    fallback_price_usd: float = Field(default=0.0, ge=0)

    model_config = {"frozen": True}


DEFAULT_TOKEN_METADATA: dict[str, dict[str, Any]] = {
    "WETH": {"name": "Wrapped ETH", "decimals": 18, "coingecko_id": "weth", "fallback_price_usd": 2000},
    "USDC": {"name": "USD Coin", "decimals": 6, "coingecko_id": "usd-coin", "fallback_price_usd": 1},
    "ARB": {"name": "Arbitrum", "decimals": 18, "coingecko_id": "arbitrum", "fallback_price_usd": 1.2},
    "WBTC": {"name": "Wrapped Bitcoin", "decimals": 8, "coingecko_id": "wrapped-bitcoin", "fallback_price_usd": 45000},
    "DAI": {"name": "Dai Stablecoin", "decimals": 18, "coingecko_id": "dai", "fallback_price_usd": 1},
    "LINK": {"name": "Chainlink", "decimals": 18, "coingecko_id": "chainlink", "fallback_price_usd": 15},
    "UNI": {"name": "Uniswap", "decimals": 18, "coingecko_id": "uniswap", "fallback_price_usd": 8},
    "MATIC": {"name": "Polygon", "decimals": 18, "coingecko_id": "matic-network", "fallback_price_usd": 0.8},
    "AAVE": {"name": "Aave", "decimals": 18, "coingecko_id": "aave", "fallback_price_usd": 95},
    "CRV": {"name": "Curve", "decimals": 18, "coingecko_id": "curve-dao-token", "fallback_price_usd": 0.4},
}


class KnownTokenTable(Mapping[str, TokenMetadata]):
    """Read-only mapping of symbol -> TokenMetadata."""

    def __init__(self, entries: Mapping[str, Mapping[str, Any]] | None = None):
        """
        Build the table.

        Args:
            entries: Mapping of symbol -> metadata fields. If None, uses
                the default ten-token table.

        Raises:
            ConfigurationError: If an entry is missing fields or out of range
        """
        raw = DEFAULT_TOKEN_METADATA if entries is None else entries
        self._entries: dict[str, TokenMetadata] = {}
        for symbol, fields in raw.items():
            try:
                self._entries[symbol] = TokenMetadata(symbol=symbol, **dict(fields))
            except (TypeError, ValidationError) as e:
                raise ConfigurationError(f"tokens.{symbol}", str(e))

    @classmethod
    def from_yaml(cls, path: Path | str) -> "KnownTokenTable":
        """Load the table from a YAML file, falling back to defaults if unreadable."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Metadata file not found: {path}, using defaults")
            return cls()
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {path}: {e}")
            return cls()

        tokens = config.get("tokens") if isinstance(config, dict) else None
        if not isinstance(tokens, dict) or not tokens:
            logger.warning(f"No 'tokens' mapping in {path}, using defaults")
            return cls()

        logger.info(f"Loaded {len(tokens)} token definitions from {path}")
        return cls(tokens)

    def __getitem__(self, symbol: str) -> TokenMetadata:
        return self._entries[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def coingecko_ids(self) -> dict[str, str]:
        """Symbol -> CoinGecko id, for symbols that have one."""
        return {s: m.coingecko_id for s, m in self._entries.items() if m.coingecko_id}

    def fallback_prices(self) -> dict[str, float]:
        """Symbol -> static fallback USD price."""
        return {s: m.fallback_price_usd for s, m in self._entries.items()}
