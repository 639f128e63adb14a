"""Token registry - resolves the tracked token list from a deployment record.

The deployment scripts write one JSON object per chain, keyed by contract
name:

    {
      "WETH": {"address": "0x...", "txHash": "0x..."},
      "PortfolioReader": {"address": "0x..."},
      "your-contract": {"address": "0x..."},
      ...
    }

Only names present in the known-symbol table become tokens; anything else
is ignored. Two infrastructure addresses are picked out of the same record.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..core.exceptions import TokenSourceMalformedError, TokenSourceNotFoundError
from ..core.models import AuditEntry, ContractAddresses, Token, TokenListing
from ..core.types import DataSource
from ..providers.base import BaseProvider
from .metadata import KnownTokenTable

logger = logging.getLogger(__name__)

PORTFOLIO_READER_KEY = "PortfolioReader"
PRIMARY_CONTRACT_KEY = "your-contract"


class TokenSource(ABC):
    """Where the raw name -> deployment mapping comes from."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location used in errors and logs."""

    @abstractmethod
    def load(self) -> Mapping[str, Any]:
        """
        Return the raw name -> metadata mapping.

        Raises:
            TokenSourceNotFoundError: If the record does not exist
            TokenSourceMalformedError: If it cannot be parsed
        """


class DeploymentFileSource(TokenSource):
    """Reads `<deployments_dir>/<chain_id>_latest.json`."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def for_chain(cls, deployments_dir: Path | str, chain_id: int) -> "DeploymentFileSource":
        return cls(Path(deployments_dir) / f"{chain_id}_latest.json")

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> Mapping[str, Any]:
        if not self.path.is_file():
            raise TokenSourceNotFoundError(self.location)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TokenSourceMalformedError(self.location, f"invalid JSON: {e}")
        if not isinstance(data, dict):
            raise TokenSourceMalformedError(self.location, "root is not a JSON object")
        return data


class MappingSource(TokenSource):
    """In-memory source, mainly for synthetic token sets."""

    def __init__(self, mapping: Mapping[str, Any] | None, location: str = "<memory>"):
        self.mapping = mapping
        self._location = location

    @property
    def location(self) -> str:
        return self._location

    def load(self) -> Mapping[str, Any]:
        if self.mapping is None:
            raise TokenSourceNotFoundError(self.location)
        if not isinstance(self.mapping, Mapping):
            raise TokenSourceMalformedError(self.location, "source is not a mapping")
        return self.mapping


class TokenRegistryClient:
    """Builds the ordered token list from a token source and the known-symbol table."""

    def __init__(self, source: TokenSource, known_tokens: KnownTokenTable | None = None):
        """
        Initialize the registry client.

        Args:
            source: Raw deployment mapping provider
            known_tokens: Known-symbol table (default: the ten mock tokens)
        """
        self.source = source
        self.known_tokens = known_tokens if known_tokens is not None else KnownTokenTable()
        self._audit_entries: deque[AuditEntry] = deque(maxlen=BaseProvider.AUDIT_TRAIL_LIMIT)

    def list_tokens(self) -> TokenListing:
        """
        Resolve the tracked tokens and infrastructure addresses.

        Returns:
            TokenListing in source order

        Raises:
            TokenSourceNotFoundError: Source missing
            TokenSourceMalformedError: Source present but unparsable
        """
        start_time = time.time()
        try:
            raw = self.source.load()
            tokens = self._extract_tokens(raw)
            addresses = ContractAddresses(
                portfolio_reader=_address_of(raw.get(PORTFOLIO_READER_KEY)),
                primary_contract=_address_of(raw.get(PRIMARY_CONTRACT_KEY)),
            )
        except (TokenSourceNotFoundError, TokenSourceMalformedError) as e:
            self._record_audit(False, start_time, error_message=e.message)
            logger.error(e.message)
            raise

        self._record_audit(True, start_time, notes=f"{len(tokens)} tokens")
        logger.info(f"Loaded {len(tokens)} tokens from {self.source.location}")
        if addresses.portfolio_reader is None:
            logger.warning(f"No {PORTFOLIO_READER_KEY} address in {self.source.location}")

        return TokenListing(tokens=tuple(tokens), contract_addresses=addresses)

    def _extract_tokens(self, raw: Mapping[str, Any]) -> list[Token]:
        tokens = []
        for name, entry in raw.items():
            meta = self.known_tokens.get(name)
            if meta is None:
                logger.debug(f"Ignoring unrecognized entry: {name}")
                continue

            address = _address_of(entry)
            if address is None:
                raise TokenSourceMalformedError(
                    self.source.location, f"entry {name!r} has no address"
                )
            tokens.append(
                Token(address=address, symbol=name, name=meta.name, decimals=meta.decimals)
            )
        return tokens

    def _record_audit(
        self,
        success: bool,
        start_time: float,
        error_message: str | None = None,
        notes: str | None = None,
    ) -> None:
        self._audit_entries.append(
            AuditEntry(
                source=DataSource.DEPLOYMENT,
                action="load",
                endpoint=self.source.location,
                success=success,
                error_message=error_message,
                duration_ms=int((time.time() - start_time) * 1000),
                notes=notes,
            )
        )

    def get_audit_trail(self) -> list[AuditEntry]:
        """Return the most recent audit entries recorded by this client."""
        return list(self._audit_entries)


def _address_of(entry: Any) -> str | None:
    if isinstance(entry, Mapping):
        address = entry.get("address")
        if isinstance(address, str) and address:
            return address
    return None
