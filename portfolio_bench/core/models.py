"""Pydantic data models for the portfolio benchmark tool.

All data structures are immutable (frozen) after creation so that a token
snapshot taken at the start of a refresh cycle cannot drift while both
strategies are reading against it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .types import BaseUnits, DataSource, FetchStatus, Milliseconds, StrategyKind, USDAmount


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Token(BaseModel):
    """A tracked fungible token deployed on the chain."""

    address: str
    symbol: str
    name: str
    decimals: int = Field(ge=0, le=255)

    model_config = {"frozen": True}


class ContractAddresses(BaseModel):
    """Infrastructure contracts found alongside the tokens."""

    portfolio_reader: str | None = None  # Balance helper used by the batched strategy
    primary_contract: str | None = None

    model_config = {"frozen": True}


class TokenListing(BaseModel):
    """Result of a registry lookup: tokens plus infrastructure addresses."""

    tokens: tuple[Token, ...] = ()
    contract_addresses: ContractAddresses = Field(default_factory=ContractAddresses)
    last_updated: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @property
    def symbols(self) -> list[str]:
        return [t.symbol for t in self.tokens]

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def to_api_response(self) -> dict[str, Any]:
        """Render the listing in the shape served by the token route."""
        return {
            "tokens": [t.model_dump() for t in self.tokens],
            "contractAddresses": {
                "PORTFOLIO_READER": self.contract_addresses.portfolio_reader,
                "YOUR_CONTRACT": self.contract_addresses.primary_contract,
            },
            "lastUpdated": self.last_updated.isoformat(),
        }


class RawBalance(BaseModel):
    """Wallet balance of one token in base units, as returned by the chain."""

    symbol: str
    amount: BaseUnits = Field(ge=0)
    decimals: int = Field(ge=0, le=255)

    model_config = {"frozen": True}


class TokenBalanceState(BaseModel):
    """Loading / data / error state of one token within a refresh cycle."""

    token: Token
    status: FetchStatus = FetchStatus.LOADING
    balance: RawBalance | None = None
    error: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def loaded(cls, token: Token, amount: int) -> "TokenBalanceState":
        return cls(
            token=token,
            status=FetchStatus.OK,
            balance=RawBalance(symbol=token.symbol, amount=amount, decimals=token.decimals),
        )

    @classmethod
    def failed(cls, token: Token, error: str) -> "TokenBalanceState":
        return cls(token=token, status=FetchStatus.ERROR, error=error)


class PriceTable(BaseModel):
    """USD prices keyed by token symbol.

    Every requested symbol has an entry; unresolved ones are 0.0.
    """

    prices: dict[str, float] = Field(default_factory=dict)
    is_fallback: bool = False
    error: str | None = None
    fetched_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @field_validator("prices")
    @classmethod
    def _non_negative(cls, value: dict[str, float]) -> dict[str, float]:
        for symbol, price in value.items():
            if price < 0:
                raise ValueError(f"negative price for {symbol}: {price}")
        return value

    def get(self, symbol: str) -> float:
        return self.prices.get(symbol, 0.0)


class PerformanceSample(BaseModel):
    """One timing measurement of one strategy in one refresh cycle."""

    strategy: StrategyKind
    elapsed_ms: Milliseconds = Field(ge=0)
    call_count: int = Field(ge=1)
    cycle_id: int = 0

    model_config = {"frozen": True}


class ValuationLine(BaseModel):
    """Display line for one token: formatted balance and its USD value."""

    token: Token
    formatted_balance: Decimal = Decimal(0)
    usd_value: USDAmount = 0.0
    status: FetchStatus = FetchStatus.LOADING
    error: str | None = None

    model_config = {"frozen": True}


class PortfolioValuation(BaseModel):
    """Per-token lines plus the aggregate USD value."""

    lines: tuple[ValuationLine, ...] = ()
    total_usd: USDAmount = 0.0

    model_config = {"frozen": True}

    @property
    def error_count(self) -> int:
        return sum(1 for line in self.lines if line.status is FetchStatus.ERROR)


class StrategyResult(BaseModel):
    """Outcome of one strategy for one refresh cycle."""

    strategy: StrategyKind
    cycle_id: int
    states: tuple[TokenBalanceState, ...] = ()
    sample: PerformanceSample | None = None
    error: str | None = None  # Whole-strategy failure (batched only)

    model_config = {"frozen": True}

    @property
    def failed_symbols(self) -> list[str]:
        return [s.token.symbol for s in self.states if s.status is FetchStatus.ERROR]

    @property
    def amounts(self) -> dict[str, int]:
        return {s.token.symbol: s.balance.amount for s in self.states if s.balance is not None}


class RefreshCycleResult(BaseModel):
    """Everything one refresh produced, for both strategies."""

    cycle_id: int
    wallet: str
    tokens: tuple[Token, ...]
    individual: StrategyResult
    batched: StrategyResult
    prices: PriceTable
    improvement_percent: int = 0
    started_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class AuditEntry(BaseModel):
    """Audit trail entry for an outbound request."""

    timestamp: datetime = Field(default_factory=_utcnow)
    source: DataSource
    action: str  # "fetch", "read", "batch_read", "load"
    endpoint: str | None = None
    success: bool = True
    error_message: str | None = None
    duration_ms: int | None = None
    notes: str | None = None

    model_config = {"frozen": True}
