"""Core module - data models, types, configuration and exceptions."""

from .models import (
    Token,
    ContractAddresses,
    TokenListing,
    RawBalance,
    TokenBalanceState,
    PriceTable,
    PerformanceSample,
    ValuationLine,
    PortfolioValuation,
    StrategyResult,
    RefreshCycleResult,
    AuditEntry,
)
from .types import (
    StrategyKind,
    FetchStatus,
    DataSource,
)
from .exceptions import (
    PortfolioBenchError,
    TokenSourceNotFoundError,
    TokenSourceMalformedError,
    FetchError,
    BatchFetchError,
    PriceFetchError,
    ConfigurationError,
)

__all__ = [
    # Models
    "Token",
    "ContractAddresses",
    "TokenListing",
    "RawBalance",
    "TokenBalanceState",
    "PriceTable",
    "PerformanceSample",
    "ValuationLine",
    "PortfolioValuation",
    "StrategyResult",
    "RefreshCycleResult",
    "AuditEntry",
    # Types
    "StrategyKind",
    "FetchStatus",
    "DataSource",
    # Exceptions
    "PortfolioBenchError",
    "TokenSourceNotFoundError",
    "TokenSourceMalformedError",
    "FetchError",
    "BatchFetchError",
    "PriceFetchError",
    "ConfigurationError",
]
