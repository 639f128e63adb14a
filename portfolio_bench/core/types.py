"""Type definitions and enums for the portfolio benchmark tool."""

from enum import Enum

class StrategyKind(str, Enum):
    """Balance retrieval strategies under comparison."""

    INDIVIDUAL = "individual"   # One balanceOf call per token
    BATCHED = "batched"         # One getBalances call for all tokens

    @property
    def display_name(self) -> str:
        """Human-readable display name."""
        names = {
            self.INDIVIDUAL: "Individual Calls",
            self.BATCHED: "Batched Call",
        }
        return names.get(self, self.value)


class FetchStatus(str, Enum):
    """Per-token read state."""

    LOADING = "loading"
    OK = "ok"
    ERROR = "error"


class DataSource(str, Enum):
    """Data source identifiers used in the audit trail."""

    COINGECKO = "coingecko"
    RPC = "rpc"
    DEPLOYMENT = "deployment"
    UNKNOWN = "unknown"


# Type aliases for common patterns
USDAmount = float    # USD value
BaseUnits = int      # Raw on-chain integer amount
Milliseconds = float
