"""Balance retrieval strategies and their measurement session."""

from .base import BalanceStrategy
from .batched import BatchedBalanceStrategy
from .individual import IndividualBalanceStrategy
from .session import CompletionTracker, MeasurementSession

__all__ = [
    "BalanceStrategy",
    "BatchedBalanceStrategy",
    "IndividualBalanceStrategy",
    "CompletionTracker",
    "MeasurementSession",
]
