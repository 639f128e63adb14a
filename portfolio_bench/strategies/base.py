"""Base class for balance retrieval strategies."""

import asyncio
import logging
from abc import ABC, abstractmethod

from ..core.models import StrategyResult, TokenBalanceState
from ..core.types import StrategyKind
from ..providers.chain.web3_reader import BalanceReader
from .session import MeasurementSession

logger = logging.getLogger(__name__)


class BalanceStrategy(ABC):
    """Fetches a wallet's balances for a session's token snapshot and times it."""

    KIND: StrategyKind

    def __init__(self, reader: BalanceReader):
        self.reader = reader
        self._pending: set[asyncio.Task] = set()
        self._states: tuple[TokenBalanceState, ...] = ()
        self._cycle_id: int | None = None

    @abstractmethod
    async def fetch_all(self, session: MeasurementSession) -> StrategyResult:
        """
        Read every token in the session snapshot.

        Reports one PerformanceSample through the session when the read
        completes, unless the session was cancelled first.
        """

    @property
    def current_states(self) -> tuple[TokenBalanceState, ...]:
        """Latest per-token states of the most recent cycle (may be loading)."""
        return self._states

    def _begin(self, session: MeasurementSession) -> None:
        self._cycle_id = session.cycle_id
        self._states = tuple(TokenBalanceState(token=t) for t in session.tokens)

    def _publish(self, session: MeasurementSession, states: tuple[TokenBalanceState, ...]) -> None:
        # A stale cycle must not overwrite what a newer one shows
        if self._cycle_id == session.cycle_id:
            self._states = states

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def aclose(self) -> None:
        """Cancel any reads still in flight."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()
