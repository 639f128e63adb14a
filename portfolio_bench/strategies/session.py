"""Per-cycle measurement session shared by both strategies.

A session is created by the comparator for every refresh. It pins the
wallet and token snapshot for the cycle, owns the timing start, and makes
sure each strategy reports at most one sample, and none at all once the
session has been superseded or torn down.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from ..core.models import PerformanceSample, Token
from ..core.types import StrategyKind

logger = logging.getLogger(__name__)

SampleCallback = Callable[[PerformanceSample], None]


class MeasurementSession:
    """Snapshot, clock and reporting guard for one refresh cycle."""

    def __init__(
        self,
        cycle_id: int,
        wallet: str,
        tokens: tuple[Token, ...],
        on_sample: SampleCallback | None = None,
        reader_address: str | None = None,
    ):
        self.cycle_id = cycle_id
        self.wallet = wallet
        self.tokens = tuple(tokens)
        self.reader_address = reader_address
        self.on_sample = on_sample
        self.started_at = time.perf_counter()
        self._active = True
        self._reported: set[StrategyKind] = set()

    @property
    def is_active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Invalidate the session; later reports are dropped."""
        if self._active:
            logger.debug(f"Cycle {self.cycle_id} cancelled")
        self._active = False

    def report(
        self,
        strategy: StrategyKind,
        call_count: int,
        started_at: float | None = None,
    ) -> PerformanceSample | None:
        """
        Close the measurement for one strategy and emit its sample.

        Args:
            strategy: Which strategy finished
            call_count: Number of outbound reads it issued
            started_at: perf_counter() start; defaults to the session start

        Returns:
            The sample, or None if the session is stale or already reported
        """
        if not self._active or strategy in self._reported:
            return None

        start = self.started_at if started_at is None else started_at
        elapsed_ms = max(0.0, (time.perf_counter() - start) * 1000)
        sample = PerformanceSample(
            strategy=strategy,
            elapsed_ms=elapsed_ms,
            call_count=call_count,
            cycle_id=self.cycle_id,
        )
        self._reported.add(strategy)

        logger.debug(
            f"Cycle {self.cycle_id} {strategy.value}: {elapsed_ms:.2f}ms, {call_count} calls"
        )
        if self.on_sample is not None:
            self.on_sample(sample)
        return sample


class CompletionTracker:
    """Counts outstanding reads; resolves once every one has settled."""

    def __init__(self, outstanding: int):
        if outstanding < 0:
            raise ValueError("outstanding must be >= 0")
        self._outstanding = outstanding
        self._done = asyncio.Event()
        if outstanding == 0:
            self._done.set()

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def settle(self) -> None:
        """Mark one read as finished (data or error)."""
        if self._outstanding == 0:
            return
        self._outstanding -= 1
        if self._outstanding == 0:
            self._done.set()

    async def wait(self) -> None:
        await self._done.wait()
