"""Batched strategy: one getBalances request for the whole token list.

The helper contract answers in input order, so result index i belongs to
tokens[i]. Failure is all-or-nothing: if the single call fails, every token
in the cycle is in error.
"""

import asyncio
import logging
import time

from ..core.exceptions import BatchFetchError
from ..core.models import StrategyResult, TokenBalanceState
from ..core.types import StrategyKind
from .base import BalanceStrategy
from .session import MeasurementSession

logger = logging.getLogger(__name__)


class BatchedBalanceStrategy(BalanceStrategy):
    """Single aggregated read through the portfolio reader contract."""

    KIND = StrategyKind.BATCHED

    async def fetch_all(self, session: MeasurementSession) -> StrategyResult:
        self._begin(session)
        self._track(asyncio.current_task())
        tokens = session.tokens

        if not tokens:
            return StrategyResult(strategy=self.KIND, cycle_id=session.cycle_id)

        if session.reader_address is None:
            error = "No portfolio reader address configured"
            return self._all_failed(session, error, sample=None)

        started_at = time.perf_counter()
        try:
            amounts = await self.reader.read_balances(
                session.reader_address,
                session.wallet,
                [t.address for t in tokens],
            )
            if len(amounts) != len(tokens):
                raise BatchFetchError(
                    f"expected {len(tokens)} balances, got {len(amounts)}", len(tokens)
                )
            states = tuple(
                TokenBalanceState.loaded(token, amount) for token, amount in zip(tokens, amounts)
            )
        except BatchFetchError as e:
            sample = session.report(self.KIND, call_count=1, started_at=started_at)
            return self._all_failed(session, e.message, sample)
        except Exception as e:
            logger.exception("Unexpected error in batched read")
            sample = session.report(self.KIND, call_count=1, started_at=started_at)
            return self._all_failed(session, str(e) or type(e).__name__, sample)

        sample = session.report(self.KIND, call_count=1, started_at=started_at)
        self._publish(session, states)
        return StrategyResult(
            strategy=self.KIND,
            cycle_id=session.cycle_id,
            states=states,
            sample=sample,
        )

    def _all_failed(self, session: MeasurementSession, error: str, sample) -> StrategyResult:
        logger.warning(f"Cycle {session.cycle_id}: batched read failed for all tokens: {error}")
        states = tuple(TokenBalanceState.failed(t, error) for t in session.tokens)
        self._publish(session, states)
        return StrategyResult(
            strategy=self.KIND,
            cycle_id=session.cycle_id,
            states=states,
            sample=sample,
            error=error,
        )
