"""Individual strategy: one balanceOf request per token.

All reads start together and settle independently, each with its own
loading / data / error state. The cycle is complete only once every read
has settled; a failed token never blocks or fails its siblings.
"""

import asyncio
import logging

from ..core.exceptions import FetchError
from ..core.models import StrategyResult, Token, TokenBalanceState
from ..core.types import StrategyKind
from .base import BalanceStrategy
from .session import CompletionTracker, MeasurementSession

logger = logging.getLogger(__name__)


class IndividualBalanceStrategy(BalanceStrategy):
    """N concurrent single-token reads."""

    KIND = StrategyKind.INDIVIDUAL

    async def fetch_all(self, session: MeasurementSession) -> StrategyResult:
        self._begin(session)
        self._track(asyncio.current_task())
        tokens = session.tokens
        states = list(self._states)
        tracker = CompletionTracker(len(tokens))

        tasks = [
            self._track(
                asyncio.create_task(
                    self._read_one(session, index, token, states, tracker),
                    name=f"balance-{token.symbol}-{session.cycle_id}",
                )
            )
            for index, token in enumerate(tokens)
        ]

        try:
            await tracker.wait()
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        sample = None
        if tokens:
            sample = session.report(self.KIND, call_count=len(tokens))

        result = StrategyResult(
            strategy=self.KIND,
            cycle_id=session.cycle_id,
            states=tuple(states),
            sample=sample,
        )
        if result.failed_symbols:
            logger.warning(
                f"Cycle {session.cycle_id}: {len(result.failed_symbols)}/{len(tokens)} "
                f"individual reads failed ({', '.join(result.failed_symbols)})"
            )
        return result

    async def _read_one(
        self,
        session: MeasurementSession,
        index: int,
        token: Token,
        states: list[TokenBalanceState],
        tracker: CompletionTracker,
    ) -> None:
        try:
            amount = await self.reader.read_balance(token, session.wallet)
            states[index] = TokenBalanceState.loaded(token, amount)
        except FetchError as e:
            states[index] = TokenBalanceState.failed(token, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error reading {token.symbol}")
            states[index] = TokenBalanceState.failed(token, str(e) or type(e).__name__)

        # Cancelled reads never settle: a torn-down cycle must not complete
        tracker.settle()
        self._publish(session, tuple(states))
