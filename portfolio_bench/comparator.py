"""Performance comparator - runs refresh cycles across both strategies.

Coordinates the registry, both balance strategies and the price oracle to
produce a RefreshCycleResult, and keeps the latest sample per strategy for
the improvement figure.
"""

import asyncio
import logging
import math
from collections.abc import Callable

from .calculator.valuation import ValuationAggregator
from .core.config import AppConfig
from .core.exceptions import PortfolioBenchError
from .core.models import (
    PerformanceSample,
    PortfolioValuation,
    PriceTable,
    RefreshCycleResult,
    StrategyResult,
    TokenListing,
)
from .core.types import StrategyKind
from .providers.chain.web3_reader import BalanceReader, Web3BalanceReader
from .providers.price.coingecko_price import CoinGeckoPriceOracle
from .registry.metadata import KnownTokenTable
from .registry.token_registry import DeploymentFileSource, TokenRegistryClient
from .strategies.batched import BatchedBalanceStrategy
from .strategies.individual import IndividualBalanceStrategy
from .strategies.session import MeasurementSession

logger = logging.getLogger(__name__)


def compute_improvement(individual_ms: float, batched_ms: float) -> int:
    """
    Relative speedup of the batched strategy over the individual one.

    Formula: round((1 - batched / individual) × 100), rounding halves up.
    Returns 0 while either measurement is missing (zero).
    """
    if individual_ms <= 0 or batched_ms <= 0:
        return 0
    return math.floor((1 - batched_ms / individual_ms) * 100 + 0.5)


class PerformanceComparator:
    """Triggers refresh cycles and compares the two strategies."""

    def __init__(
        self,
        registry: TokenRegistryClient,
        reader: BalanceReader,
        price_oracle: CoinGeckoPriceOracle,
        wallet: str | None = None,
        on_sample: Callable[[PerformanceSample], None] | None = None,
    ):
        """
        Initialize the comparator.

        Args:
            registry: Token registry used by load_tokens()
            reader: Balance reader shared by both strategies
            price_oracle: USD price source
            wallet: Wallet address to read balances for
            on_sample: Optional listener called with every accepted sample
        """
        self.registry = registry
        self.reader = reader
        self.price_oracle = price_oracle
        self.wallet = wallet
        self.on_sample = on_sample

        self.individual = IndividualBalanceStrategy(reader)
        self.batched = BatchedBalanceStrategy(reader)
        self.aggregator = ValuationAggregator()

        self.listing: TokenListing | None = None
        self.last_result: RefreshCycleResult | None = None
        self._last_samples: dict[StrategyKind, PerformanceSample] = {}
        self._cycle_id = 0
        self._session: MeasurementSession | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: AppConfig, wallet: str | None = None) -> "PerformanceComparator":
        """Build a comparator wired to the configured chain and CoinGecko."""
        if config.metadata_path:
            known_tokens = KnownTokenTable.from_yaml(config.metadata_path)
        else:
            known_tokens = KnownTokenTable()

        registry = TokenRegistryClient(
            DeploymentFileSource(config.deployment_file),
            known_tokens=known_tokens,
        )
        reader = Web3BalanceReader(config.rpc_url, timeout=config.request_timeout)
        oracle = CoinGeckoPriceOracle(
            known_tokens=known_tokens,
            api_key=config.coingecko_api_key,
            timeout=config.request_timeout,
        )
        return cls(registry, reader, oracle, wallet=wallet or config.wallet_address)

    # ------------------------------------------------------------------
    # Token list

    def load_tokens(self) -> TokenListing:
        """
        (Re)load the token list. The next refresh snapshots this listing.

        Raises:
            TokenSourceNotFoundError, TokenSourceMalformedError
        """
        self.listing = self.registry.list_tokens()
        return self.listing

    # ------------------------------------------------------------------
    # Refresh cycles

    @property
    def cycle_id(self) -> int:
        return self._cycle_id

    def trigger_refresh(self) -> "asyncio.Task[RefreshCycleResult]":
        """
        Start a refresh cycle against a snapshot of the current tokens and wallet.

        Any cycle still in flight is cancelled first; it will not report.
        Must be called from a running event loop.
        """
        if self.listing is None:
            raise PortfolioBenchError("No token listing loaded; call load_tokens() first")
        if not self.wallet:
            raise PortfolioBenchError("No wallet address set")

        self._cancel_current()

        self._cycle_id += 1
        session = MeasurementSession(
            cycle_id=self._cycle_id,
            wallet=self.wallet,
            tokens=self.listing.tokens,
            on_sample=self._accept_sample,
            reader_address=self.listing.contract_addresses.portfolio_reader,
        )
        self._session = session
        logger.info(
            f"Refresh cycle {session.cycle_id}: {len(session.tokens)} tokens for {session.wallet}"
        )
        self._task = asyncio.create_task(
            self._run_cycle(session), name=f"refresh-cycle-{session.cycle_id}"
        )
        return self._task

    async def refresh(self) -> RefreshCycleResult:
        """Trigger a refresh and wait for it."""
        return await self.trigger_refresh()

    async def _run_cycle(self, session: MeasurementSession) -> RefreshCycleResult:
        individual, batched, prices = await asyncio.gather(
            self.individual.fetch_all(session),
            self.batched.fetch_all(session),
            self.price_oracle.get_prices([t.symbol for t in session.tokens]),
        )

        result = RefreshCycleResult(
            cycle_id=session.cycle_id,
            wallet=session.wallet,
            tokens=session.tokens,
            individual=individual,
            batched=batched,
            prices=prices,
            improvement_percent=compute_improvement(
                individual.sample.elapsed_ms if individual.sample else 0.0,
                batched.sample.elapsed_ms if batched.sample else 0.0,
            ),
        )
        if session.is_active:
            self.last_result = result
        return result

    def _accept_sample(self, sample: PerformanceSample) -> None:
        self._last_samples[sample.strategy] = sample
        if self.on_sample is not None:
            self.on_sample(sample)

    def _cancel_current(self) -> None:
        if self._session is not None:
            self._session.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    # ------------------------------------------------------------------
    # Derived figures

    @property
    def last_samples(self) -> dict[StrategyKind, PerformanceSample]:
        return dict(self._last_samples)

    @property
    def improvement_percent(self) -> int:
        """Improvement from the latest samples; 0 unless both come from the same cycle."""
        individual = self._last_samples.get(StrategyKind.INDIVIDUAL)
        batched = self._last_samples.get(StrategyKind.BATCHED)
        if individual is None or batched is None or individual.cycle_id != batched.cycle_id:
            return 0
        return compute_improvement(individual.elapsed_ms, batched.elapsed_ms)

    def valuation(self, result: StrategyResult, prices: PriceTable) -> PortfolioValuation:
        """Value one strategy's balances with the cycle's prices."""
        return self.aggregator.aggregate(result.states, prices)

    # ------------------------------------------------------------------
    # Teardown

    async def aclose(self) -> None:
        """Cancel in-flight work and release network resources."""
        self._cancel_current()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        await self.individual.aclose()
        await self.batched.aclose()
        await self.reader.aclose()
        await self.price_oracle.aclose()

    async def __aenter__(self) -> "PerformanceComparator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
