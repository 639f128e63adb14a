"""Tests for the performance comparator."""

import asyncio

import pytest

from portfolio_bench.comparator import PerformanceComparator, compute_improvement
from portfolio_bench.core.exceptions import PortfolioBenchError, TokenSourceNotFoundError
from portfolio_bench.core.models import PerformanceSample
from portfolio_bench.core.types import FetchStatus, StrategyKind
from portfolio_bench.registry.token_registry import MappingSource, TokenRegistryClient

from conftest import FakeBalanceReader, FakePriceOracle


class TestComputeImprovement:
    """Tests for the improvement formula."""

    def test_formula(self):
        # round((1 - 20/120) * 100) = round(83.33) = 83
        assert compute_improvement(120, 20) == 83
        assert compute_improvement(100, 50) == 50
        assert compute_improvement(100, 150) == -50

    def test_rounds_halves_up(self):
        assert compute_improvement(8, 7) == 13  # 12.5
        assert compute_improvement(8, 9) == -12  # -12.5

    def test_zero_when_either_missing(self):
        assert compute_improvement(0, 20) == 0
        assert compute_improvement(120, 0) == 0
        assert compute_improvement(0, 0) == 0


def make_comparator(registry, reader, prices=None, wallet=None, on_sample=None):
    return PerformanceComparator(
        registry=registry,
        reader=reader,
        price_oracle=FakePriceOracle(prices),
        wallet=wallet,
        on_sample=on_sample,
    )


class TestRefreshCycle:
    """Tests for PerformanceComparator refresh cycles."""

    @pytest.mark.asyncio
    async def test_both_strategies_agree(self, registry, tokens, wallet, sample_prices):
        balances = {t.address: 2 * 10**t.decimals for t in tokens}
        comparator = make_comparator(registry, FakeBalanceReader(balances), sample_prices, wallet)
        comparator.load_tokens()

        result = await comparator.refresh()

        individual = comparator.valuation(result.individual, result.prices)
        batched = comparator.valuation(result.batched, result.prices)
        expected = sum(2 * p for p in sample_prices.values())
        assert individual.total_usd == pytest.approx(expected)
        assert batched.total_usd == pytest.approx(expected)
        assert result.tokens == tokens
        assert result.wallet == wallet

    @pytest.mark.asyncio
    async def test_zero_balances_value_zero(self, registry, wallet, sample_prices):
        comparator = make_comparator(registry, FakeBalanceReader(), sample_prices, wallet)
        comparator.load_tokens()

        result = await comparator.refresh()

        individual = comparator.valuation(result.individual, result.prices)
        batched = comparator.valuation(result.batched, result.prices)
        assert individual.total_usd == 0
        assert batched.total_usd == 0
        assert [line.usd_value for line in individual.lines] == [
            line.usd_value for line in batched.lines
        ]

    @pytest.mark.asyncio
    async def test_samples_and_improvement(self, registry, wallet):
        samples: list[PerformanceSample] = []
        reader = FakeBalanceReader(delay=0.06, batch_delay=0.01)
        comparator = make_comparator(registry, reader, wallet=wallet, on_sample=samples.append)
        comparator.load_tokens()

        result = await comparator.refresh()

        assert result.individual.sample.call_count == 10
        assert result.batched.sample.call_count == 1
        assert result.improvement_percent > 0
        assert comparator.improvement_percent == result.improvement_percent
        assert set(comparator.last_samples) == {StrategyKind.INDIVIDUAL, StrategyKind.BATCHED}
        assert len(samples) == 2

    @pytest.mark.asyncio
    async def test_improvement_zero_before_any_refresh(self, registry, wallet):
        comparator = make_comparator(registry, FakeBalanceReader(), wallet=wallet)
        assert comparator.improvement_percent == 0
        assert comparator.last_samples == {}

    @pytest.mark.asyncio
    async def test_improvement_ignores_samples_from_different_cycles(self, registry, wallet):
        reader = FakeBalanceReader(delay=0.1, batch_delay=0.01)
        comparator = make_comparator(registry, reader, wallet=wallet)
        comparator.load_tokens()
        await comparator.refresh()

        task = comparator.trigger_refresh()
        await asyncio.sleep(0.04)

        samples = comparator.last_samples
        assert samples[StrategyKind.INDIVIDUAL].cycle_id == 1
        assert samples[StrategyKind.BATCHED].cycle_id == 2
        assert comparator.improvement_percent == 0

        result = await task
        assert comparator.improvement_percent == result.improvement_percent
        assert comparator.improvement_percent > 0

    @pytest.mark.asyncio
    async def test_batch_failure_does_not_block_individual(self, registry, wallet):
        """Batched failure puts every token in error; individual 3/10 failures stay isolated."""
        reader = FakeBalanceReader(fail_symbols={"WETH", "LINK", "CRV"}, batch_error=True)
        comparator = make_comparator(registry, reader, wallet=wallet)
        comparator.load_tokens()

        result = await comparator.refresh()

        assert all(s.status is FetchStatus.ERROR for s in result.batched.states)
        assert set(result.individual.failed_symbols) == {"WETH", "LINK", "CRV"}
        ok = [s for s in result.individual.states if s.status is FetchStatus.OK]
        assert len(ok) == 7
        assert result.individual.sample is not None
        assert result.batched.sample is not None

    @pytest.mark.asyncio
    async def test_prices_requested_for_snapshot(self, registry, tokens, wallet):
        comparator = make_comparator(registry, FakeBalanceReader(), wallet=wallet)
        comparator.load_tokens()

        await comparator.refresh()

        assert comparator.price_oracle.requests == [[t.symbol for t in tokens]]

    @pytest.mark.asyncio
    async def test_new_refresh_supersedes_in_flight_cycle(self, registry, wallet):
        """Exactly one sample per strategy, all from the newest cycle."""
        samples: list[PerformanceSample] = []
        reader = FakeBalanceReader(delay=0.05, batch_delay=0.05)
        comparator = make_comparator(registry, reader, wallet=wallet, on_sample=samples.append)
        comparator.load_tokens()

        first = comparator.trigger_refresh()
        await asyncio.sleep(0.01)
        second = comparator.trigger_refresh()

        result = await second
        with pytest.raises(asyncio.CancelledError):
            await first
        await asyncio.sleep(0.1)

        assert result.cycle_id == 2
        assert comparator.cycle_id == 2
        assert sorted((s.cycle_id, s.strategy.value) for s in samples) == [
            (2, "batched"),
            (2, "individual"),
        ]
        assert comparator.last_result is result

    @pytest.mark.asyncio
    async def test_snapshot_survives_token_reload(self, deployment_data, wallet):
        source = MappingSource(dict(deployment_data))
        registry = TokenRegistryClient(source)
        reader = FakeBalanceReader(delay=0.03)
        comparator = make_comparator(registry, reader, wallet=wallet)
        comparator.load_tokens()

        task = comparator.trigger_refresh()
        await asyncio.sleep(0.005)
        source.mapping = {"WETH": deployment_data["WETH"]}
        comparator.load_tokens()
        comparator.wallet = "0x9999999999999999999999999999999999999999"

        result = await task
        assert len(result.tokens) == 10
        assert len(result.batched.states) == 10
        assert result.wallet == wallet
        assert all(call[1] == wallet for call in reader.batch_calls)

    @pytest.mark.asyncio
    async def test_aclose_cancels_without_reporting(self, registry, wallet):
        samples: list[PerformanceSample] = []
        reader = FakeBalanceReader(delay=0.1, batch_delay=0.1)
        comparator = make_comparator(registry, reader, wallet=wallet, on_sample=samples.append)
        comparator.load_tokens()

        task = comparator.trigger_refresh()
        await asyncio.sleep(0.01)
        await comparator.aclose()
        await asyncio.sleep(0.15)

        assert task.cancelled()
        assert samples == []
        assert reader.closed is True
        assert comparator.price_oracle.closed is True

    @pytest.mark.asyncio
    async def test_requires_tokens_and_wallet(self, registry, wallet):
        comparator = make_comparator(registry, FakeBalanceReader())
        with pytest.raises(PortfolioBenchError):
            comparator.trigger_refresh()

        comparator.load_tokens()
        with pytest.raises(PortfolioBenchError):
            comparator.trigger_refresh()

    def test_load_tokens_propagates_not_found(self):
        comparator = make_comparator(TokenRegistryClient(MappingSource(None)), FakeBalanceReader())
        with pytest.raises(TokenSourceNotFoundError):
            comparator.load_tokens()
