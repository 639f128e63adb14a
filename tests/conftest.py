"""Pytest configuration and fixtures for portfolio benchmark tests."""

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from portfolio_bench.core.exceptions import BatchFetchError, FetchError
from portfolio_bench.core.models import PriceTable, Token
from portfolio_bench.providers.chain.web3_reader import BalanceReader
from portfolio_bench.registry.metadata import DEFAULT_TOKEN_METADATA, KnownTokenTable
from portfolio_bench.registry.token_registry import MappingSource, TokenRegistryClient

WALLET = "0x1111111111111111111111111111111111111111"
READER_ADDRESS = "0x2222222222222222222222222222222222222222"
PRIMARY_ADDRESS = "0x3333333333333333333333333333333333333333"


def token_address(index: int) -> str:
    return "0x" + f"{index + 0xA0:040x}"


class FakeBalanceReader(BalanceReader):
    """In-memory BalanceReader with optional latency and failures."""

    def __init__(
        self,
        balances: dict[str, int] | None = None,
        delay: float = 0.0,
        batch_delay: float = 0.0,
        fail_symbols: set[str] | None = None,
        batch_error: bool = False,
    ):
        self.balances = balances or {}  # address -> amount
        self.delay = delay
        self.batch_delay = batch_delay
        self.fail_symbols = fail_symbols or set()
        self.batch_error = batch_error
        self.single_calls: list[str] = []
        self.batch_calls: list[tuple[str, str, list[str]]] = []
        self.closed = False

    async def read_balance(self, token: Token, wallet: str) -> int:
        self.single_calls.append(token.symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if token.symbol in self.fail_symbols:
            raise FetchError(token.symbol, "execution reverted")
        return self.balances.get(token.address, 0)

    async def read_balances(
        self, reader_address: str, wallet: str, token_addresses: Sequence[str]
    ) -> list[int]:
        self.batch_calls.append((reader_address, wallet, list(token_addresses)))
        if self.batch_delay:
            await asyncio.sleep(self.batch_delay)
        if self.batch_error:
            raise BatchFetchError("execution reverted", len(token_addresses))
        return [self.balances.get(a, 0) for a in token_addresses]

    async def aclose(self) -> None:
        self.closed = True


class FakePriceOracle:
    """Price oracle stand-in returning a fixed table."""

    def __init__(self, prices: dict[str, float] | None = None):
        self.prices = prices or {}
        self.requests: list[list[str]] = []
        self.closed = False

    async def get_prices(self, symbols) -> PriceTable:
        symbols = list(symbols)
        self.requests.append(symbols)
        return PriceTable(prices={s: self.prices.get(s, 0.0) for s in symbols})

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def known_tokens() -> KnownTokenTable:
    """Default ten-symbol table."""
    return KnownTokenTable()


@pytest.fixture
def deployment_data() -> dict[str, Any]:
    """Deployment record with 10 known tokens, 2 unknown entries and infra contracts."""
    data: dict[str, Any] = {"your-contract": {"address": PRIMARY_ADDRESS, "txHash": "0xabc"}}
    for i, symbol in enumerate(DEFAULT_TOKEN_METADATA):
        data[symbol] = {"address": token_address(i), "txHash": f"0x{i:064x}"}
        if i == 4:
            data["MysteryToken"] = {"address": token_address(90)}
    data["PortfolioReader"] = {"address": READER_ADDRESS}
    data["counter"] = {"address": token_address(91)}
    return data


@pytest.fixture
def registry(deployment_data, known_tokens) -> TokenRegistryClient:
    return TokenRegistryClient(MappingSource(deployment_data), known_tokens=known_tokens)


@pytest.fixture
def tokens(registry) -> tuple[Token, ...]:
    return registry.list_tokens().tokens


@pytest.fixture
def sample_prices() -> dict[str, float]:
    return {s: float(m["fallback_price_usd"]) for s, m in DEFAULT_TOKEN_METADATA.items()}


@pytest.fixture
def wallet() -> str:
    return WALLET
