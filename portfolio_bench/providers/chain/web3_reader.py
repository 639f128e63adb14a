"""On-chain balance reads over JSON-RPC.

Two capabilities back the two strategies:
- `read_balance`: ERC-20 `balanceOf(wallet)` on one token contract
- `read_balances`: `getBalances(wallet, tokens)` on the portfolio reader
  helper, returning one amount per token address in input order
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

from web3 import AsyncWeb3

from ...core.exceptions import BatchFetchError, FetchError
from ...core.models import Token
from ...core.types import DataSource
from ..base import BaseProvider

logger = logging.getLogger(__name__)

ERC20_BALANCE_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

PORTFOLIO_READER_ABI = [
    {
        "inputs": [
            {"name": "user", "type": "address"},
            {"name": "tokens", "type": "address[]"},
        ],
        "name": "getBalances",
        "outputs": [{"name": "", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class BalanceReader(ABC):
    """Uniform balance-read capability used by both strategies."""

    @abstractmethod
    async def read_balance(self, token: Token, wallet: str) -> int:
        """
        Read the wallet's balance of one token in base units.

        Raises:
            FetchError: If the read fails
        """

    @abstractmethod
    async def read_balances(
        self, reader_address: str, wallet: str, token_addresses: Sequence[str]
    ) -> list[int]:
        """
        Read balances of all tokens in one call.

        Returns:
            Amounts in the same order as `token_addresses`

        Raises:
            BatchFetchError: If the call fails
        """

    async def aclose(self) -> None:
        """Release connections."""


class Web3BalanceReader(BaseProvider, BalanceReader):
    """BalanceReader backed by an AsyncWeb3 HTTP provider."""

    SOURCE = DataSource.RPC

    def __init__(self, rpc_url: str, timeout: float = 30.0, w3: AsyncWeb3 | None = None):
        """
        Initialize the reader.

        Args:
            rpc_url: JSON-RPC endpoint of the chain
            timeout: Per-request timeout in seconds
            w3: Optional preconfigured AsyncWeb3 instance
        """
        super().__init__()
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    async def read_balance(self, token: Token, wallet: str) -> int:
        start_time = time.time()
        try:
            contract = self.w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(token.address),
                abi=ERC20_BALANCE_ABI,
            )
            amount = await contract.functions.balanceOf(
                AsyncWeb3.to_checksum_address(wallet)
            ).call()
        except Exception as e:
            self._record_audit(
                action="read",
                endpoint=f"{token.symbol}.balanceOf",
                success=False,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise FetchError(token.symbol, str(e) or type(e).__name__) from e

        self._record_audit(
            action="read",
            endpoint=f"{token.symbol}.balanceOf",
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return int(amount)

    async def read_balances(
        self, reader_address: str, wallet: str, token_addresses: Sequence[str]
    ) -> list[int]:
        start_time = time.time()
        try:
            contract = self.w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(reader_address),
                abi=PORTFOLIO_READER_ABI,
            )
            amounts = await contract.functions.getBalances(
                AsyncWeb3.to_checksum_address(wallet),
                [AsyncWeb3.to_checksum_address(a) for a in token_addresses],
            ).call()
        except Exception as e:
            self._record_audit(
                action="batch_read",
                endpoint="PortfolioReader.getBalances",
                success=False,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise BatchFetchError(str(e) or type(e).__name__, len(token_addresses)) from e

        self._record_audit(
            action="batch_read",
            endpoint="PortfolioReader.getBalances",
            duration_ms=int((time.time() - start_time) * 1000),
            notes=f"{len(token_addresses)} tokens",
        )
        return [int(a) for a in amounts]

    async def aclose(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
