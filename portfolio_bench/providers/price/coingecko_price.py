"""CoinGecko price oracle for current USD token prices.

One `simple/price` request covers every tracked symbol. The oracle never
raises to its caller: any failure is absorbed into the static fallback
table so valuation can always proceed.
"""

import logging
import math
import time
from collections.abc import Iterable
from typing import Any

import httpx

from ...core.exceptions import PriceFetchError
from ...core.models import PriceTable
from ...core.types import DataSource
from ...registry.metadata import KnownTokenTable
from ..base import BaseProvider

logger = logging.getLogger(__name__)


class CoinGeckoPriceOracle(BaseProvider):
    """Resolves symbol -> USD price via CoinGecko with a static fallback."""

    SOURCE = DataSource.COINGECKO
    BASE_URL = "https://api.coingecko.com/api/v3"
    PRO_BASE_URL = "https://pro-api.coingecko.com/api/v3"

    def __init__(
        self,
        known_tokens: KnownTokenTable | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        rate_limit_calls: int | None = 30,
        rate_limit_period: int = 60,
    ):
        """
        Initialize the price oracle.

        Args:
            known_tokens: Table providing CoinGecko ids and fallback prices
            api_key: Optional CoinGecko Pro API key
            client: Optional shared httpx client (one is created otherwise)
            timeout: Request timeout in seconds
            rate_limit_calls: Rate limit per period
            rate_limit_period: Period in seconds
        """
        super().__init__(
            rate_limit_calls=rate_limit_calls,
            rate_limit_period=rate_limit_period,
        )
        self.known_tokens = known_tokens if known_tokens is not None else KnownTokenTable()
        self.api_key = api_key
        self.base_url = self.PRO_BASE_URL if api_key else self.BASE_URL
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _make_request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a rate-limited request to CoinGecko."""
        await self._wait_for_rate_limit()
        start_time = time.time()

        headers = {}
        if self.api_key:
            headers["x-cg-pro-api-key"] = self.api_key

        url = f"{self.base_url}{endpoint}"

        try:
            response = await self._get_client().get(url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            self._record_audit(
                action="fetch",
                endpoint=endpoint,
                success=False,
                error_message=f"HTTP {e.response.status_code}",
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise PriceFetchError(
                f"HTTP {e.response.status_code}",
                endpoint=endpoint,
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            self._record_audit(
                action="fetch",
                endpoint=endpoint,
                success=False,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise PriceFetchError(str(e) or type(e).__name__, endpoint=endpoint)
        except ValueError as e:
            raise PriceFetchError(f"Invalid JSON: {e}", endpoint=endpoint)

        if not isinstance(data, dict):
            raise PriceFetchError("Unexpected response shape", endpoint=endpoint)

        self._record_audit(
            action="fetch",
            endpoint=endpoint,
            success=True,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return data

    async def get_prices(self, symbols: Iterable[str]) -> PriceTable:
        """
        Get current USD prices for the given symbols.

        Symbols without a CoinGecko id are left out of the request and
        priced at 0. On any feed failure every requested symbol is priced
        from the fallback table instead.

        Args:
            symbols: Token symbols to price

        Returns:
            PriceTable with one entry per requested symbol
        """
        requested = list(dict.fromkeys(symbols))
        if not requested:
            return PriceTable()

        id_map = self.known_tokens.coingecko_ids()
        ids = {symbol: id_map[symbol] for symbol in requested if symbol in id_map}

        try:
            if not ids:
                raise PriceFetchError("No valid CoinGecko IDs found")

            data = await self._make_request(
                "/simple/price",
                params={"ids": ",".join(dict.fromkeys(ids.values())), "vs_currencies": "usd"},
            )
        except PriceFetchError as e:
            logger.warning(f"Price fetch failed, using fallback prices: {e.message}")
            return self._fallback(requested, e.message)

        prices = {symbol: _usd_price(data.get(ids.get(symbol, ""))) for symbol in requested}
        missing = [s for s in requested if prices[s] == 0.0]
        if missing:
            logger.debug(f"No price returned for: {', '.join(missing)}")

        return PriceTable(prices=prices)

    def _fallback(self, symbols: list[str], error: str) -> PriceTable:
        table = self.known_tokens.fallback_prices()
        return PriceTable(
            prices={symbol: table.get(symbol, 0.0) for symbol in symbols},
            is_fallback=True,
            error=error,
        )


def _usd_price(entry: Any) -> float:
    """Extract a usable USD price from one `{"usd": ...}` entry, else 0."""
    if not isinstance(entry, dict):
        return 0.0
    value = entry.get("usd")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value
