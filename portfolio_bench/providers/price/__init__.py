"""Price data providers."""

from .coingecko_price import CoinGeckoPriceOracle

__all__ = ["CoinGeckoPriceOracle"]
