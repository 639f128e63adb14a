"""Data providers for the portfolio benchmark tool.

This module contains providers for:
- Price data (CoinGecko)
- On-chain balances (JSON-RPC via web3)
"""

from .base import BaseProvider

__all__ = ["BaseProvider"]
