"""Chain data providers."""

from .web3_reader import BalanceReader, Web3BalanceReader

__all__ = ["BalanceReader", "Web3BalanceReader"]
