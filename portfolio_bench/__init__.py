"""Portfolio Balance Benchmark Tool.

Reads a wallet's token balances under two retrieval strategies (one call
per token vs. one aggregated call), values them in USD, and compares the
wall-clock cost of each strategy.
"""

__version__ = "0.1.0"
