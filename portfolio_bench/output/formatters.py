"""Output formatters for refresh cycle results.

Provides two output formats:
- JSON: Machine-readable, complete data
- Table: Human-readable CLI output (rich)
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from io import StringIO
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..calculator.valuation import ValuationAggregator
from ..core.models import PriceTable, RefreshCycleResult, StrategyResult, TokenListing
from ..core.types import FetchStatus

logger = logging.getLogger(__name__)


class OutputFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format(self, result: RefreshCycleResult) -> str:
        """Format the result as a string."""
        pass

    def format_to_file(self, result: RefreshCycleResult, filepath: str) -> None:
        """Write formatted result to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.format(result))


class JSONFormatter(OutputFormatter):
    """Formats results as JSON, including per-strategy valuations."""

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.aggregator = ValuationAggregator()

    def _serialize(self, obj: Any) -> Any:
        """Custom serialization for complex types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if hasattr(obj, "model_dump"):
            return obj.model_dump()
        if hasattr(obj, "value"):
            # Enum
            return obj.value
        return str(obj)

    def format(self, result: RefreshCycleResult) -> str:
        data = result.model_dump(mode="json")
        for key, strategy_result in (
            ("individual", result.individual),
            ("batched", result.batched),
        ):
            valuation = self.aggregator.aggregate(strategy_result.states, result.prices)
            data[key]["valuation"] = valuation.model_dump(mode="json")
        return json.dumps(data, default=self._serialize, indent=self.indent)


class TableFormatter(OutputFormatter):
    """Formats results as human-readable tables for CLI output."""

    def __init__(self, width: int = 100, force_terminal: bool = True):
        """
        Initialize table formatter.

        Args:
            width: Maximum table width
            force_terminal: Emit ANSI styling even when not writing to a TTY
        """
        self.width = width
        self.force_terminal = force_terminal
        self.aggregator = ValuationAggregator()

    def _console(self, output: StringIO) -> Console:
        return Console(file=output, force_terminal=self.force_terminal, width=self.width)

    def format(self, result: RefreshCycleResult) -> str:
        output = StringIO()
        console = self._console(output)

        console.print(Panel(
            f"[bold cyan]Cycle {result.cycle_id}[/] - {len(result.tokens)} tokens\n"
            f"[dim]Wallet: {result.wallet}[/]",
            title="Portfolio Refresh",
            expand=False,
        ))

        console.print(self._performance_table(result))
        for strategy_result in (result.individual, result.batched):
            console.print(self._balances_table(strategy_result, result.prices))

        if result.prices.is_fallback:
            console.print(f"[yellow]Using fallback prices: {result.prices.error}[/]")

        return output.getvalue()

    def _performance_table(self, result: RefreshCycleResult) -> Table:
        table = Table(title="Performance Comparison")
        table.add_column("Strategy")
        table.add_column("Time (ms)", justify="right")
        table.add_column("Calls", justify="right")

        for strategy_result in (result.individual, result.batched):
            sample = strategy_result.sample
            table.add_row(
                strategy_result.strategy.display_name,
                f"{sample.elapsed_ms:.2f}" if sample else "N/A",
                str(sample.call_count) if sample else "N/A",
            )

        table.add_section()
        table.add_row("[bold]Improvement[/]", f"[bold green]{result.improvement_percent}%[/]", "")
        return table

    def _balances_table(self, strategy_result: StrategyResult, prices: PriceTable) -> Table:
        valuation = self.aggregator.aggregate(strategy_result.states, prices)
        table = Table(
            title=f"{strategy_result.strategy.display_name} - "
            f"Total ${valuation.total_usd:,.2f}"
        )
        table.add_column("Token")
        table.add_column("Balance", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Value (USD)", justify="right")

        for line in valuation.lines:
            symbol = line.token.symbol
            if line.status is FetchStatus.ERROR:
                balance = "[red]error[/]"
            elif line.status is FetchStatus.LOADING:
                balance = "[dim]loading[/]"
            else:
                balance = f"{line.formatted_balance:,.4f}"
            table.add_row(
                f"{symbol} [dim]{line.token.name}[/]",
                balance,
                f"${prices.get(symbol):,.2f}",
                f"${line.usd_value:,.2f}",
            )
        return table

    def format_listing(self, listing: TokenListing) -> str:
        """Render the token list and infrastructure addresses."""
        output = StringIO()
        console = self._console(output)

        table = Table(title=f"Tracked Tokens ({len(listing.tokens)})")
        table.add_column("#", justify="right")
        table.add_column("Symbol")
        table.add_column("Name")
        table.add_column("Decimals", justify="right")
        table.add_column("Address")
        for i, token in enumerate(listing.tokens):
            table.add_row(str(i), token.symbol, token.name, str(token.decimals), token.address)
        console.print(table)

        addresses = listing.contract_addresses
        console.print(f"PortfolioReader: {addresses.portfolio_reader or '[yellow]not deployed[/]'}")
        console.print(f"Primary contract: {addresses.primary_contract or '[yellow]not deployed[/]'}")
        return output.getvalue()

    def format_prices(self, prices: PriceTable) -> str:
        """Render a price table."""
        output = StringIO()
        console = self._console(output)

        source = "fallback" if prices.is_fallback else "coingecko"
        table = Table(title=f"USD Prices ({source})")
        table.add_column("Symbol")
        table.add_column("Price", justify="right")
        for symbol, price in prices.prices.items():
            table.add_row(symbol, f"${price:,.4f}")
        console.print(table)
        if prices.error:
            console.print(f"[yellow]{prices.error}[/]")
        return output.getvalue()
