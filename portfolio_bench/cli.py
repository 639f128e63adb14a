"""CLI entry point for the Portfolio Balance Benchmark Tool.

Usage:
    portfolio-bench tokens
    portfolio-bench prices
    portfolio-bench compare --wallet 0xabc... --rounds 5 --interval 2
"""

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from .comparator import PerformanceComparator
from .core.config import AppConfig, get_config
from .core.exceptions import (
    PortfolioBenchError,
    TokenSourceMalformedError,
    TokenSourceNotFoundError,
)
from .core.models import RefreshCycleResult
from .output.formatters import JSONFormatter, TableFormatter
from .providers.price.coingecko_price import CoinGeckoPriceOracle
from .registry.metadata import KnownTokenTable
from .registry.token_registry import DeploymentFileSource, TokenRegistryClient

# Initialize app
app = typer.Typer(
    name="portfolio-bench",
    help="Compare individual vs batched token balance reads",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def _resolve_config(
    deployments_dir: Optional[Path],
    chain_id: Optional[int],
    rpc_url: Optional[str],
    metadata: Optional[Path],
) -> AppConfig:
    overrides = {
        "deployments_dir": deployments_dir,
        "chain_id": chain_id,
        "rpc_url": rpc_url,
        "metadata_path": metadata,
    }
    return replace(get_config(), **{k: v for k, v in overrides.items() if v is not None})


def _known_tokens(config: AppConfig) -> KnownTokenTable:
    if config.metadata_path:
        return KnownTokenTable.from_yaml(config.metadata_path)
    return KnownTokenTable()


DeploymentsOption = typer.Option(
    None, "--deployments-dir", help="Directory holding <chain_id>_latest.json"
)
ChainIdOption = typer.Option(None, "--chain-id", help="Chain id of the deployment record")
MetadataOption = typer.Option(None, "--metadata", help="YAML known-symbol table")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


@app.command()
def tokens(
    deployments_dir: Optional[Path] = DeploymentsOption,
    chain_id: Optional[int] = ChainIdOption,
    metadata: Optional[Path] = MetadataOption,
    as_json: bool = typer.Option(False, "--json", help="Print the token route response"),
    verbose: bool = VerboseOption,
) -> None:
    """List the tracked tokens found in the deployment record."""
    setup_logging(verbose)
    config = _resolve_config(deployments_dir, chain_id, None, metadata)

    registry = TokenRegistryClient(
        DeploymentFileSource(config.deployment_file),
        known_tokens=_known_tokens(config),
    )
    try:
        listing = registry.list_tokens()
    except TokenSourceNotFoundError as e:
        console.print(f"[yellow]No tokens found: {e.message}[/]")
        raise typer.Exit(1)
    except TokenSourceMalformedError as e:
        console.print(f"[red]Failed to load deployment data: {e.message}[/]")
        raise typer.Exit(1)

    if as_json:
        print(json.dumps(listing.to_api_response(), indent=2))
    else:
        console.print(TableFormatter().format_listing(listing))


@app.command()
def prices(
    symbols: Optional[list[str]] = typer.Argument(None, help="Symbols to price (default: all known)"),
    metadata: Optional[Path] = MetadataOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch current USD prices (falls back to static prices on failure)."""
    setup_logging(verbose)
    config = _resolve_config(None, None, None, metadata)
    known_tokens = _known_tokens(config)
    requested = [s.upper() for s in symbols] if symbols else list(known_tokens)

    async def run():
        oracle = CoinGeckoPriceOracle(
            known_tokens=known_tokens,
            api_key=config.coingecko_api_key,
            timeout=config.request_timeout,
        )
        try:
            return await oracle.get_prices(requested)
        finally:
            await oracle.aclose()

    console.print(TableFormatter().format_prices(asyncio.run(run())))


@app.command()
def compare(
    wallet: Optional[str] = typer.Option(
        None, "--wallet", "-w", help="Wallet address (default: PORTFOLIO_BENCH_WALLET)"
    ),
    rounds: int = typer.Option(1, "--rounds", "-n", min=1, help="Number of refresh cycles"),
    interval: float = typer.Option(
        0.0, "--interval", "-i", min=0.0, help="Seconds to wait between cycles"
    ),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
    save: Optional[Path] = typer.Option(None, "--save", "-s", help="Save the last result to file"),
    rpc_url: Optional[str] = typer.Option(None, "--rpc-url", help="JSON-RPC endpoint"),
    deployments_dir: Optional[Path] = DeploymentsOption,
    chain_id: Optional[int] = ChainIdOption,
    metadata: Optional[Path] = MetadataOption,
    verbose: bool = VerboseOption,
) -> None:
    """
    Run refresh cycles and compare individual vs batched balance reads.

    Examples:
        portfolio-bench compare -w 0xabc...
        portfolio-bench compare -w 0xabc... -n 5 -i 2 --output json
    """
    setup_logging(verbose)
    config = _resolve_config(deployments_dir, chain_id, rpc_url, metadata)

    wallet = wallet or config.wallet_address
    if not wallet:
        console.print("[red]No wallet address. Pass --wallet or set PORTFOLIO_BENCH_WALLET[/]")
        raise typer.Exit(1)

    output_lower = output.lower()
    if output_lower not in ("table", "json"):
        console.print(f"[red]Invalid output format: {output}[/]")
        raise typer.Exit(1)
    formatter = JSONFormatter() if output_lower == "json" else TableFormatter()
    # JSON documents own stdout
    status_console = err_console if output_lower == "json" else console

    async def run() -> list[RefreshCycleResult]:
        results = []
        async with PerformanceComparator.from_config(config, wallet=wallet) as comparator:
            listing = comparator.load_tokens()
            if listing.is_empty:
                return results
            for round_number in range(1, rounds + 1):
                result = await comparator.refresh()
                results.append(result)
                if output_lower == "table":
                    console.print(formatter.format(result))
                else:
                    print(formatter.format(result))
                if round_number < rounds and interval > 0:
                    await asyncio.sleep(interval)
        return results

    try:
        results = asyncio.run(run())
    except TokenSourceNotFoundError as e:
        console.print(f"[yellow]No tokens found: {e.message}[/]")
        raise typer.Exit(1)
    except PortfolioBenchError as e:
        console.print(f"[red]Error: {e.message}[/]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No tokens found[/]")
        raise typer.Exit(1)

    if len(results) > 1:
        improvements = [r.improvement_percent for r in results]
        status_console.print(
            f"[bold]Average improvement over {len(results)} cycles: "
            f"{sum(improvements) / len(improvements):.1f}%[/]"
        )

    if save:
        save.parent.mkdir(parents=True, exist_ok=True)
        save_path = save.with_suffix(".json" if output_lower == "json" else ".txt")
        formatter.format_to_file(results[-1], str(save_path))
        status_console.print(f"[green]Saved to {save_path}[/]")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    console.print(f"Portfolio Bench v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
