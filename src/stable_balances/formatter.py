"""Rich console formatter for balance query results."""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .domain import BalanceResponse


def _truncate_address(address: str) -> str:
    """Truncate address for display."""
    return f"{address[:10]}...{address[-4:]}"


def format_balances_table(
    wallet_address: str, response: BalanceResponse, console: Console | None = None
) -> None:
    """Print the ranked balances and a summary panel to the console.

    Args:
        wallet_address: Address the balances belong to
        response: Query result to render
        console: Console to print to, defaults to stdout
    """
    console = console or Console()
    result = response.result

    summary_table = Table(show_header=False, box=None, padding=(0, 1))
    summary_table.add_column("Key", style="dim")
    summary_table.add_column("Value", style="green")
    summary_table.add_row("Wallet", _truncate_address(wallet_address))
    summary_table.add_row("Total", f"${result.total_usd_value}")
    summary_table.add_row("Assets", str(len(result.assets)))
    summary_table.add_row("Generated", result.timestamp)
    if response.cached:
        summary_table.add_row(
            "Cache",
            f"cached {response.cache_age}s ago, refresh in {response.next_refresh_in}s",
        )
    else:
        summary_table.add_row("Cache", f"fresh, cached for {response.next_refresh_in}s")

    if result.assets:
        assets_table = Table(show_header=True, header_style="bold")
        assets_table.add_column("Chain")
        assets_table.add_column("Token")
        assets_table.add_column("Balance", justify="right")
        assets_table.add_column("USD", justify="right", style="green")
        assets_table.add_column("Contract", style="dim")
        for asset in result.assets:
            assets_table.add_row(
                asset.chain.name,
                asset.symbol,
                asset.balance,
                f"${asset.balance_usd}",
                _truncate_address(asset.token_address),
            )
        body = assets_table
    else:
        body = Text("No stablecoins found", style="yellow")

    console.print(
        Panel(
            Group(summary_table, Text(""), body),
            title="[bold]Stablecoin Balances[/]",
            border_style="blue",
        )
    )
