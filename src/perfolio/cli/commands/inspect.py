"""Document inspection command."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from perfolio.cli.commands.common import load_state
from perfolio.ingestion import summarize

console = Console()


@click.command("inspect")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--securities", "-s", "show_securities", is_flag=True, help="List every security")
def inspect_command(document: Path, show_securities: bool):
    """
    Summarize an exported portfolio document.

    Shows entity counts, transactions per type, taxonomies and the
    transaction date span.

    \b
    Examples:
        perfolio inspect portfolio.xml
        perfolio inspect portfolio.xml --securities
    """
    state = load_state(document, console)
    summary = summarize(state)

    table = Table(title=f"Portfolio Document: {document.name}", show_header=True, header_style="bold cyan")
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Base currency", summary.base_currency)
    table.add_row("Securities", f"{summary.securities} ({summary.securities_with_prices} with prices)")
    table.add_row("Accounts", str(summary.accounts))
    table.add_row("Portfolios", str(summary.portfolios))
    table.add_row("Transactions", str(summary.transactions))
    if summary.first_transaction and summary.last_transaction:
        table.add_row("Date span", f"{summary.first_transaction} → {summary.last_transaction}")
    table.add_row("Taxonomies", ", ".join(summary.taxonomies) or "[dim]none[/dim]")
    if summary.unresolved_security_references:
        table.add_row("Unresolved references", f"[yellow]{summary.unresolved_security_references}[/yellow]")

    console.print(table)

    if summary.transactions_by_type:
        types_table = Table(title="Transactions by Type", show_header=True, header_style="bold cyan")
        types_table.add_column("Type", style="green")
        types_table.add_column("Count", justify="right")
        for tx_type, count in summary.transactions_by_type.items():
            types_table.add_row(tx_type, str(count))
        console.print(types_table)

    if show_securities:
        securities_table = Table(title="Securities", show_header=True, header_style="bold cyan")
        securities_table.add_column("Name", style="green")
        securities_table.add_column("ISIN", style="cyan")
        securities_table.add_column("Ticker", style="yellow")
        securities_table.add_column("Prices", justify="right")
        securities_table.add_column("Categories", style="magenta")
        for security in state.securities.values():
            categories = state.security_taxonomy_map.get(security.isin, ()) if security.isin else ()
            securities_table.add_row(
                security.name,
                security.isin or "-",
                security.ticker_symbol or "-",
                str(len(security.prices)),
                ", ".join(node.name for node in categories) or "-",
            )
        console.print(securities_table)
