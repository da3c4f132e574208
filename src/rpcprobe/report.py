"""Run-end summary printed to the console."""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rpcprobe.ledger import ResultLedger
from rpcprobe.sink import FileSink


def _status_color(rate: float) -> str:
    if rate >= 90:
        return "green"
    return "yellow" if rate >= 50 else "red"


def summary_table(ledger: ResultLedger) -> Table:
    s = ledger.summary()
    table = Table(title="[bold underline bright_white]Test Summary[/]", show_header=False, expand=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total tests", str(s.total))
    table.add_row("Successful", f"[green]{s.succeeded}[/]")
    table.add_row("Failed", f"[red]{s.failed}[/]")
    table.add_row("Skipped", f"[yellow]{s.skipped}[/]")
    table.add_row("Success rate", Text(f"{s.success_rate:.2f}%", style=_status_color(s.success_rate)))
    return table


def details_table(ledger: ResultLedger) -> Table | None:
    rows = ledger.non_successes()
    if not rows:
        return None
    table = Table(
        title="[bold]Failed and Skipped Tests[/]",
        show_header=True,
        header_style="bold",
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Method", no_wrap=True)
    table.add_column("Status")
    table.add_column("Code")
    table.add_column("Error")
    table.add_column("Details", max_width=60)
    for o in rows:
        color = "yellow" if o.is_skip else "red"
        details = o.error_details if isinstance(o.error_details, str) else json.dumps(o.error_details, indent=2, default=str)
        table.add_row(o.method, o.status, str(o.error_code or ""), o.error or "", details, style=color)
    return table


def print_results(ledger: ResultLedger, sink: FileSink | None = None, console: Console | None = None) -> None:
    console = console or Console()
    console.print(summary_table(ledger))
    details = details_table(ledger)
    if details is not None:
        console.print(details)
    if sink is not None:
        console.print(Panel(
            f"Detailed results have been logged to {sink.results_path}\n"
            f"Errors have been logged to {sink.errors_path}",
            expand=False,
        ))
