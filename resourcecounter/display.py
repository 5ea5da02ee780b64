"""Rich rendering of run results."""
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from resourcecounter.models.resource import Resource, WorkerStats


def render_worker_stats(stats: List[WorkerStats], console: Optional[Console] = None) -> Table:
    """Print one row per worker and return the table."""
    console = console or Console()

    table = Table(
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        title="Workers",
    )
    table.add_column("Worker", justify="right")
    table.add_column("Writes", justify="right")
    table.add_column("Read errs", justify="right")
    table.add_column("Write errs", justify="right")
    table.add_column("Conflicts", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Elapsed", justify="right")

    for s in stats:
        writes = str(s.writes) if s.completed else f"[yellow]{s.writes} (stopped)[/yellow]"
        table.add_row(
            str(s.worker_id),
            writes,
            str(s.read_errors),
            str(s.write_errors),
            str(s.conflicts),
            str(s.attempts),
            f"{s.elapsed:.3f}s",
        )

    console.print(table)
    return table


def render_final_state(resource: Resource, expected: Optional[int] = None, console: Optional[Console] = None) -> Table:
    """
    Print the final record. When ``expected`` is given, also show how many
    increments were lost (expected minus stored num_calls).
    """
    console = console or Console()

    table = Table(show_header=False, box=box.ROUNDED, title="Final state")
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("ResourceID", resource.resource_id)
    table.add_row("AccountID", resource.account_id)
    table.add_row("Status", resource.status)
    table.add_row("Num calls", str(resource.num_calls))

    if expected is not None:
        lost = expected - resource.num_calls
        table.add_row("Expected", str(expected))
        table.add_row("Lost updates", f"[bold red]{lost}[/bold red]" if lost > 0 else f"[green]{lost}[/green]")

    console.print(table)
    return table
