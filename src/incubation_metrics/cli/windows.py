"""Windows command: list the measurement windows of a date range."""

from typing import Optional

import typer
from rich.table import Table

from ..exceptions import ConfigurationError
from ..temporal.windows import month_labels, segment, window_month_label
from . import app
from ._common import console, write_json


@app.command()
def windows(
    start: str = typer.Option(..., "--start", "-s", help="First day (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", "-e", help="Last day (YYYY-MM-DD)"),
    time_window: Optional[int] = typer.Option(
        None,
        "--time-window",
        "-w",
        help="Fixed window length in days (default: calendar months)",
        min=1,
    ),
    json_output: bool = typer.Option(False, "--json", help="Print windows as JSON"),
):
    """
    Print the index, start and end date of every measurement window.

    [bold cyan]Examples:[/bold cyan]

      incubation-metrics windows --start 2010-01-01 --end 2010-03-05

      incubation-metrics windows -s 2022-01-01 -e 2022-01-11 -w 10
    """
    try:
        result = segment(start, end, time_window)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        rows = [
            {
                "index": w.index,
                "start_date": w.start_date.isoformat(),
                "end_date": w.end_date.isoformat(),
            }
            for w in result
        ]
        if time_window is None:
            labels = month_labels(start, end)
            for row in rows:
                row["month"] = labels[row["index"]]
        write_json(rows)
        return

    table = Table(title=f"Measurement windows {start} .. {end}")
    table.add_column("#", justify="right", style="bold")
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Days", justify="right")
    if time_window is None:
        table.add_column("Month", style="green")

    for w in result:
        cells = [str(w.index), w.start_date.isoformat(), w.end_date.isoformat(), str(w.days)]
        if time_window is None:
            cells.append(window_month_label(start, w.index))
        table.add_row(*cells)

    console.print(table)
