"""Commit-files command: per-file commit records, or plain commit messages."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import IncubationMetricsError
from ..logging_config import setup_logging
from ..temporal.models import Project
from ..temporal.rollup import commit_file_records, commit_messages
from . import app
from ._common import console, resolve_config, to_rows, write_csv, write_json


@app.command("commit-files")
def commit_files(
    path: Path = typer.Argument(
        ...,
        help="Path to the git repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    start: str = typer.Option("", "--start", "-s", help="First day (YYYY-MM-DD)"),
    end: str = typer.Option("", "--end", "-e", help="Last day (YYYY-MM-DD)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Project name"),
    time_window: Optional[int] = typer.Option(
        None, "--time-window", "-w", help="Fixed window length in days", min=1
    ),
    ignore_dates: bool = typer.Option(
        False, "--ignore-dates", help="Run from the first to the last commit"
    ),
    ignore_commit_message: bool = typer.Option(
        False, "--ignore-commit-message", help="Leave the commit message column empty"
    ),
    messages_only: bool = typer.Option(
        False, "--messages", help="Export one row per commit with its message instead"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write rows to a CSV file"),
    json_output: bool = typer.Option(False, "--json", help="Print rows as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
):
    """
    List, for every selected commit, the files it touched and who touched them.

    [bold cyan]Examples:[/bold cyan]

      incubation-metrics commit-files ./repo --ignore-dates -o files.csv

      incubation-metrics commit-files ./repo -s 2010-01-01 -e 2010-06-30 --messages --json
    """
    logger = setup_logging(verbose=verbose)

    try:
        settings = resolve_config(
            config, time_window=time_window, ignore_start_end_dates=ignore_dates
        )
        project = Project(
            name=name or path.name, repository_path=str(path), start_date=start, end_date=end
        )
        if messages_only:
            items = commit_messages(project, settings)
        else:
            items = commit_file_records(
                project, settings, include_messages=not ignore_commit_message
            )
    except IncubationMetricsError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rows = to_rows(items)
    if output is not None:
        write_csv(rows, output)
        console.print(f"[green]Wrote {len(rows)} rows to[/green] {output}")
    elif json_output:
        write_json(rows)
    else:
        _output_rich(rows, messages_only)


def _output_rich(rows: list[dict], messages_only: bool) -> None:
    table = Table(show_lines=False, pad_edge=True)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Commit", style="cyan")
    if messages_only:
        table.add_column("Message")
        for row in rows:
            subject = row["message"].splitlines()[0] if row["message"] else ""
            table.add_row(str(row["window_index"]), row["sha"][:8], subject)
    else:
        table.add_column("Author")
        table.add_column("File")
        table.add_column("Type", justify="center")
        table.add_column("+", justify="right", style="green")
        table.add_column("-", justify="right", style="red")
        for row in rows:
            table.add_row(
                str(row["window_index"]),
                row["commit_sha"][:8],
                row["email"],
                row["filename"],
                row["change_type"],
                str(row["lines_added"]),
                str(row["lines_deleted"]),
            )
    console.print(table)
