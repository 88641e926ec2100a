"""Analyze command: window metrics for a single repository."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import IncubationMetricsError
from ..logging_config import setup_logging
from ..statistics import summarize
from ..temporal.models import Project, WindowRecord
from ..temporal.rollup import analyze_repository
from . import app
from ._common import console, resolve_config, to_rows, write_csv, write_json


@app.command()
def analyze(
    path: Path = typer.Argument(
        ...,
        help="Path to the git repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    start: str = typer.Option("", "--start", "-s", help="First day of the analysis (YYYY-MM-DD)"),
    end: str = typer.Option("", "--end", "-e", help="Last day of the analysis (YYYY-MM-DD)"),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Project name (defaults to the directory name)"
    ),
    status: str = typer.Option("", "--status", help="Project status copied into every record"),
    time_window: Optional[int] = typer.Option(
        None,
        "--time-window",
        "-w",
        help="Fixed window length in days (default: calendar months)",
        min=1,
    ),
    ignore_dates: bool = typer.Option(
        False,
        "--ignore-dates",
        help="Run from the first to the last commit, ignoring --start/--end",
    ),
    restrict_languages: bool = typer.Option(
        False,
        "--restrict-languages",
        help="Keep only commits touching files of the configured languages",
    ),
    skip_code_metrics: bool = typer.Option(
        False,
        "--skip-code-metrics",
        help="Do not check out windows or collect source-tree metrics",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write one CSV row per window to this file"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print records as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """
    Compute per-window activity metrics for one repository.

    [bold cyan]Examples:[/bold cyan]

      incubation-metrics analyze ./repo --start 2010-01-01 --end 2010-12-31

      incubation-metrics analyze ./repo --ignore-dates --time-window 30 -o out.csv
    """
    logger = setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        settings = resolve_config(
            config,
            time_window=time_window,
            ignore_start_end_dates=ignore_dates,
            restrict_languages=restrict_languages,
            skip_code_metrics=skip_code_metrics,
        )
        project = Project(
            name=name or path.name,
            repository_path=str(path),
            start_date=start,
            end_date=end,
            status=status,
        )
        records = analyze_repository(project, settings)

    except IncubationMetricsError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    rows = to_rows(records)
    if output is not None:
        write_csv(rows, output)
        console.print(f"[green]Wrote {len(rows)} windows to[/green] {output}")

    if json_output:
        write_json(rows)
    else:
        _output_rich(project.name, records)


def _output_rich(project: str, records: list[WindowRecord]) -> None:
    table = Table(title=f"{project} - measurement windows", show_lines=False, pad_edge=True)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Commits", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("+Lines", justify="right", style="green")
    table.add_column("-Lines", justify="right", style="red")
    table.add_column("Files A/D/M/R", justify="right")
    table.add_column("Authors", justify="right")
    table.add_column("Minor/Major", justify="right")
    table.add_column("New", justify="right", style="yellow")

    for r in records:
        m = r.metrics
        style = None if r.active else "dim"
        table.add_row(
            str(r.window.index),
            r.window.start_date.isoformat(),
            r.window.end_date.isoformat(),
            str(m.commit_count),
            str(m.active_days),
            str(m.added_lines),
            str(m.deleted_lines),
            f"{m.files_added}/{m.files_deleted}/{m.files_modified}/{m.files_renamed}",
            str(m.authors),
            f"{m.minor_contributors}/{m.major_contributors}",
            str(m.new_contributors),
            style=style,
        )

    summary = summarize(records)
    commits = summary.get("commit_count")
    console.print()
    console.print(table)
    console.print(
        f"[bold]{summary.windows}[/bold] windows, "
        f"[bold]{summary.active_windows}[/bold] active ({summary.active_share:.0%}), "
        f"{commits.total:.0f} commits, median {commits.median:.1f} per window"
    )
    console.print()
