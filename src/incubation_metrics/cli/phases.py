"""Phases command: separate runs before, during and after incubation."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import IncubationMetricsError
from ..logging_config import setup_logging
from ..temporal.models import Project
from ..temporal.rollup import analyze_phases
from . import app
from ._common import console, resolve_config, to_rows, write_csv


@app.command()
def phases(
    path: Path = typer.Argument(
        ...,
        help="Path to the git repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    start: str = typer.Option(..., "--start", "-s", help="Incubation start (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", "-e", help="Incubation end (YYYY-MM-DD)"),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Project name (defaults to the directory name)"
    ),
    status: str = typer.Option("", "--status", help="Project status copied into every record"),
    force: bool = typer.Option(
        False,
        "--force",
        help="Also analyze projects without pre-incubation commits (during and post only)",
    ),
    time_window: Optional[int] = typer.Option(
        None, "--time-window", "-w", help="Fixed window length in days", min=1
    ),
    skip_code_metrics: bool = typer.Option(
        False, "--skip-code-metrics", help="Do not check out windows"
    ),
    output_dir: Path = typer.Option(
        Path("data"), "--output-dir", "-o", help="Where <project>-<phase>.csv files are written"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """
    Analyze a project's history before, during and after its incubation.

    Only repositories with commits before START are split, unless --force is given.

    [bold cyan]Examples:[/bold cyan]

      incubation-metrics phases ./repo --start 2015-03-01 --end 2017-06-30 -o data/
    """
    logger = setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        settings = resolve_config(
            config,
            time_window=time_window,
            skip_code_metrics=skip_code_metrics,
        )
        project = Project(
            name=name or path.name,
            repository_path=str(path),
            start_date=start,
            end_date=end,
            status=status,
        )
        results = analyze_phases(project, settings, force=force)

    except IncubationMetricsError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)

    if not results:
        console.print(
            f"[yellow]{project.name} has no commits before {start}; "
            "nothing to split (use --force for during/post only)[/yellow]"
        )
        return

    table = Table(title=f"{project.name} incubation phases")
    table.add_column("Phase", style="bold")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Windows", justify="right")
    table.add_column("Commits", justify="right")
    table.add_column("File")

    for phase, records in results.items():
        target = output_dir / f"{project.name}-{phase.value}.csv"
        write_csv(to_rows(records), target)
        table.add_row(
            phase.value,
            records[0].start_date if records else "-",
            records[0].end_date if records else "-",
            str(len(records)),
            str(sum(r.metrics.commit_count for r in records)),
            f"[green]{target}[/green]",
        )

    console.print(table)
