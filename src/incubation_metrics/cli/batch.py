"""Batch command: analyze every repository below a folder."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import IncubationMetricsError
from ..logging_config import setup_logging
from ..projects import analyze_projects, discover_projects
from . import app
from ._common import console, resolve_config, to_rows, write_csv


@app.command()
def batch(
    folder: Path = typer.Argument(
        ...,
        help="Folder whose subdirectories are git checkouts",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-j", help="Repositories analyzed in parallel", min=1
    ),
    time_window: Optional[int] = typer.Option(
        None, "--time-window", "-w", help="Fixed window length in days", min=1
    ),
    skip_code_metrics: bool = typer.Option(
        False, "--skip-code-metrics", help="Do not check out windows"
    ),
    output_dir: Path = typer.Option(
        Path("data"), "--output-dir", "-o", help="One <project>.csv is written per repository"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """
    Analyze each repository in FOLDER from its first to its last commit.

    [bold cyan]Examples:[/bold cyan]

      incubation-metrics batch ./repos -j 4 -o data/
    """
    logger = setup_logging(verbose=verbose, log_file=log_file)

    try:
        settings = resolve_config(
            config,
            ignore_start_end_dates=True,
            workers=workers,
            time_window=time_window,
            skip_code_metrics=skip_code_metrics,
        )
    except IncubationMetricsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    projects = discover_projects(folder)
    if not projects:
        console.print(f"[yellow]No git repositories found below[/yellow] {folder}")
        raise typer.Exit(0)

    logger.info(f"Analyzing {len(projects)} repositories")
    results = analyze_projects(projects, settings)

    table = Table(title="Batch analysis")
    table.add_column("Project", style="bold")
    table.add_column("Windows", justify="right")
    table.add_column("Result")

    failures = 0
    for result in results:
        if result.ok:
            target = output_dir / f"{result.project.name}.csv"
            write_csv(to_rows(result.records), target)
            table.add_row(result.project.name, str(len(result.records)), f"[green]{target}[/green]")
        else:
            failures += 1
            table.add_row(result.project.name, "-", f"[red]{result.error}[/red]")

    console.print(table)
    if failures:
        raise typer.Exit(1)
