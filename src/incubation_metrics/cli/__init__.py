"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="incubation-metrics",
    help=f"Incubation Metrics {__version__} - time-windowed activity metrics from git history",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .batch import batch as _batch  # noqa: F401, E402
from .commit_files import commit_files as _commit_files  # noqa: F401, E402
from .phases import phases as _phases  # noqa: F401, E402
from .windows import windows as _windows  # noqa: F401, E402

__all__ = ["app", "console"]
