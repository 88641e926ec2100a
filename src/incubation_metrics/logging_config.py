"""
Logging setup for incubation-metrics runs.

The console gets rich-formatted records at the level chosen on the command
line. An optional log file always keeps the INFO trail of the run (window
progress, dropped commits, failed checkouts), tagged with the worker thread
so interleaved multi-repository runs can be told apart.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "incubation_metrics"

FILE_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def console_level(verbose: bool = False, quiet: bool = False) -> int:
    """quiet wins over verbose; the default shows warnings and errors."""
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG
    return logging.WARNING


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route log records to a rich stderr console and, optionally, a file.

    Calling it again replaces the handlers of the previous call, so each
    CLI invocation starts from a clean configuration.

    Args:
        verbose: Enable DEBUG level logging (and locals in tracebacks)
        quiet: Only show errors on the console
        log_file: Append records of INFO and above (DEBUG when verbose) here

    Returns:
        The ``incubation_metrics`` logger
    """
    level = console_level(verbose, quiet)

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        # commit messages and paths may contain [brackets]
        markup=False,
        show_time=True,
        show_path=verbose,
    )
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    logger_level = level
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        handlers.append(file_handler)
        logger_level = min(level, file_handler.level)

    logging.basicConfig(
        level=logger_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logger_level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger below the ``incubation_metrics`` namespace.

    Args:
        name: Module name (e.g. 'incubation_metrics.temporal.rollup');
              other names are prefixed, None gives the package logger
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
