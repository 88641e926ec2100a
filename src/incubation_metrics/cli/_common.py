"""Shared CLI helpers."""

import csv
import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from rich.console import Console

from ..config import AnalysisConfig, load_config

console = Console()


def resolve_config(config: Optional[Path] = None, **overrides: Any) -> AnalysisConfig:
    """Build the analysis config from a config file and CLI options.

    Boolean flags left at ``False`` do not override file settings.
    """
    cleaned = {k: v for k, v in overrides.items() if v is not None and v is not False}
    return load_config(config_file=config, **cleaned)


def to_rows(items: Iterable[Any]) -> list[dict[str, Any]]:
    rows = []
    for item in items:
        if hasattr(item, "to_dict"):
            rows.append(item.to_dict())
        elif is_dataclass(item):
            rows.append(asdict(item))
        else:
            rows.append(dict(item))
    return rows


def write_csv(rows: list[dict[str, Any]], path: Path) -> None:
    """Write ``rows`` with the union of their keys as header, first-seen order."""
    fieldnames: list[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_json(rows: list[dict[str, Any]], path: Optional[Path] = None) -> None:
    """Write ``rows`` as a JSON array to ``path``, or to stdout when None."""
    text = json.dumps(rows, indent=2, default=str)
    if path is None:
        print(text)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
