"""Language allow-list used to restrict commit selection to source files.

Two files describe the allow-list:

- ``extensions.toml`` names the language types to keep::

      [languages]
      types = ["Java", "Python"]

- ``languages.json`` maps each language type to its file extensions::

      {"languages": {"Java": {"extensions": ["java"]}, ...}}

Extensions are stored without a leading dot.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

from .config import AnalysisConfig, _load_toml_file
from .exceptions import InvalidConfigError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EXTENSIONS_FILE = "extensions.toml"
DEFAULT_LANGUAGES_FILE = "languages.json"


def load_language_extensions(
    extensions_file: Optional[Path] = None,
    languages_file: Optional[Path] = None,
) -> set[str]:
    """Extensions of every language type listed in ``extensions_file``.

    Unreadable or malformed files are logged and yield an empty set. Types
    missing from the catalog contribute nothing.
    """
    extensions_file = Path(extensions_file or DEFAULT_EXTENSIONS_FILE)
    languages_file = Path(languages_file or DEFAULT_LANGUAGES_FILE)

    try:
        types = _load_toml_file(extensions_file)["languages"]["types"]
    except OSError:
        logger.error(f"Could not read file `{extensions_file}`")
        return set()
    except Exception:
        logger.error(f"Unable to load data from `{extensions_file}`")
        return set()

    try:
        catalog = json.loads(languages_file.read_text(encoding="utf-8"))["languages"]
    except OSError:
        logger.error(f"Could not read file `{languages_file}`")
        return set()
    except (ValueError, KeyError, TypeError):
        logger.error(f"Unable to load data from `{languages_file}`")
        return set()

    extensions: set[str] = set()
    for language in types:
        entry = catalog.get(language)
        if not isinstance(entry, dict):
            logger.warning(f"Language type {language!r} is not in `{languages_file}`")
            continue
        extensions.update(normalize_extensions(entry.get("extensions", [])))
    return extensions


def normalize_extensions(values: Iterable[str]) -> set[str]:
    return {v.strip().lstrip(".") for v in values if v and v.strip().lstrip(".")}


def allowed_extensions(config: AnalysisConfig) -> Optional[set[str]]:
    """The allow-list for ``config``, or None when languages are not restricted.

    Raises:
        InvalidConfigError: If restriction is on but the allow-list is empty
    """
    if not config.restrict_languages:
        return None

    extensions = normalize_extensions(config.language_extensions)
    if config.extensions_file or config.languages_file or not extensions:
        extensions |= load_language_extensions(
            Path(config.extensions_file) if config.extensions_file else None,
            Path(config.languages_file) if config.languages_file else None,
        )
    if not extensions:
        raise InvalidConfigError(
            "restrict_languages", True, "no language extensions could be loaded"
        )
    logger.info(
        "Following languages are supported and files with these extensions are "
        f"considered in the analysis: {', '.join(sorted(extensions))}"
    )
    return extensions
