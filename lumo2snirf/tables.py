"""
Helpers for reading the TOML documents of a LUMO file and accessing their fields.
"""

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .error import Lumo2SnirfError

log = logging.getLogger(__name__)


class TableError(Lumo2SnirfError):
    """A metadata document of the LUMO file cannot be decoded."""


class MissingFieldError(TableError):
    """A required field is missing from a metadata table."""


def read_toml(file: Path) -> dict[str, Any]:
    """Read and decode a TOML document.

    Parameters
    ----------
    file : Path
        Path of the TOML file.

    Returns
    -------
    dict[str, Any]
        The decoded document.

    Raises
    ------
    TableError
        If the file cannot be read or is not valid TOML.
    """
    log.debug("Reading TOML document %s", file)
    try:
        with open(file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        log.exception("Error parsing %s: %s", file, e)
        raise TableError(f"Error parsing {file}: {e}") from e


def required_field(table: Mapping[str, Any], name: str, where: str) -> Any:
    """Return ``table[name]``, raising MissingFieldError naming ``where`` if absent."""
    if not isinstance(table, Mapping):
        raise TableError(
            f"{where}: expected a table holding '{name}', got {type(table).__name__}"
        )
    if name not in table:
        raise MissingFieldError(f"{where}: required field '{name}' missing")
    return table[name]

