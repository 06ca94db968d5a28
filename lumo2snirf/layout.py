"""
Functions related to reading the template layout embedded in a LUMO file.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

from . import model, topology
from .error import Lumo2SnirfError

log = logging.getLogger(__name__)


class LayoutError(Lumo2SnirfError):
    """Custom error class for layout-related issues."""


# layout optode id -> (optode index, name)
OPTODE_IDS: dict[str, tuple[int, str]] = {
    "optode_1": (1, "1"),
    "optode_2": (2, "2"),
    "optode_3": (3, "3"),
    "optode_4": (4, "4"),
    "optode_a": (5, "A"),
    "optode_b": (6, "B"),
    "optode_c": (7, "C"),
}

DOCK_ID_PATTERN = re.compile(r"^dock_(?P<number>\d+)$")


def read_layout(file: Path) -> model.Layout:
    """
    Read a template layout from file.

    Parameters
    ----------
    file : Path
        Path pointing to the layout file (JSON).

    Returns
    -------
    model.Layout
        Layout with docks sorted by dock number and optodes sorted by optode index.

    Raises
    ------
    LayoutError
        If the file cannot be parsed or does not describe a valid layout.

    Notes
    -----
    Docks are linked to nodes of the enumeration by number: dock ``dock_<n>``
    holds the node with ID n. The landmarks key is matched case-insensitively,
    as its capitalisation varies between files.
    """
    log.debug("Reading layout file: %s", file)
    try:
        with open(file, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        log.exception("Failed to read layout file %s: %s", file, e)
        raise LayoutError(f"Failed to read layout file {file}: {e}") from e

    try:
        group_uid = raw["group_uid"]
        dims_2d = raw["dimensions"]["dimensions_2d"]
        dims_3d = raw["dimensions"]["dimensions_3d"]
        landmarks = tuple(
            model.Landmark(
                name=str(lm["name"]),
                x=float(lm["x"]),
                y=float(lm["y"]),
                z=float(lm["z"]),
            )
            for lm in _field_ci(raw, "landmarks")
        )
        docks = sorted(
            (_read_dock(dock) for dock in raw["docks"]), key=lambda dock: dock.id
        )
    except (KeyError, TypeError, ValueError) as e:
        log.exception("Failed to parse layout file %s: %s", file, e)
        raise LayoutError(
            f"Error parsing layout structure from file {file}: {e!r}"
        ) from e

    dock_ids = [dock.id for dock in docks]
    if len(set(dock_ids)) != len(dock_ids):
        raise LayoutError(f"Duplicate dock ids in layout file {file}: {dock_ids}")

    layout = model.Layout(
        uid=group_uid,
        dims_2d=dims_2d,
        dims_3d=dims_3d,
        landmarks=landmarks,
        docks=tuple(docks),
    )
    log.info(
        "Layout (group %s) contains %d docks, %d optodes",
        group_uid,
        len(docks),
        len(docks) * topology.N_OPTODES,
    )
    return layout


def _field_ci(raw: dict[str, Any], name: str) -> Any:
    """Get a required field, matching its name case-insensitively."""
    for key, value in raw.items():
        if key.lower() == name:
            return value
    raise KeyError(name)


def _read_dock(raw: dict[str, Any]) -> model.Dock:
    """Translate a dock of the layout file, placing its optodes by index."""
    match = DOCK_ID_PATTERN.match(raw["dock_id"])
    if match is None:
        raise ValueError(f"invalid dock id {raw['dock_id']!r}")
    raw_optodes = raw["optodes"]
    if len(raw_optodes) != topology.N_OPTODES:
        raise ValueError(
            f"dock {raw['dock_id']} has {len(raw_optodes)} optodes, "
            f"expected {topology.N_OPTODES}"
        )

    optodes: list[model.LayoutOptode | None] = [None] * topology.N_OPTODES
    for raw_optode in raw_optodes:
        optode_id = raw_optode["optode_id"]
        if optode_id not in OPTODE_IDS:
            raise ValueError(f"dock {raw['dock_id']}: invalid optode id {optode_id!r}")
        idx, name = OPTODE_IDS[optode_id]
        if optodes[idx - 1] is not None:
            raise ValueError(
                f"dock {raw['dock_id']}: duplicate optode id {optode_id!r}"
            )
        c2 = raw_optode["coordinates_2d"]
        c3 = raw_optode["coordinates_3d"]
        optodes[idx - 1] = model.LayoutOptode(
            name=name,
            coord_2d=(float(c2["x"]), float(c2["y"])),
            coord_3d=(float(c3["x"]), float(c3["y"]), float(c3["z"])),
        )

    return model.Dock(
        id=int(match["number"]),
        optodes=tuple(o for o in optodes if o is not None),
    )
