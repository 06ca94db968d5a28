"""
Functions related to reading the event log of a LUMO file.
"""

import logging
from pathlib import Path

import polars as pl

from .error import Lumo2SnirfError
from .tables import read_toml

log = logging.getLogger(__name__)


class EventsError(Lumo2SnirfError):
    """Custom error class for event log reading errors."""


EVENTS_SCHEMA = pl.Schema([("mark", pl.String), ("timestamp", pl.Float64)])


def read_events(file: Path, version: tuple[int, int, int]) -> pl.DataFrame:
    """Read event markers from a LUMO event file.

    Parameters
    ----------
    file : Path
        Path of the event file (TOML).
    version : tuple[int, int, int]
        LUMO file version, which determines how timestamps are stored.

    Returns
    -------
    pl.DataFrame
        One row per event with columns ``mark`` (String) and ``timestamp``
        (Float64), sorted by timestamp.

    Raises
    ------
    EventsError
        If the file has no ``events`` array, or an entry lacks a name or a
        valid timestamp.

    Notes
    -----
    Files before version 0.4.0 store timestamps as strings.
    """
    log.info("Reading events from file %s", file)
    document = read_toml(file)
    if "events" not in document:
        raise EventsError(f"Event file {file}: required field 'events' missing")
    timestamps_as_text = version < (0, 4, 0)

    rows = []
    for i, event in enumerate(document["events"]):
        try:
            timestamp = event["Timestamp"]
            if timestamps_as_text:
                timestamp = float(timestamp)
            elif not isinstance(timestamp, int | float) or isinstance(timestamp, bool):
                raise TypeError(f"timestamp must be a number, got {timestamp!r}")
            rows.append((str(event["name"]), float(timestamp)))
        except (KeyError, TypeError, ValueError) as e:
            log.exception("Error parsing event %d in %s: %s", i, file, e)
            raise EventsError(f"Event file {file}: error parsing event {i}: {e}") from e

    events = pl.DataFrame(rows, schema=EVENTS_SCHEMA, orient="row").sort(
        "timestamp", maintain_order=True
    )
    log.info("Event file contains %d entries", events.height)
    log.debug("Event marks: %s", events["mark"].unique().sort().to_list())
    return events
