"""
Loading of complete LUMO files.
"""

import dataclasses
import logging
import os
import time
from pathlib import Path

from . import model
from .enumeration import build_enumeration
from .error import Lumo2SnirfError
from .events import read_events
from .intensity import read_intensity
from .layout import read_layout
from .manifest import load_manifest
from .tables import read_toml

log = logging.getLogger(__name__)


class InsufficientMemoryError(Lumo2SnirfError):
    """The intensity data would not fit into the available memory."""


def read_lumo(lumo_dir: Path, ignore_memory: bool = False) -> model.LumoFile:
    """Read a LUMO file.

    Parameters
    ----------
    lumo_dir : Path
        Path of the LUMO file (a directory, usually with a ``.lumo`` extension).
    ignore_memory : bool, default=False
        If True, load the intensity data even if it is larger than the
        available physical memory.

    Returns
    -------
    model.LumoFile
        The canonical enumeration of the system (with the template layout
        attached to its group, if the file has one), the intensity data, and
        the event markers (None if the file has no event log).

    Raises
    ------
    Lumo2SnirfError
        Or one of its subclasses, if the file is invalid or unsupported.
    InsufficientMemoryError
        If the intensity data is larger than the available memory and
        ``ignore_memory`` is False.

    Notes
    -----
    Channels are described in node-local indexing:
    ``(src_node_idx, src_idx, det_node_idx, det_idx)``. For example, the
    wavelength of the source of channel ``ch`` is found as::

        group = lumo.enum.groups[0]
        node = group.nodes[ch.src_node_idx - 1]
        wl = node.srcs[ch.src_idx - 1].wl

    and the position of its optode from the layout as::

        optode_idx = node.srcs[ch.src_idx - 1].optode_idx
        group.layout.dock(node.id).optodes[optode_idx - 1].coord_3d
    """
    started = time.perf_counter()
    manifest = load_manifest(lumo_dir)

    hardware_file = lumo_dir / manifest.hardware_file
    recording_file = lumo_dir / manifest.recording_file
    enum, params = build_enumeration(
        read_toml(hardware_file),
        read_toml(recording_file),
        where=f"LUMO file ({lumo_dir})",
    )

    events = None
    if manifest.event_file is not None:
        events = read_events(lumo_dir / manifest.event_file, manifest.version)

    if manifest.layout_file is not None:
        layout = read_layout(lumo_dir / manifest.layout_file)
        group = dataclasses.replace(enum.groups[0], layout=layout)
        enum = dataclasses.replace(enum, groups=(group,))
    else:
        log.warning(
            "The LUMO file %s does not contain an embedded template layout, "
            "optode positions are not available",
            lumo_dir,
        )

    check_memory(params, ignore_memory)
    data = read_intensity(
        [lumo_dir / name for name in manifest.intensity_files], params
    )

    log.info("LUMO file loaded in %.1fs", time.perf_counter() - started)
    return model.LumoFile(enum=enum, data=data, events=events)


def check_memory(params: model.DataParams, ignore_memory: bool = False) -> None:
    """Check that the intensity matrix fits into the available physical memory.

    Raises
    ------
    InsufficientMemoryError
        If it does not fit and ``ignore_memory`` is False.
    """
    required = params.n_chans * params.n_frames * 4
    available = available_memory()
    log.debug(
        "Intensity data requires %.1f MiB, available %s",
        required / 2**20,
        "unknown" if available is None else f"{available / 2**20:.1f} MiB",
    )
    if available is None:
        log.warning("Cannot determine available memory, skipping memory check")
        return
    if required >= available:
        if ignore_memory:
            log.warning(
                "Intensity data (%.1f MiB) exceeds available memory (%.1f MiB)",
                required / 2**20,
                available / 2**20,
            )
            return
        raise InsufficientMemoryError(
            f"Loading intensity data ({required / 2**20:.1f} MiB) will exceed available "
            f"system memory ({available / 2**20:.1f} MiB). Use ignore_memory to load "
            "anyway, but performance may be impacted."
        )


def available_memory() -> int | None:
    """Return the available physical memory in bytes, or None if unknown."""
    try:
        return os.sysconf("SC_AVPHYS_PAGES") * os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return None
