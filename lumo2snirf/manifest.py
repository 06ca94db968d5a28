"""
Validation of the LUMO file container.

A LUMO file is a directory holding a ``metadata.toml`` document, which names
the other files of the container: the hardware description, the recording
descriptor, the binary intensity chunks, and the optional layout, event and
log files.
"""

import logging
from pathlib import Path
from typing import Final

from . import model
from .tables import TableError, read_toml, required_field

log = logging.getLogger(__name__)


class ManifestError(TableError):
    """The LUMO file container is invalid or unsupported."""


METADATA_FILE: Final[str] = "metadata.toml"

KNOWN_VERSIONS: Final[frozenset[tuple[int, int, int]]] = frozenset(
    {(0, 0, 1), (0, 1, 0), (0, 1, 1), (0, 2, 0), (0, 3, 0), (0, 4, 0)}
)


def load_manifest(lumo_dir: Path) -> model.FileManifest:
    """Validate a LUMO file and describe its contents.

    Parameters
    ----------
    lumo_dir : Path
        Path to the LUMO file (a directory).

    Returns
    -------
    model.FileManifest
        Container version and the names of all referenced files. Intensity
        files are sorted by the start of their time range.

    Raises
    ------
    ManifestError
        If the directory or the metadata document is missing, the version is
        not supported, a required entry is absent, a referenced file does not
        exist, or there are no intensity files.
    """
    log.info("Loading LUMO file %s", lumo_dir)
    if not lumo_dir.is_dir():
        raise ManifestError(f"The specified LUMO file ({lumo_dir}) cannot be found")

    metadata_file = lumo_dir / METADATA_FILE
    if not metadata_file.is_file():
        raise ManifestError(
            f"LUMO file ({lumo_dir}) invalid: {METADATA_FILE} not found"
        )
    metadata = read_toml(metadata_file)

    version = _parse_version(
        required_field(metadata, "lumo_file_version", str(metadata_file)), lumo_dir
    )
    log.info("LUMO file (%s): version %d.%d.%d", lumo_dir, *version)

    file_names = required_field(metadata, "file_names", str(metadata_file))
    hardware_file = required_field(file_names, "hardware_file", str(metadata_file))
    # Before 0.1.0 the recording descriptor was known as the 'sd' file
    recording_key = "sd_file" if version[1] < 1 else "recordingdata_file"
    recording_file = required_field(file_names, recording_key, str(metadata_file))

    optional_files = {}
    for key, what in (
        ("log_file", "log information"),
        ("layout_file", "cap layout information"),
        ("event_file", "event information"),
    ):
        optional_files[key] = file_names.get(key) or None
        if optional_files[key] is None:
            log.info("LUMO file (%s) does not contain %s", lumo_dir, what)

    for what, name in (
        ("recording", recording_file),
        ("hardware", hardware_file),
        ("log", optional_files["log_file"]),
        ("layout", optional_files["layout_file"]),
        ("event", optional_files["event_file"]),
    ):
        if name is not None and not (lumo_dir / name).is_file():
            raise ManifestError(
                f"LUMO file ({lumo_dir}) invalid: {what} file {name} not found"
            )

    intensity_files = _intensity_files(metadata, lumo_dir)

    manifest = model.FileManifest(
        path=lumo_dir,
        version=version,
        hardware_file=hardware_file,
        recording_file=recording_file,
        intensity_files=intensity_files,
        **optional_files,
    )
    log.debug("File manifest: %s", manifest)
    return manifest


def _parse_version(version_str: str, lumo_dir: Path) -> tuple[int, int, int]:
    """Parse an "a.b.c" version string and check that it is supported."""
    try:
        major, minor, patch = (int(x) for x in str(version_str).split("."))
    except ValueError as e:
        raise ManifestError(
            f"LUMO file ({lumo_dir}): error parsing file version number '{version_str}'"
        ) from e
    version = (major, minor, patch)
    if version not in KNOWN_VERSIONS:
        raise ManifestError(
            f"LUMO file ({lumo_dir}): version {major}.{minor}.{patch} is not supported"
        )
    return version


def _intensity_files(metadata: dict, lumo_dir: Path) -> tuple[str, ...]:
    """Return the names of the intensity files, sorted by start time."""
    entries = metadata.get("intensity_files")
    if not entries:
        raise ManifestError(
            f"LUMO file ({lumo_dir}) does not contain any channel intensity measurements"
        )

    chunks: list[tuple[float, str]] = []
    for i, entry in enumerate(entries):
        where = f"{lumo_dir / METADATA_FILE} intensity_files[{i}]"
        name = required_field(entry, "file_name", where)
        time_range = required_field(entry, "time_range", where)
        if not isinstance(time_range, list) or len(time_range) < 1:
            raise ManifestError(f"{where}: invalid time_range {time_range!r}")
        if not (lumo_dir / name).is_file():
            raise ManifestError(
                f"LUMO file ({lumo_dir}) invalid: linked intensity file {name} not found"
            )
        chunks.append((time_range[0], name))

    # stable sort: chunks with equal start times keep their listed order
    chunks.sort(key=lambda chunk: chunk[0])
    log.debug("Intensity files in chronological order: %s", [c[1] for c in chunks])
    return tuple(name for _, name in chunks)
