"""
Shared fixtures for tests.

LUMO files are synthesised in ``tmp_path``: metadata as TOML text, the layout
as JSON, and intensity chunks as binary files. Global indices are assigned in
file order of the nodes (3 global sources and 4 global detectors per node),
while the canonical enumeration sorts nodes by ID, so the default node order
``(2, 1)`` exercises the global -> local translation.
"""

import json
import struct

import numpy as np
import pytest

# hardware source id -> (description, source optode offset 0-2, wavelength slot)
SOURCES = {
    1: ("SRCA_735nm", 0, 1),
    2: ("SRCA_850nm", 0, 2),
    4: ("SRCB_735nm", 1, 1),
    8: ("SRCB_850nm", 1, 2),
    16: ("SRCC_735nm", 2, 1),
    32: ("SRCC_850nm", 2, 2),
}

DEFAULT_NODE_IDS = (2, 1)

# (global source, global detector, wavelength slot)
DEFAULT_CHANNELS = [(1, 1, 1), (4, 8, 2), (2, 5, 1), (6, 3, 2)]


def hardware_table(node_ids=DEFAULT_NODE_IDS, n_groups=1):
    """Decoded hardware description with nodes in the given (file) order."""
    nodes = []
    for k, node_id in enumerate(node_ids):
        sources = [
            {
                "id": sid,
                "description": desc,
                "Source_power": 10.0 * sid,
                "group_location_index": 3 * k + offset + 1,
            }
            for sid, (desc, offset, _) in SOURCES.items()
        ]
        detectors = [
            {
                "id": did,
                "description": f"ADC Detector Channel {did}",
                "group_location_index": 4 * k + did + 1,
            }
            for did in range(4)
        ]
        nodes.append(
            {
                "node_id": node_id,
                "tile_uid": 1000 + node_id,
                "revision_id": 3,
                "firmware_version": "2.0.1",
                "Source": sources,
                "Detector": detectors,
            }
        )
    groups = [{"uid": 42 + i, "Node": nodes} for i in range(n_groups)]
    return {
        "Hub": {
            "firmware_version": "1.2.3",
            "hardware_version": "B",
            "hub_serial_number": 1234,
            "hardware_uid": "0a0b0c",
            "Group": groups,
        }
    }


def recording_table(
    node_ids=DEFAULT_NODE_IDS, channels=DEFAULT_CHANNELS, n_frames=5, framerate=10.0
):
    """Decoded recording descriptor matching `hardware_table`."""
    return {
        "variables": {
            "nodes": list(node_ids),
            "n_srcs": 3 * len(node_ids),
            "n_dets": 4 * len(node_ids),
            "wavelength": [735, 850],
            "n_chans": len(channels),
            "chans_list": [i for ch in channels for i in ch],
            "chans_list_act": [0] * len(channels),
            "t_0": 0,
            "t_last": n_frames,
            "framerate": framerate,
            "number_of_frames": n_frames,
        }
    }


def layout_document(node_ids=DEFAULT_NODE_IDS):
    """Layout JSON document; optode i of dock n sits at x = 10 n + i."""
    optode_ids = ["optode_1", "optode_2", "optode_3", "optode_4"]
    optode_ids += ["optode_a", "optode_b", "optode_c"]
    docks = [
        {
            "dock_id": f"dock_{node_id}",
            # listed in reverse to check that optodes are placed by id
            "optodes": [
                {
                    "optode_id": optode_id,
                    "coordinates_2d": {"x": 10.0 * node_id + i, "y": 1.0},
                    "coordinates_3d": {"x": 10.0 * node_id + i, "y": 2.0, "z": 3.0},
                }
                for i, optode_id in reversed(list(enumerate(optode_ids, start=1)))
            ],
        }
        for node_id in node_ids
    ]
    return {
        "group_uid": 42,
        "dimensions": {
            "dimensions_2d": {"width": 100, "height": 100},
            "dimensions_3d": {"width": 100, "height": 100, "depth": 100},
        },
        "Landmarks": [
            {"name": "Nasion", "x": 0.0, "y": 90.0, "z": 0.0},
            {"name": "Inion", "x": 0.0, "y": -90.0, "z": 0.0},
        ],
        "docks": docks,
    }


def to_toml(table, path=()):
    """Serialise nested dicts, lists of dicts and scalars as TOML text."""

    def value(v):
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, str):
            return json.dumps(v)
        if isinstance(v, list):
            return "[" + ", ".join(value(x) for x in v) + "]"
        return repr(v)

    def is_table_array(v):
        return isinstance(v, list) and v and all(isinstance(x, dict) for x in v)

    lines = [
        f"{k} = {value(v)}"
        for k, v in table.items()
        if not isinstance(v, dict) and not is_table_array(v)
    ]
    for k, v in table.items():
        dotted = ".".join(path + (k,))
        if isinstance(v, dict):
            lines += ["", f"[{dotted}]", to_toml(v, path + (k,))]
        elif is_table_array(v):
            for item in v:
                lines += ["", f"[[{dotted}]]", to_toml(item, path + (k,))]
    return "\n".join(lines)


def chunk_bytes(
    data,
    final=True,
    magic=0x92,
    version=(0, 1, 0),
    big_endian=False,
    n_chans=None,
    n_frames=None,
):
    """Binary intensity chunk holding ``data`` (channels x frames)."""
    data = np.asarray(data, dtype=np.float32)
    header = struct.pack(
        "<B3B4xQQ20xBB2x",
        magic,
        *version,
        data.shape[0] if n_chans is None else n_chans,
        data.shape[1] if n_frames is None else n_frames,
        0 if final else 1,
        1 if big_endian else 0,
    )
    assert len(header) == 48
    return header + data.T.astype("<f4").tobytes()


def intensity_pattern(n_chans, n_frames):
    """Distinct value per channel and frame: 100 * channel + frame."""
    return (
        100 * np.arange(n_chans, dtype=np.float32)[:, None]
        + np.arange(n_frames, dtype=np.float32)[None, :]
    )


def write_lumo_file(
    directory,
    version="0.4.0",
    node_ids=DEFAULT_NODE_IDS,
    channels=DEFAULT_CHANNELS,
    chunk_frames=(3, 2),
    n_frames=None,
    with_layout=True,
    with_events=True,
):
    """Write a complete LUMO file and return the expected intensity matrix."""
    directory.mkdir()
    n_frames = sum(chunk_frames) if n_frames is None else n_frames
    expected = intensity_pattern(len(channels), sum(chunk_frames))

    recording_key = "sd_file" if version.split(".")[1] == "0" else "recordingdata_file"
    file_names = {"hardware_file": "hardware.toml", recording_key: "recording.toml"}
    if with_layout:
        file_names["layout_file"] = "layout.json"
        (directory / "layout.json").write_text(
            json.dumps(layout_document(node_ids)), encoding="utf-8"
        )
    if with_events:
        file_names["event_file"] = "events.toml"
        as_text = tuple(map(int, version.split("."))) < (0, 4, 0)
        events = [
            {"name": "task", "Timestamp": "2500.0" if as_text else 2500.0},
            {"name": "start", "Timestamp": "1000.0" if as_text else 1000.0},
            {"name": "task", "Timestamp": "4000.0" if as_text else 4000.0},
        ]
        (directory / "events.toml").write_text(to_toml({"events": events}))

    (directory / "hardware.toml").write_text(to_toml(hardware_table(node_ids)))
    (directory / "recording.toml").write_text(
        to_toml(recording_table(node_ids, channels, n_frames=n_frames))
    )

    # listed out of chronological order, chunk i starts at 10 * i
    intensity_files = []
    offset = 0
    for i, nf in enumerate(chunk_frames):
        name = f"{i}.bin"
        (directory / name).write_bytes(
            chunk_bytes(
                expected[:, offset : offset + nf], final=i == len(chunk_frames) - 1
            )
        )
        intensity_files.append(
            {"file_name": name, "time_range": [10.0 * i, 10.0 * i + 9]}
        )
        offset += nf

    metadata = {
        "lumo_file_version": version,
        "file_names": file_names,
        "intensity_files": list(reversed(intensity_files)),
    }
    (directory / "metadata.toml").write_text(to_toml(metadata))
    return expected


@pytest.fixture(name="lumo_path")
def fixture_lumo_path(tmp_path):
    """Complete LUMO file with layout, events and two intensity chunks."""
    path = tmp_path / "recording.lumo"
    write_lumo_file(path)
    return path


@pytest.fixture(name="hardware")
def fixture_hardware():
    return hardware_table()


@pytest.fixture(name="recording")
def fixture_recording():
    return recording_table()
