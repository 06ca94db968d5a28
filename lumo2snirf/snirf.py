"""
Functions related to converting LUMO data to SNIRF and writing SNIRF files.
"""

import logging
from pathlib import Path
from typing import Final

import h5py  # type: ignore
import numpy as np
import polars as pl

from . import model, topology
from .error import Lumo2SnirfError


class SnirfWriteError(Lumo2SnirfError):
    """Custom error class for SNIRF writing errors."""


log = logging.getLogger(__name__)

SPECS_FORMAT_VERSION: Final[str] = "1.1"

# event timestamps are in milliseconds since the start of the recording
EVENT_TIME_SCALE: Final[float] = 1e-3

SOURCE_OPTODES: Final[tuple[int, ...]] = (5, 6, 7)
DETECTOR_OPTODES: Final[tuple[int, ...]] = (1, 2, 3, 4)


def lumo_to_nirs(
    lumo: model.LumoFile, subject_id: str = "unknown", use_layout: bool = True
) -> model.Nirs:
    """Convert a loaded LUMO file into the SNIRF data model.

    Parameters
    ----------
    lumo : model.LumoFile
        LUMO file as returned by `lumo.read_lumo()`.
    subject_id : str, default="unknown"
        Subject identifier to store in the metadata.
    use_layout : bool, default=True
        If True and the file has a template layout, optode positions are taken
        from it. Otherwise all positions are set to 0.

    Returns
    -------
    model.Nirs
        NIRS data with one measurement per LUMO channel, in channel order.

    Notes
    -----
    - SNIRF sources are the source optodes of each node (3 per node), each
      emitting at both wavelengths. SNIRF detectors are the detector optodes
      (4 per node). Both are labelled ``N<node id>_<optode name>``, and are
      numbered in node order, then optode order.
    - Intensity is written as continuous wave amplitude (dataType 1).
    - Events become stimuli named after their mark, with zero duration.
    """
    group = lumo.enum.groups[0]
    layout = group.layout if use_layout else None
    log.info("Converting LUMO enumeration to SNIRF probe and measurement list")

    src_index: dict[tuple[int, int], int] = {}
    det_index: dict[tuple[int, int], int] = {}
    src_labels: list[str] = []
    det_labels: list[str] = []
    for node_idx, node in enumerate(group.nodes, start=1):
        for optode_idx in SOURCE_OPTODES:
            src_labels.append(f"N{node.id}_{node.optodes[optode_idx - 1].name}")
            src_index[(node_idx, optode_idx)] = len(src_labels)
        for optode_idx in DETECTOR_OPTODES:
            det_labels.append(f"N{node.id}_{node.optodes[optode_idx - 1].name}")
            det_index[(node_idx, optode_idx)] = len(det_labels)

    measurements = []
    for ch in group.channels:
        src = group.nodes[ch.src_node_idx - 1].srcs[ch.src_idx - 1]
        det = group.nodes[ch.det_node_idx - 1].dets[ch.det_idx - 1]
        measurements.append(
            model.Measurement(
                sourceIndex=src_index[(ch.src_node_idx, src.optode_idx)],
                detectorIndex=det_index[(ch.det_node_idx, det.optode_idx)],
                wavelengthIndex=topology.WAVELENGTHS.index(src.wl) + 1,
            )
        )

    data = model.Data(
        time=np.arange(lumo.data.nframes, dtype=np.float64) / lumo.data.chn_fps,
        dataTimeSeries=lumo.data.chn_dat.T.astype(np.float64),
        measurementList=measurements,
    )
    log.debug(
        "Data has %d time points and %d channels",
        len(data.time),
        data.dataTimeSeries.shape[1],
    )

    return model.Nirs(
        metadata=_extract_metadata(lumo.enum.hub, subject_id),
        data=[data],
        probe=_extract_probe(group.nodes, layout, src_labels, det_labels),
        stim=_extract_stims(lumo.events) if lumo.events is not None else None,
    )


def _extract_metadata(hub: model.Hub, subject_id: str) -> model.Metadata:
    """Compile SNIRF metadata; hub details go into additional fields."""
    additional_fields = {"ManufacturerName": "Gowerlabs", "Model": "LUMO"}
    for name, value in (
        ("HubFirmwareVersion", hub.fw_ver),
        ("HubHardwareVersion", hub.type),
        ("HubSerialNumber", hub.sn),
        ("HubHardwareUID", hub.uid),
    ):
        if value is not None:
            additional_fields[name] = str(value)
    return model.Metadata(SubjectID=subject_id, additional_fields=additional_fields)


def _extract_probe(
    nodes: tuple[model.Node, ...],
    layout: model.Layout | None,
    src_labels: list[str],
    det_labels: list[str],
) -> model.Probe:
    """Compile probe information, with optode positions from the layout if given."""
    src_pos_2d, src_pos_3d, det_pos_2d, det_pos_3d = [], [], [], []
    for node in nodes:
        dock = layout.dock(node.id) if layout is not None else None
        if layout is not None and dock is None:
            log.warning("Layout has no dock for node %d, positions set to 0", node.id)
        for optode_idx in SOURCE_OPTODES + DETECTOR_OPTODES:
            if dock is not None:
                optode = dock.optodes[optode_idx - 1]
                pos_2d, pos_3d = optode.coord_2d, optode.coord_3d
            else:
                pos_2d, pos_3d = (0.0, 0.0), (0.0, 0.0, 0.0)
            if optode_idx in SOURCE_OPTODES:
                src_pos_2d.append(pos_2d)
                src_pos_3d.append(pos_3d)
            else:
                det_pos_2d.append(pos_2d)
                det_pos_3d.append(pos_3d)

    landmark_pos, landmark_labels = None, None
    if layout is not None and layout.landmarks:
        landmark_labels = [lm.name for lm in layout.landmarks]
        landmark_pos = np.array(
            [[lm.x, lm.y, lm.z, i] for i, lm in enumerate(layout.landmarks, start=1)],
            dtype=np.float64,
        )

    probe = model.Probe(
        wavelengths=np.array(topology.WAVELENGTHS, dtype=np.float64),
        sourcePos2D=np.array(src_pos_2d, dtype=np.float64).reshape(-1, 2),
        detectorPos2D=np.array(det_pos_2d, dtype=np.float64).reshape(-1, 2),
        sourcePos3D=np.array(src_pos_3d, dtype=np.float64).reshape(-1, 3),
        detectorPos3D=np.array(det_pos_3d, dtype=np.float64).reshape(-1, 3),
        sourceLabels=src_labels,
        detectorLabels=det_labels,
        landmarkPos3D=landmark_pos,
        landmarkLabels=landmark_labels,
    )
    log.debug(
        "Probe has %d sources, %d detectors, %d landmarks",
        len(src_labels),
        len(det_labels),
        0 if landmark_labels is None else len(landmark_labels),
    )
    return probe


def _extract_stims(events: pl.DataFrame) -> list[model.Stim]:
    """Group event onsets by mark into a list of model.Stim objects."""
    onsets = events.select(
        pl.col("mark"), (pl.col("timestamp") * EVENT_TIME_SCALE).alias("onset")
    )
    stims = [
        model.Stim(
            name=mark,
            data=onsets.filter(pl.col("mark") == mark)["onset"].to_numpy(),
        )
        for mark in onsets["mark"].unique().sort()
    ]
    log.debug("Found %d stimulus types", len(stims))
    return stims


def write_snirf(nirs: model.Nirs, output_file: Path) -> None:
    """Write the NIRS data to a SNIRF file.

    Parameters
    ----------
    nirs : model.Nirs
        NIRS data model containing metadata, data, stim and probe information.
    output_file : Path
        Path to the output SNIRF file. A warning is shown if the file does not
        have a ".snirf" extension.

    Notes
    -----
    The nirs group is written non-indexed (/nirs), as some tools (e.g. MNE)
    only accept that form when there is a single group.
    """
    if output_file.suffix != ".snirf":
        log.warning("Output file doesn't have the .snirf extension: %s", output_file)

    log.debug("Writing SNIRF file: %s", output_file)
    with h5py.File(output_file, "w") as f:
        nirs_group = f.create_group("/nirs")
        f.create_dataset("formatVersion", data=str_encode(SPECS_FORMAT_VERSION))
        _write_metadata_group(nirs.metadata, nirs_group.create_group("metaDataTags"))
        _write_data_group(nirs.data[0], nirs_group.create_group("data1"))
        _write_probe_group(nirs.probe, nirs_group.create_group("probe"))
        if nirs.stim:
            _write_stim_group(nirs.stim, nirs_group)
        else:
            log.debug("No stimulus data to write")
    log.debug("SNIRF file write completed")


def str_encode(s: str) -> bytes:
    """Encode a string to UTF-8 bytes, the form SNIRF expects for string datasets."""
    return s.encode("utf-8")


def _check_group(group: h5py.Group, expected: str) -> None:
    if group.name != expected:
        log.error("Group must be at %s, got %s", expected, group.name)
        raise SnirfWriteError(f"Group must be at {expected}, got {group.name}")


def _write_metadata_group(metadata: model.Metadata, group: h5py.Group) -> None:
    """Write metadata into /nirs/metaDataTags."""
    log.info("Writing metadata entries into %s", group.name)
    _check_group(group, "/nirs/metaDataTags")
    for name in (
        "SubjectID",
        "MeasurementDate",
        "MeasurementTime",
        "LengthUnit",
        "TimeUnit",
        "FrequencyUnit",
    ):
        group.create_dataset(name, data=str_encode(getattr(metadata, name)))
    for name, text in metadata.additional_fields.items():
        group.create_dataset(name, data=str_encode(text))


def _write_data_group(data: model.Data, group: h5py.Group) -> None:
    """Write time series and measurement list into /nirs/data1."""
    log.info("Writing data entries into %s", group.name)
    _check_group(group, "/nirs/data1")

    log.debug("Writing dataTimeSeries with shape %s", data.dataTimeSeries.shape)
    group.create_dataset("time", data=data.time, compression="gzip")
    group.create_dataset(
        "dataTimeSeries", data=data.dataTimeSeries, compression="gzip"
    )
    log.debug("Writing measurementList with %d entries", len(data.measurementList))
    for i, row in enumerate(data.measurementList, start=1):
        ml = group.create_group(f"measurementList{i}")
        for name in (
            "sourceIndex",
            "detectorIndex",
            "wavelengthIndex",
            "dataType",
            "dataTypeIndex",
        ):
            ml.create_dataset(name, data=getattr(row, name), dtype="int32")


def _write_stim_group(stims: list[model.Stim], group: h5py.Group) -> None:
    """Write stimuli into /nirs/stim<i> as (onset, duration=0, amplitude=1) rows."""
    log.info("Writing stimulus entries into %s", group.name)
    _check_group(group, "/nirs")

    for i, stim in enumerate(stims, start=1):
        st = group.create_group(f"stim{i}")
        log.debug("Writing stimulus %s with %d events", stim.name, len(stim.data))
        st.create_dataset("name", data=str_encode(stim.name))
        d = np.zeros((len(stim.data), 3), dtype=np.float64)
        d[:, 0] = stim.data
        d[:, 2] = 1
        st.create_dataset("data", data=d, compression="gzip")


def _write_probe_group(probe: model.Probe, group: h5py.Group) -> None:
    """Write wavelengths, optode positions, labels and landmarks into /nirs/probe."""
    log.info("Writing probe information into %s", group.name)
    _check_group(group, "/nirs/probe")

    group.create_dataset("wavelengths", data=probe.wavelengths)
    for name in ("sourcePos2D", "detectorPos2D", "sourcePos3D", "detectorPos3D"):
        positions = getattr(probe, name)
        log.debug("Writing %s with shape %s", name, positions.shape)
        group.create_dataset(name, data=positions)

    labels = {
        "sourceLabels": probe.sourceLabels,
        "detectorLabels": probe.detectorLabels,
    }
    if probe.landmarkPos3D is not None and probe.landmarkLabels is not None:
        group.create_dataset("landmarkPos3D", data=probe.landmarkPos3D)
        labels["landmarkLabels"] = probe.landmarkLabels
    else:
        log.debug("No landmarks to write")
    for name, values in labels.items():
        group.create_dataset(
            name, data=np.array(values, dtype=h5py.string_dtype(encoding="utf-8"))
        )
