"""
Data model definitions for LUMO --> SNIRF conversion.

The first part describes a LUMO file in its canonical form: a node-local
enumeration of the hardware (hub, groups, nodes, sources, detectors, optodes
and channels), the channel intensity data, and the template layout.

The second part follows the SNIRF specification v1.1.
See https://github.com/fNIRS/snirf/blob/v1.1/snirf_specification.md for details.
"""

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import polars as pl

###################
# LUMO enumeration
###################


@dataclass(slots=True, frozen=True)
class Hub:
    """
    The LUMO Hub used for the recording.

    Fields are None where the hardware file holds the "absent" sentinel
    (empty string, or -1 for the serial number).

    Attributes
    ----------
    fw_ver : str or None
        Hub firmware version.
    type : str or None
        Hub hardware version.
    sn : int or None
        Hub serial number.
    uid : str or None
        Hub hardware UID.
    """

    fw_ver: str | None = None
    type: str | None = None
    sn: int | None = None
    uid: str | None = None


@dataclass(slots=True, frozen=True)
class Source:
    """
    A single-wavelength emitter on a node.

    Attributes
    ----------
    wl : int
        Wavelength in nm (735 or 850).
    optode_idx : int
        Index (1-7) of the optode hosting the source.
    power : float
        Source power as reported by the hardware file.
    """

    wl: int
    optode_idx: int
    power: float


@dataclass(slots=True, frozen=True)
class Detector:
    """
    A detector on a node.

    Attributes
    ----------
    optode_idx : int
        Index (1-7) of the optode hosting the detector.
    """

    optode_idx: int


@dataclass(slots=True, frozen=True)
class Optode:
    """
    A physical connector position on a node.

    Attributes
    ----------
    name : str
        '0'-'3' for detector optodes, 'A'-'C' for source optodes.
    type : str
        'D' (detector) or 'S' (source).
    """

    name: str
    type: str


@dataclass(slots=True, frozen=True)
class Node:
    """
    A LUMO tile.

    Attributes
    ----------
    id : int
        Node ID, which links the node to a dock of the template layout.
    uid : int or str
        Tile hardware UID.
    revision : int
        Tile hardware revision.
    fw_ver : str
        Tile firmware version.
    srcs : tuple[Source, ...]
        The 6 sources, position i holds node-local source index i + 1.
    dets : tuple[Detector, ...]
        The 4 detectors, position i holds node-local detector index i + 1.
    optodes : tuple[Optode, ...]
        The 7 optodes, position i holds optode index i + 1.
    """

    id: int
    uid: int | str
    revision: int
    fw_ver: str
    srcs: tuple[Source, ...]
    dets: tuple[Detector, ...]
    optodes: tuple[Optode, ...]


@dataclass(slots=True, frozen=True)
class Channel:
    """
    A source-detector pair in node-local indexing. All indices are 1-based.

    Attributes
    ----------
    src_node_idx : int
        Index of the node holding the source.
    src_idx : int
        Node-local index of the source (1-6).
    det_node_idx : int
        Index of the node holding the detector.
    det_idx : int
        Node-local index of the detector (1-4).
    """

    src_node_idx: int
    src_idx: int
    det_node_idx: int
    det_idx: int


@dataclass(slots=True, frozen=True)
class LayoutOptode:
    """
    Position of an optode in the template layout.

    Attributes
    ----------
    name : str
        '1'-'4' for detector optodes, 'A'-'C' for source optodes.
    coord_2d : tuple[float, float]
        (x, y) position in the 2D template.
    coord_3d : tuple[float, float, float]
        (x, y, z) position in the 3D template.
    """

    name: str
    coord_2d: tuple[float, float]
    coord_3d: tuple[float, float, float]


@dataclass(slots=True, frozen=True)
class Dock:
    """
    A dock of the template layout, i.e. the position of a node on the cap.

    Attributes
    ----------
    id : int
        Dock number, equal to the ID of the node mounted on it.
    optodes : tuple[LayoutOptode, ...]
        The 7 optodes of the dock, position i holds optode index i + 1.
    """

    id: int
    optodes: tuple[LayoutOptode, ...]


@dataclass(slots=True, frozen=True)
class Landmark:
    """A named anatomical landmark of the template layout."""

    name: str
    x: float
    y: float
    z: float


@dataclass(slots=True, frozen=True)
class Layout:
    """
    Template layout embedded in a LUMO file.

    Attributes
    ----------
    uid : int
        UID of the group (cap) the layout describes.
    dims_2d : dict
        Dimensions of the 2D template, as stored in the file.
    dims_3d : dict
        Dimensions of the 3D template, as stored in the file.
    landmarks : tuple[Landmark, ...]
        Anatomical landmarks.
    docks : tuple[Dock, ...]
        Docks sorted by dock number.
    """

    uid: int
    dims_2d: dict
    dims_3d: dict
    landmarks: tuple[Landmark, ...]
    docks: tuple[Dock, ...]

    def dock(self, node_id: int) -> Dock | None:
        """Return the dock holding the node with the given ID, or None."""
        for dock in self.docks:
            if dock.id == node_id:
                return dock
        return None


@dataclass(slots=True, frozen=True)
class Group:
    """
    A group (cap) connected to the hub.

    Attributes
    ----------
    uid : int
        Group UID.
    nodes : tuple[Node, ...]
        Nodes sorted by ascending node ID. The 1-based position of a node in
        this tuple is its node index.
    channels : tuple[Channel, ...]
        Channels in the order of the recording, i.e. row order of the intensity data.
    layout : Layout or None, default=None
        Template layout, if the file contains one.
    """

    uid: int
    nodes: tuple[Node, ...]
    channels: tuple[Channel, ...]
    layout: Layout | None = None


@dataclass(slots=True, frozen=True)
class Enumeration:
    """
    Canonical enumeration of a LUMO system.

    Attributes
    ----------
    hub : Hub
        The hub used for recording.
    groups : tuple[Group, ...]
        Groups connected to the hub. LUMO files carry exactly one.
    """

    hub: Hub
    groups: tuple[Group, ...]


@dataclass(slots=True, frozen=True)
class DataParams:
    """
    Parameters of the intensity data, read from the recording descriptor.

    Attributes
    ----------
    n_chans : int
        Number of channels.
    n_frames : int
        Total number of frames in the recording.
    frame_rate : float
        Frames per second.
    chans_list : np.ndarray
        (n_chans x 3) array of global (source, detector, wavelength) indices.
    chans_active : np.ndarray or None, default=None
        Per-channel activity flags, if present in the file.
    """

    n_chans: int
    n_frames: int
    frame_rate: float
    chans_list: np.ndarray
    chans_active: np.ndarray | None = None


@dataclass(slots=True, frozen=True)
class IntensityData:
    """
    Channel intensity data of a group.

    Attributes
    ----------
    chn_dat : np.ndarray
        (n_chans x n_frames) float32 matrix of intensity measurements.
    chn_fps : float
        Frames per second.
    chn_dt : int
        Frame period in milliseconds (rounded).
    nframes : int
        Number of frames declared by the recording.
    nchns : int
        Number of channels.
    frames_filled : int
        Number of leading frames actually present in the intensity files.
    chn_active : np.ndarray or None, default=None
        Per-channel activity flags, if present in the file.
    """

    chn_dat: np.ndarray
    chn_fps: float
    chn_dt: int
    nframes: int
    nchns: int
    frames_filled: int
    chn_active: np.ndarray | None = None


@dataclass(slots=True, frozen=True)
class FileManifest:
    """
    Validated description of the contents of a LUMO file.

    All file names are relative to ``path`` and have been confirmed to exist.

    Attributes
    ----------
    path : Path
        The LUMO file (directory).
    version : tuple[int, int, int]
        Container format version.
    hardware_file : str
        Hardware description (hub, groups, nodes, sources, detectors).
    recording_file : str
        Recording descriptor (channel list, frame count, frame rate).
    intensity_files : tuple[str, ...]
        Binary intensity chunks, sorted by start time.
    layout_file, event_file, log_file : str or None
        Optional contents.
    """

    path: Path
    version: tuple[int, int, int]
    hardware_file: str
    recording_file: str
    intensity_files: tuple[str, ...]
    layout_file: str | None = None
    event_file: str | None = None
    log_file: str | None = None

    @property
    def has_layout(self) -> bool:
        return self.layout_file is not None

    @property
    def has_events(self) -> bool:
        return self.event_file is not None

    @property
    def has_log(self) -> bool:
        return self.log_file is not None


@dataclass(slots=True, frozen=True)
class LumoFile:
    """
    A fully loaded LUMO file.

    Attributes
    ----------
    enum : Enumeration
        Canonical enumeration; the layout, if any, is attached to the group.
    data : IntensityData
        Intensity data of the (single) group.
    events : pl.DataFrame or None, default=None
        Event markers with columns ``mark`` and ``timestamp``, sorted by time.
    """

    enum: Enumeration
    data: IntensityData
    events: pl.DataFrame | None = None


###################
# SNIRF
###################


@dataclass(slots=True, frozen=True)
class Metadata:
    """
    Metadata container for NIRS measurements following SNIRF specification.

    Attributes
    ----------
    SubjectID : str
        Subject identifier string.
    MeasurementDate : str
        Date of measurement in YYYY-MM-DD format, or "unknown".
    MeasurementTime : str
        Time of measurement in HH:MM:SS format, or "unknown".
    LengthUnit : str, default="mm"
        Unit of length measurements. LUMO layouts are in millimetres.
    TimeUnit : str, default="s"
    FrequencyUnit : str, default="Hz"
    additional_fields : dict[str, str], default=empty dict
        Additional optional metadata fields as key-value pairs.
    """

    SubjectID: str
    MeasurementDate: str = "unknown"
    MeasurementTime: str = "unknown"
    LengthUnit: str = "mm"
    TimeUnit: str = "s"
    FrequencyUnit: str = "Hz"
    additional_fields: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Measurement:
    """
    A single data channel following SNIRF specification.

    Attributes
    ----------
    sourceIndex : int
        1-based index into the probe's source list.
    detectorIndex : int
        1-based index into the probe's detector list.
    wavelengthIndex : int
        1-based index into the probe's wavelength list.
    dataType : int, default=1
        1 for continuous wave amplitude.
    dataTypeIndex : int, default=0
    """

    sourceIndex: int
    detectorIndex: int
    wavelengthIndex: int
    dataType: int = 1
    dataTypeIndex: int = 0


@dataclass(slots=True, frozen=True)
class Data:
    """
    Experimental time series data following SNIRF specification.

    Attributes
    ----------
    time : np.ndarray
        1D array of time points in seconds.
    dataTimeSeries : np.ndarray
        2D array (time x channels) of measurement values.
    measurementList : list[Measurement]
        One entry per column of ``dataTimeSeries``.
    """

    time: np.ndarray
    dataTimeSeries: np.ndarray
    measurementList: list[Measurement]


@dataclass(slots=True, frozen=True)
class Probe:
    """
    Probe geometry following SNIRF specification.

    Attributes
    ----------
    wavelengths : np.ndarray
        1D array of wavelengths in nanometers.
    sourcePos2D, detectorPos2D : np.ndarray
        (n x 2) arrays of 2D coordinates.
    sourcePos3D, detectorPos3D : np.ndarray
        (n x 3) arrays of 3D coordinates.
    sourceLabels, detectorLabels : list[str]
        Labels of the form ``N<node id>_<optode name>``.
    landmarkPos3D : np.ndarray or None, default=None
        (n x 4) array of landmark coordinates, the last column indexes ``landmarkLabels``.
    landmarkLabels : list[str] or None, default=None
    """

    wavelengths: np.ndarray
    sourcePos2D: np.ndarray
    detectorPos2D: np.ndarray
    sourcePos3D: np.ndarray
    detectorPos3D: np.ndarray
    sourceLabels: list[str]
    detectorLabels: list[str]
    landmarkPos3D: np.ndarray | None = None
    landmarkLabels: list[str] | None = None


@dataclass(slots=True, frozen=True)
class Stim:
    """
    Stimulus/event information following SNIRF specification.

    Attributes
    ----------
    name : str
        Event marker.
    data : np.ndarray
        1D array of onset times in seconds.
    """

    name: str
    data: np.ndarray


@dataclass(slots=True, frozen=True)
class Nirs:
    """
    Complete NIRS dataset following SNIRF specification.

    Attributes
    ----------
    metadata : Metadata
    data : list[Data]
        Always contains one Data object.
    probe : Probe
    stim : list[Stim] or None, default=None
    """

    metadata: Metadata
    data: list[Data]
    probe: Probe
    stim: list[Stim] | None = None
