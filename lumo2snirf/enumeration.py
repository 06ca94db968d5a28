"""
Construction of the canonical enumeration of a LUMO system.

The hardware file of a LUMO recording lists the hub, its group, the nodes
(tiles) of the group and their sources and detectors. The recording descriptor
lists the channels of the recording in the hub's *global-spectroscopic*
indexing: each channel is a (global source, global detector, wavelength slot)
triple, where global indices number sources and detectors across all tiles.

The canonical enumeration instead uses node-local indexing. Nodes are sorted
by node ID and numbered from 1; within a node sources are numbered 1-6 and
detectors 1-4 (see `topology`). A channel is then the tuple
(src_node_idx, src_idx, det_node_idx, det_idx). While nodes are built, the
global indices reported for each source and detector are collected into
global -> local maps, which are finally used to translate the channel list.
"""

import logging
from collections.abc import Hashable, Mapping
from typing import Any

import numpy as np

from . import model, topology
from .error import Lumo2SnirfError
from .tables import required_field

log = logging.getLogger(__name__)


class EnumerationError(Lumo2SnirfError):
    """Error while constructing the canonical enumeration."""


class MultipleGroupsUnsupported(EnumerationError):
    """The hardware file declares a number of groups other than one."""


class DuplicateNodeError(EnumerationError):
    """Two nodes of a group share a node ID."""


class InternalOrderingError(EnumerationError):
    """Nodes ended up out of node ID order."""


class SourceEnumerationError(EnumerationError):
    """The sources of a node do not form a complete tile."""


class DetectorEnumerationError(EnumerationError):
    """The detectors of a node do not form a complete tile."""


class OptodeEnumerationError(EnumerationError):
    """Sources and detectors of a node do not cover the optodes exactly once."""


class DescriptorConsistencyError(EnumerationError):
    """The recording descriptor disagrees with the hardware description."""


class ChannelResolutionError(EnumerationError):
    """A channel refers to a global index absent from the enumeration."""


class _GlobalIndexMap:
    """Global index -> (node index, node-local index), refusing to overwrite keys."""

    def __init__(self, what: str, error: type[EnumerationError]):
        self.what = what
        self.error = error
        self.entries: dict[Hashable, tuple[int, int]] = {}

    def add(self, key: Hashable, node_idx: int, local_idx: int) -> None:
        if key in self.entries:
            raise self.error(
                f"Duplicate global {self.what} index {key}: already mapped to "
                f"{self.entries[key]}, cannot map to {(node_idx, local_idx)}"
            )
        self.entries[key] = (node_idx, local_idx)

    def get(self, key: Hashable) -> tuple[int, int] | None:
        return self.entries.get(key)

    def __len__(self) -> int:
        return len(self.entries)


def build_enumeration(
    hardware: Mapping[str, Any],
    recording: Mapping[str, Any],
    where: str = "LUMO file",
) -> tuple[model.Enumeration, model.DataParams]:
    """Build the canonical enumeration and the data parameters of a recording.

    Parameters
    ----------
    hardware : Mapping
        Decoded hardware description (hub, group, nodes, sources, detectors).
    recording : Mapping
        Decoded recording descriptor (node IDs, counts, wavelengths, channel
        list, frame count and frame rate).
    where : str, default="LUMO file"
        Name of the file being read, used in error messages.

    Returns
    -------
    tuple[model.Enumeration, model.DataParams]
        The enumeration, and the parameters of the intensity data. Both come
        from the same metadata, which is why they are built together.

    Raises
    ------
    EnumerationError
        Or one of its subclasses, if the metadata is inconsistent. The first
        problem found aborts construction.
    MissingFieldError
        If a required field is absent.

    Notes
    -----
    Channels keep the order of the recording descriptor, which is the row
    order of the intensity data.
    """
    log.info("Constructing canonical enumeration")

    hub_table = required_field(hardware, "Hub", where)
    hub = _enumerate_hub(hub_table)
    log.debug("Hub: %s", hub)

    groups = required_field(hub_table, "Group", where)
    if isinstance(groups, Mapping):
        groups = [groups]
    if len(groups) != 1:
        raise MultipleGroupsUnsupported(
            f"{where} invalid: file contains {len(groups)} groups, "
            "only single group files are supported"
        )
    group_table = groups[0]
    group_uid = required_field(group_table, "uid", f"{where} group")

    nodes, src_g2l, det_g2l = _enumerate_nodes(group_table, where)

    variables = required_field(recording, "variables", where)
    _check_consistency(variables, nodes, src_g2l, det_g2l, where)

    n_chans = int(required_field(variables, "n_chans", where))
    chans_list = _channel_list(variables, n_chans, where)
    channels = tuple(
        _resolve_channel(ci, triple, src_g2l, det_g2l, where)
        for ci, triple in enumerate(chans_list.tolist(), start=1)
    )

    chans_active = variables.get("chans_list_act")
    if chans_active is not None:
        chans_active = np.asarray(chans_active).ravel()
        if chans_active.size != n_chans:
            raise DescriptorConsistencyError(
                f"{where}: chans_list_act has {chans_active.size} entries, "
                f"expected {n_chans}"
            )

    n_frames = int(required_field(variables, "number_of_frames", where))
    if n_frames < 0:
        raise DescriptorConsistencyError(
            f"{where}: invalid number_of_frames {n_frames}"
        )
    frame_rate = float(required_field(variables, "framerate", where))
    if frame_rate <= 0:
        raise DescriptorConsistencyError(f"{where}: invalid framerate {frame_rate}")

    enum = model.Enumeration(
        hub=hub,
        groups=(model.Group(uid=group_uid, nodes=nodes, channels=channels),),
    )
    params = model.DataParams(
        n_chans=n_chans,
        n_frames=n_frames,
        frame_rate=frame_rate,
        chans_list=chans_list,
        chans_active=chans_active,
    )
    log.info(
        "%s enumeration contains %d tiles, %d channels",
        where,
        len(nodes),
        len(channels),
    )
    return enum, params


def _enumerate_hub(hub_table: Mapping[str, Any]) -> model.Hub:
    """Copy the hub fields that are present; sentinel values mean absent."""

    def present(name: str, sentinel: Any) -> Any:
        value = hub_table.get(name, sentinel)
        return None if value == sentinel else value

    return model.Hub(
        fw_ver=present("firmware_version", ""),
        type=present("hardware_version", ""),
        sn=present("hub_serial_number", -1),
        uid=present("hardware_uid", ""),
    )


def _enumerate_nodes(
    group_table: Mapping[str, Any], where: str
) -> tuple[tuple[model.Node, ...], _GlobalIndexMap, _GlobalIndexMap]:
    """Build the nodes of a group in node ID order, and the global -> local maps.

    Returns
    -------
    tuple
        Nodes sorted by ID; map (global source index, wavelength slot) ->
        (node index, source index); map global detector index ->
        (node index, detector index).
    """
    raw_nodes = required_field(group_table, "Node", f"{where} group")
    node_ids = [
        required_field(raw, "node_id", f"{where} node {i}")
        for i, raw in enumerate(raw_nodes, start=1)
    ]
    duplicates = sorted({i for i in node_ids if node_ids.count(i) > 1})
    if duplicates:
        raise DuplicateNodeError(f"{where}: duplicate node IDs {duplicates}")
    order = sorted(range(len(raw_nodes)), key=lambda i: node_ids[i])

    src_g2l = _GlobalIndexMap("source", SourceEnumerationError)
    det_g2l = _GlobalIndexMap("detector", DetectorEnumerationError)
    nodes = tuple(
        _enumerate_node(raw_nodes[i], node_idx, src_g2l, det_g2l, where)
        for node_idx, i in enumerate(order, start=1)
    )

    ids = [node.id for node in nodes]
    if any(a >= b for a, b in zip(ids, ids[1:])):
        raise InternalOrderingError(
            f"{where}: nodes are not in ascending ID order: {ids}"
        )
    log.debug("Node IDs in canonical order: %s", ids)
    return nodes, src_g2l, det_g2l


def _enumerate_node(
    raw: Mapping[str, Any],
    node_idx: int,
    src_g2l: _GlobalIndexMap,
    det_g2l: _GlobalIndexMap,
    where: str,
) -> model.Node:
    """Build a single node and record its global indices in the maps."""
    node_id = raw["node_id"]
    here = f"{where} node {node_id}"

    raw_srcs = required_field(raw, "Source", here)
    if len(raw_srcs) != topology.N_SOURCES:
        raise SourceEnumerationError(
            f"{here}: source enumeration error, "
            f"expected {topology.N_SOURCES} sources, got {len(raw_srcs)}"
        )
    srcs: list[model.Source | None] = [None] * topology.N_SOURCES
    for raw_src in raw_srcs:
        desc = topology.source_descriptor(required_field(raw_src, "id", here))
        if raw_src.get("description") != desc.description:
            raise topology.UnrecognizedSourceId(
                f"{here}: source id {raw_src['id']} should be described as "
                f"'{desc.description}', got {raw_src.get('description')!r}"
            )
        if srcs[desc.idx - 1] is not None:
            raise SourceEnumerationError(f"{here}: duplicate source index {desc.idx}")
        srcs[desc.idx - 1] = model.Source(
            wl=desc.wl,
            optode_idx=desc.optode_idx,
            power=required_field(raw_src, "Source_power", here),
        )
        src_g2l.add(
            (required_field(raw_src, "group_location_index", here), desc.wl_slot),
            node_idx,
            desc.idx,
        )

    raw_dets = required_field(raw, "Detector", here)
    if len(raw_dets) != topology.N_DETECTORS:
        raise DetectorEnumerationError(
            f"{here}: detector enumeration error, "
            f"expected {topology.N_DETECTORS} detectors, got {len(raw_dets)}"
        )
    dets: list[model.Detector | None] = [None] * topology.N_DETECTORS
    for raw_det in raw_dets:
        desc = topology.detector_descriptor(required_field(raw_det, "id", here))
        if raw_det.get("description") != desc.description:
            raise topology.UnrecognizedDetectorId(
                f"{here}: detector id {raw_det['id']} should be described as "
                f"'{desc.description}', got {raw_det.get('description')!r}"
            )
        if dets[desc.idx - 1] is not None:
            raise DetectorEnumerationError(
                f"{here}: duplicate detector index {desc.idx}"
            )
        dets[desc.idx - 1] = model.Detector(optode_idx=desc.optode_idx)
        det_g2l.add(
            required_field(raw_det, "group_location_index", here), node_idx, desc.idx
        )

    # The slot checks above guarantee that both lists are full
    src_optodes = {src.optode_idx for src in srcs if src is not None}
    det_optodes = {det.optode_idx for det in dets if det is not None}
    if (
        src_optodes & det_optodes
        or src_optodes | det_optodes != set(range(1, topology.N_OPTODES + 1))
    ):
        raise OptodeEnumerationError(
            f"{here}: optode enumeration error, source optodes {sorted(src_optodes)}, "
            f"detector optodes {sorted(det_optodes)}"
        )
    optodes = tuple(
        model.Optode(*topology.optode_descriptor(i))
        for i in range(1, topology.N_OPTODES + 1)
    )

    node = model.Node(
        id=node_id,
        uid=required_field(raw, "tile_uid", here),
        revision=required_field(raw, "revision_id", here),
        fw_ver=required_field(raw, "firmware_version", here),
        srcs=tuple(src for src in srcs if src is not None),
        dets=tuple(det for det in dets if det is not None),
        optodes=optodes,
    )
    log.debug("Node %d (index %d) enumerated", node_id, node_idx)
    return node


def _check_consistency(
    variables: Mapping[str, Any],
    nodes: tuple[model.Node, ...],
    src_g2l: _GlobalIndexMap,
    det_g2l: _GlobalIndexMap,
    where: str,
) -> None:
    """Check the recording descriptor against the enumerated hardware."""
    log.debug("Checking recording descriptor against hardware enumeration")

    declared_nodes = sorted(_int_list(variables, "nodes", where))
    node_ids = [node.id for node in nodes]
    if declared_nodes != node_ids:
        raise DescriptorConsistencyError(
            f"{where}: recording declares nodes {declared_nodes}, "
            f"hardware has {node_ids}"
        )

    n_srcs = required_field(variables, "n_srcs", where)
    n_global_srcs = len({gsi for gsi, _ in src_g2l.entries})
    if n_srcs != n_global_srcs:
        raise DescriptorConsistencyError(
            f"{where}: recording declares {n_srcs} sources, "
            f"hardware has {n_global_srcs}"
        )

    n_dets = required_field(variables, "n_dets", where)
    if n_dets != len(det_g2l):
        raise DescriptorConsistencyError(
            f"{where}: recording declares {n_dets} detectors, "
            f"hardware has {len(det_g2l)}"
        )

    # Wavelength slots are hard coded (1 -> 735 nm, 2 -> 850 nm), which is only
    # valid if the recording uses exactly these wavelengths.
    wavelengths = _int_list(variables, "wavelength", where)
    if wavelengths != list(topology.WAVELENGTHS):
        raise DescriptorConsistencyError(
            f"{where}: unsupported wavelengths {wavelengths}, "
            f"expected {list(topology.WAVELENGTHS)}"
        )
    for node in nodes:
        node_wls = sorted({src.wl for src in node.srcs})
        if node_wls != wavelengths:
            raise DescriptorConsistencyError(
                f"{where}: node {node.id} has wavelengths {node_wls}, "
                f"recording declares {wavelengths}"
            )


def _int_list(variables: Mapping[str, Any], name: str, where: str) -> list[int]:
    """Return a descriptor field that must be a list of integers."""
    value = required_field(variables, name, where)
    if not isinstance(value, list | tuple) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in value
    ):
        raise DescriptorConsistencyError(
            f"{where}: {name} must be a list of integers, got {value!r}"
        )
    return list(value)


def _channel_list(variables: Mapping[str, Any], n_chans: int, where: str) -> np.ndarray:
    """Return the channel list as an (n_chans x 3) array of global indices."""
    try:
        flat = np.asarray(required_field(variables, "chans_list", where)).ravel()
    except ValueError as e:
        raise DescriptorConsistencyError(
            f"{where}: chans_list is not a regular array: {e}"
        ) from e
    if n_chans < 0 or flat.size != 3 * n_chans:
        raise DescriptorConsistencyError(
            f"{where}: chans_list has {flat.size} entries, expected 3 x {n_chans}"
        )
    if flat.size and not np.issubdtype(flat.dtype, np.integer):
        raise DescriptorConsistencyError(f"{where}: chans_list must contain integers")
    return flat.astype(np.int64).reshape(n_chans, 3)


def _resolve_channel(
    ci: int,
    triple: list[int],
    src_g2l: _GlobalIndexMap,
    det_g2l: _GlobalIndexMap,
    where: str,
) -> model.Channel:
    """Map a (global source, detector, wavelength slot) triple to local indices."""
    g_src, g_det, g_wl = triple
    src = src_g2l.get((g_src, g_wl))
    if src is None:
        raise ChannelResolutionError(
            f"{where}: channel {ci} refers to unknown global source {g_src} "
            f"at wavelength slot {g_wl}"
        )
    det = det_g2l.get(g_det)
    if det is None:
        raise ChannelResolutionError(
            f"{where}: channel {ci} refers to unknown global detector {g_det}"
        )
    return model.Channel(
        src_node_idx=src[0], src_idx=src[1], det_node_idx=det[0], det_idx=det[1]
    )
