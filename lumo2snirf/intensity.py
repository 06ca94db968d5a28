"""
Decoding of the binary channel intensity stream of a LUMO file.

Intensity data is split into chunks, each stored in its own file. A chunk
starts with a 48-byte little-endian header:

====== ===== ===========================================================
offset bytes  field
====== ===== ===========================================================
0      1      magic number (0x92)
1      3      format version, (0, 1, 0) or (0, 0, 1)
4      4      reserved
8      8      number of channels (uint64)
16     8      number of frames in this chunk (uint64)
24     20     reserved
44     1      not-final flag: zero marks the last chunk of the stream
45     1      big-endian flag: payload byte order (only little-endian supported)
46     2      reserved
====== ===== ===========================================================

The header is followed by n_chans x n_frames float32 values, stored frame by
frame with the channels of each frame contiguous.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Final

import numpy as np

from . import model
from .error import Lumo2SnirfError

log = logging.getLogger(__name__)


class IntensityDecodeError(Lumo2SnirfError):
    """Error while decoding an intensity file."""


class BadMagic(IntensityDecodeError):
    """Intensity file does not start with the magic number."""


class UnsupportedChunkVersion(IntensityDecodeError):
    """Intensity file has an unknown format version."""


class ChunkChannelCountMismatch(IntensityDecodeError):
    """Intensity file holds a different number of channels than the recording."""


class BigEndianUnsupported(IntensityDecodeError):
    """Intensity file payload is big-endian."""


class ChunkFinalityViolation(IntensityDecodeError):
    """Final flag set on a chunk other than the last, or not set on the last."""


class FrameCountOverflow(IntensityDecodeError):
    """Intensity files hold more frames than the recording declares."""


class ChunkTruncated(IntensityDecodeError):
    """Intensity file is shorter than its header declares."""


MAGIC: Final[int] = 0x92
KNOWN_VERSIONS: Final[frozenset[tuple[int, int, int]]] = frozenset(
    {(0, 1, 0), (0, 0, 1)}
)

HEADER_DTYPE: Final[np.dtype] = np.dtype(
    [
        ("magic", "u1"),
        ("version", "u1", (3,)),
        ("reserved0", "V4"),
        ("n_chans", "<u8"),
        ("n_frames", "<u8"),
        ("reserved1", "V20"),
        ("not_final", "u1"),
        ("big_endian", "u1"),
        ("reserved2", "V2"),
    ]
)
PAYLOAD_DTYPE: Final[np.dtype] = np.dtype("<f4")


def read_intensity(
    files: Sequence[Path], params: model.DataParams
) -> model.IntensityData:
    """Decode a sequence of intensity chunks into a single channel x frame matrix.

    Parameters
    ----------
    files : Sequence[Path]
        Intensity files in chronological order.
    params : model.DataParams
        Data parameters of the recording; ``n_chans`` and ``n_frames`` set the
        size of the result.

    Returns
    -------
    model.IntensityData
        Intensity matrix of shape (n_chans, n_frames) with float32 values, and
        the number of frames actually filled from the files.

    Raises
    ------
    IntensityDecodeError
        Or one of its subclasses, for the first chunk that is invalid. No
        partial data is returned.

    Notes
    -----
    The files may hold fewer frames than the recording declares. The
    remaining columns are left at zero and a warning is logged.
    """
    log.info("Reading %d intensity files", len(files))
    if not files:
        raise ChunkFinalityViolation("No intensity files, final flag never seen")
    chn_dat = np.zeros((params.n_chans, params.n_frames), dtype=np.float32)
    offset = 0

    for i, file in enumerate(files):
        is_last = i == len(files) - 1
        with open(file, "rb") as f:
            n_frames = _read_header(f, file, params.n_chans, is_last)
            if offset + n_frames > params.n_frames:
                raise FrameCountOverflow(
                    f"Intensity data exceeds reported frame count in file {file}: "
                    f"{offset} + {n_frames} frames > {params.n_frames}"
                )
            n_bytes = params.n_chans * n_frames * PAYLOAD_DTYPE.itemsize
            buffer = f.read(n_bytes)
        if len(buffer) != n_bytes:
            raise ChunkTruncated(
                f"Intensity file {file} holds {len(buffer)} payload bytes, "
                f"expected {n_bytes}"
            )
        if n_frames == 0:
            log.debug("File %s: no frames", file.name)
            continue
        payload = np.frombuffer(buffer, dtype=PAYLOAD_DTYPE)
        chn_dat[:, offset : offset + n_frames] = payload.reshape(
            n_frames, params.n_chans
        ).T
        log.debug("File %s: frames %d-%d", file.name, offset, offset + n_frames - 1)
        offset += n_frames

    if offset < params.n_frames:
        log.warning(
            "Intensity files hold %d of %d frames, the last %d frames are left empty",
            offset,
            params.n_frames,
            params.n_frames - offset,
        )

    return model.IntensityData(
        chn_dat=chn_dat,
        chn_fps=params.frame_rate,
        chn_dt=round(1000 / params.frame_rate),
        nframes=params.n_frames,
        nchns=params.n_chans,
        frames_filled=offset,
        chn_active=params.chans_active,
    )


def _read_header(f, file: Path, n_chans: int, is_last: bool) -> int:
    """Read and validate a chunk header, returning its frame count."""
    buffer = f.read(HEADER_DTYPE.itemsize)
    if len(buffer) != HEADER_DTYPE.itemsize:
        raise ChunkTruncated(
            f"Intensity file {file} is too short for a header ({len(buffer)} bytes)"
        )
    header = np.frombuffer(buffer, dtype=HEADER_DTYPE, count=1)[0]
    log.debug("Header of %s: %s", file.name, header)

    if header["magic"] != MAGIC:
        raise BadMagic(
            f"Intensity file {file} contains invalid identifier "
            f"0x{int(header['magic']):02x}, expected 0x{MAGIC:02x}"
        )
    version = tuple(int(x) for x in header["version"])
    if version not in KNOWN_VERSIONS:
        raise UnsupportedChunkVersion(
            f"Intensity file {file} has unknown version {'.'.join(map(str, version))}"
        )
    if header["big_endian"]:
        raise BigEndianUnsupported(f"Intensity data is big-endian in file {file}")
    if header["n_chans"] != n_chans:
        raise ChunkChannelCountMismatch(
            f"Intensity file {file} holds {int(header['n_chans'])} channels, "
            f"expected {n_chans}"
        )
    is_final = header["not_final"] == 0
    if is_last and not is_final:
        raise ChunkFinalityViolation(
            f"Final flag not set on last intensity file {file}"
        )
    if is_final and not is_last:
        raise ChunkFinalityViolation(
            f"Final flag set before last intensity file in {file}"
        )
    return int(header["n_frames"])
