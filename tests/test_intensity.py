"""
Unit tests for intensity module.
"""

import logging

import numpy as np
import pytest

from conftest import chunk_bytes, intensity_pattern
from lumo2snirf import model
from lumo2snirf.intensity import (
    HEADER_DTYPE,
    BadMagic,
    BigEndianUnsupported,
    ChunkChannelCountMismatch,
    ChunkFinalityViolation,
    ChunkTruncated,
    FrameCountOverflow,
    IntensityDecodeError,
    UnsupportedChunkVersion,
    read_intensity,
)


def params(n_chans, n_frames, frame_rate=12.5, chans_active=None):
    return model.DataParams(
        n_chans=n_chans,
        n_frames=n_frames,
        frame_rate=frame_rate,
        chans_list=np.zeros((n_chans, 3), dtype=np.int64),
        chans_active=chans_active,
    )


@pytest.fixture(name="write_chunks")
def fixture_write_chunks(tmp_path):
    """Write chunk contents to numbered files and return their paths."""

    def write(*contents):
        paths = []
        for i, content in enumerate(contents):
            path = tmp_path / f"chunk{i}.bin"
            path.write_bytes(content)
            paths.append(path)
        return paths

    return write


class TestHeaderLayout:
    """The header dtype must match the binary format exactly."""

    def test_header_size(self):
        assert HEADER_DTYPE.itemsize == 48

    def test_field_offsets(self):
        offsets = {name: field[1] for name, field in HEADER_DTYPE.fields.items()}
        assert offsets["magic"] == 0
        assert offsets["version"] == 1
        assert offsets["n_chans"] == 8
        assert offsets["n_frames"] == 16
        assert offsets["not_final"] == 44
        assert offsets["big_endian"] == 45


class TestReadIntensity:
    """Tests for valid intensity streams."""

    def test_single_chunk_round_trip_succeeds(self, write_chunks):
        expected = intensity_pattern(3, 4)
        files = write_chunks(chunk_bytes(expected, final=True))

        data = read_intensity(files, params(3, 4))

        assert data.chn_dat.shape == (3, 4)
        assert data.chn_dat.dtype == np.float32
        np.testing.assert_array_equal(data.chn_dat, expected)
        assert data.frames_filled == 4

    def test_two_chunks_fill_consecutive_frames_succeeds(self, write_chunks):
        first = intensity_pattern(2, 3)
        second = -intensity_pattern(2, 2) - 1
        files = write_chunks(
            chunk_bytes(first, final=False), chunk_bytes(second, final=True)
        )

        data = read_intensity(files, params(2, 5))

        np.testing.assert_array_equal(data.chn_dat[:, 0:3], first)
        np.testing.assert_array_equal(data.chn_dat[:, 3:5], second)
        assert data.frames_filled == 5

    def test_payload_is_frame_by_frame_succeeds(self, write_chunks):
        header = chunk_bytes(np.zeros((2, 2)), final=True)[:48]
        payload = np.array([1, 2, 3, 4], dtype="<f4").tobytes()
        files = write_chunks(header + payload)

        data = read_intensity(files, params(2, 2))

        # frame 0 holds channels 0, 1 -> 1, 2; frame 1 -> 3, 4
        np.testing.assert_array_equal(data.chn_dat, [[1, 3], [2, 4]])

    def test_older_chunk_version_succeeds(self, write_chunks):
        expected = intensity_pattern(1, 2)
        files = write_chunks(chunk_bytes(expected, version=(0, 0, 1)))

        data = read_intensity(files, params(1, 2))

        np.testing.assert_array_equal(data.chn_dat, expected)

    def test_data_parameters_passed_through_succeeds(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 1)))

        active = np.array([1, 0])
        data = read_intensity(files, params(2, 1, chans_active=active))

        assert data.chn_fps == 12.5
        assert data.chn_dt == 80
        assert data.nframes == 1
        assert data.nchns == 2
        np.testing.assert_array_equal(data.chn_active, [1, 0])

    def test_missing_trailing_frames_logs_warning(self, write_chunks, caplog):
        caplog.set_level(logging.WARNING)
        expected = intensity_pattern(2, 3)
        files = write_chunks(chunk_bytes(expected))

        data = read_intensity(files, params(2, 5))

        np.testing.assert_array_equal(data.chn_dat[:, :3], expected)
        np.testing.assert_array_equal(data.chn_dat[:, 3:], 0)
        assert data.frames_filled == 3
        assert "hold 3 of 5 frames, the last 2 frames are left empty" in caplog.text

    def test_complete_stream_logs_no_warning(self, write_chunks, caplog):
        caplog.set_level(logging.WARNING)
        files = write_chunks(chunk_bytes(intensity_pattern(2, 3)))

        read_intensity(files, params(2, 3))

        assert caplog.records == []

    def test_empty_chunk_succeeds(self, write_chunks):
        first = intensity_pattern(2, 2)
        files = write_chunks(
            chunk_bytes(first, final=False),
            chunk_bytes(np.zeros((2, 0)), final=True),
        )

        data = read_intensity(files, params(2, 2))

        np.testing.assert_array_equal(data.chn_dat, first)


class TestReadIntensityErrors:
    """Tests for invalid intensity streams."""

    def test_bad_magic_raises_error(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 2), magic=0x93))

        with pytest.raises(BadMagic, match="0x93, expected 0x92"):
            read_intensity(files, params(2, 2))

    @pytest.mark.parametrize("version", [(0, 2, 0), (1, 0, 0), (0, 0, 0)])
    def test_unknown_version_raises_error(self, write_chunks, version):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 2), version=version))

        with pytest.raises(UnsupportedChunkVersion):
            read_intensity(files, params(2, 2))

    def test_big_endian_raises_error(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 2), big_endian=True))

        with pytest.raises(BigEndianUnsupported):
            read_intensity(files, params(2, 2))

    def test_channel_count_mismatch_raises_error(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(3, 2)))

        with pytest.raises(ChunkChannelCountMismatch, match="3 channels, expected 2"):
            read_intensity(files, params(2, 2))

    def test_final_flag_before_last_chunk_raises_error(self, write_chunks):
        files = write_chunks(
            chunk_bytes(intensity_pattern(2, 1), final=True),
            chunk_bytes(intensity_pattern(2, 1), final=True),
        )

        with pytest.raises(ChunkFinalityViolation, match="set before last"):
            read_intensity(files, params(2, 2))

    def test_final_flag_missing_on_last_chunk_raises_error(self, write_chunks):
        files = write_chunks(
            chunk_bytes(intensity_pattern(2, 1), final=False),
            chunk_bytes(intensity_pattern(2, 1), final=False),
        )

        with pytest.raises(ChunkFinalityViolation, match="not set on last"):
            read_intensity(files, params(2, 2))

    def test_no_files_raises_error(self):
        with pytest.raises(ChunkFinalityViolation, match="No intensity files"):
            read_intensity([], params(2, 2))

    def test_frame_count_overflow_raises_error(self, write_chunks):
        files = write_chunks(
            chunk_bytes(intensity_pattern(2, 3), final=False),
            chunk_bytes(intensity_pattern(2, 3), final=True),
        )

        with pytest.raises(FrameCountOverflow, match="3 \\+ 3 frames > 5"):
            read_intensity(files, params(2, 5))

    def test_truncated_payload_raises_error(self, write_chunks):
        content = chunk_bytes(intensity_pattern(2, 3))
        files = write_chunks(content[:-5])

        with pytest.raises(ChunkTruncated):
            read_intensity(files, params(2, 3))

    def test_truncated_header_raises_error(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 3))[:20])

        with pytest.raises(ChunkTruncated, match="too short for a header"):
            read_intensity(files, params(2, 3))

    def test_declared_frames_beyond_payload_raises_error(self, write_chunks):
        files = write_chunks(chunk_bytes(intensity_pattern(2, 2), n_frames=3))

        with pytest.raises(ChunkTruncated):
            read_intensity(files, params(2, 3))

    def test_error_in_later_chunk_returns_nothing(self, write_chunks):
        files = write_chunks(
            chunk_bytes(intensity_pattern(2, 1), final=False),
            chunk_bytes(intensity_pattern(2, 1), final=True, magic=0),
        )

        with pytest.raises(IntensityDecodeError, match="chunk1.bin"):
            read_intensity(files, params(2, 2))
