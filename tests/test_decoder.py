"""Tests for decoder module."""

from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import soundfile

from srt_editor.decoder import AudioDecoder, _native_dtype, decode_mono
from srt_editor.errors import (
    AudioIOError,
    NoAudioTrackError,
    ProbeError,
    TranscriptionCancelledError,
)


def _write_tone(
    path: Path,
    sample_rate: int = 16000,
    duration: float = 1.0,
    channels: int = 1,
    subtype: str = "PCM_16",
) -> np.ndarray:
    """Helper to write a sine tone and return the written samples."""
    num_samples = int(sample_rate * duration)
    tone = 0.5 * np.sin(2 * np.pi * 440 * np.arange(num_samples) / sample_rate)
    data = np.repeat(tone[:, None], channels, axis=1).astype(np.float32)
    soundfile.write(str(path), data, sample_rate, subtype=subtype)
    return data


class TestNativeDtype:
    """Tests for codec to sample representation mapping."""

    @pytest.mark.parametrize(
        "subtype,expected",
        [
            ("PCM_16", "int16"),
            ("PCM_U8", "int16"),
            ("PCM_S8", "int16"),
            ("PCM_24", "int32"),
            ("PCM_32", "int32"),
            ("FLOAT", "float32"),
            ("DOUBLE", "float32"),
            ("VORBIS", "float32"),
        ],
    )
    def test_mapping(self, subtype, expected):
        """Test subtype to dtype mapping."""
        assert _native_dtype(subtype) == expected


class TestAudioDecoderOpen:
    """Tests for opening and probing."""

    def test_open_selects_audio_track(self, tmp_path):
        """Test the first audio track is selected with its parameters."""
        path = tmp_path / "tone.wav"
        _write_tone(path, sample_rate=22050, channels=2)

        with AudioDecoder(path) as decoder:
            assert decoder.track is not None
            assert decoder.track.sample_rate == 22050
            assert decoder.track.channels == 2
            assert decoder.track.codec == "PCM_16"
            assert decoder.total_frames == 22050

    def test_missing_file(self, tmp_path):
        """Test a missing file raises AudioIOError."""
        with pytest.raises(AudioIOError, match="Failed to open"):
            AudioDecoder(tmp_path / "missing.wav").open()

    def test_directory_path(self, tmp_path):
        """Test a directory raises AudioIOError."""
        with pytest.raises(AudioIOError):
            AudioDecoder(tmp_path).open()

    def test_unrecognized_content(self, tmp_path):
        """Test non-audio content raises ProbeError."""
        path = tmp_path / "garbage.wav"
        path.write_bytes(b"this is not audio at all " * 64)
        with pytest.raises(ProbeError, match="Failed to probe"):
            AudioDecoder(path).open()

    def test_content_wins_over_extension(self, tmp_path):
        """Test content sniffing detects a WAV with a misleading extension."""
        wav = tmp_path / "tone.wav"
        _write_tone(wav)
        disguised = tmp_path / "tone.mp3"
        disguised.write_bytes(wav.read_bytes())

        with AudioDecoder(disguised) as decoder:
            assert decoder.track.sample_rate == 16000

    def test_probe_uses_file_content_only(self, tmp_path):
        """Test probing does not consult the extension against known formats."""
        path = tmp_path / "tone.unknownext"
        _write_tone(path)

        with patch("soundfile.available_formats") as mock_formats:
            with AudioDecoder(path) as decoder:
                assert decoder.track.codec == "PCM_16"

        mock_formats.assert_not_called()

    def test_no_audio_track(self, tmp_path):
        """Test a container without an audio codec raises NoAudioTrackError."""
        path = tmp_path / "tone.wav"
        _write_tone(path)

        with patch.object(soundfile.SoundFile, "subtype", new=""):
            with pytest.raises(NoAudioTrackError):
                AudioDecoder(path).open()

    def test_invalid_block_size(self, tmp_path):
        """Test non-positive block sizes are rejected."""
        with pytest.raises(ValueError):
            AudioDecoder(tmp_path / "x.wav", block_size=0)

    def test_buffers_before_open(self, tmp_path):
        """Test reading before open() fails."""
        with pytest.raises(AudioIOError, match="not open"):
            next(AudioDecoder(tmp_path / "x.wav").buffers())


class TestAudioDecoderBuffers:
    """Tests for packet iteration."""

    def test_buffers_cover_file(self, tmp_path):
        """Test packets are yielded until end of stream."""
        path = tmp_path / "tone.wav"
        _write_tone(path, sample_rate=16000, duration=1.0, channels=2)

        with AudioDecoder(path, block_size=4096) as decoder:
            buffers = list(decoder.buffers())

        assert sum(b.frames for b in buffers) == 16000
        assert len(buffers) == 4
        assert all(b.sample_format == "int16" for b in buffers)
        assert all(b.channels == 2 for b in buffers)

    def test_float_file_yields_float_buffers(self, tmp_path):
        """Test float WAV files decode as float32 buffers."""
        path = tmp_path / "tone.wav"
        _write_tone(path, subtype="FLOAT")

        with AudioDecoder(path) as decoder:
            first = next(decoder.buffers())

        assert first.sample_format == "float32"
        assert first.samples.dtype == np.float32

    def test_corrupt_packet_is_skipped(self, tmp_path):
        """Test one failing packet is logged and skipped."""
        path = tmp_path / "tone.wav"
        _write_tone(path, sample_rate=16000, duration=1.0)

        real_read = AudioDecoder._read_block
        calls = {"n": 0}

        def flaky(self, frames):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("corrupt packet")
            return real_read(self, frames)

        with patch.object(AudioDecoder, "_read_block", autospec=True, side_effect=flaky):
            samples, sample_rate = decode_mono(path, block_size=1000)

        assert sample_rate == 16000
        assert len(samples) == 15000

    def test_trailing_corrupt_packet_ends_stream(self, tmp_path):
        """Test a failure in the last packet terminates decoding normally."""
        path = tmp_path / "tone.wav"
        _write_tone(path, sample_rate=8000, duration=0.5)

        real_read = AudioDecoder._read_block

        def fail_last(self, frames):
            if self._file.tell() >= 3000:
                raise RuntimeError("corrupt tail")
            return real_read(self, frames)

        with patch.object(AudioDecoder, "_read_block", autospec=True, side_effect=fail_last):
            with AudioDecoder(path, block_size=1000) as decoder:
                buffers = list(decoder.buffers())
                assert decoder.skipped_packets == 1

        assert sum(b.frames for b in buffers) == 3000


class TestDecodeMono:
    """Tests for the decode-to-mono helper."""

    def test_single_channel_identity(self, tmp_path):
        """Test a mono float file decodes to its own samples."""
        path = tmp_path / "tone.wav"
        data = _write_tone(path, subtype="FLOAT")

        samples, sample_rate = decode_mono(path)

        assert sample_rate == 16000
        np.testing.assert_allclose(samples, data[:, 0], atol=1e-7)

    def test_multichannel_downmix(self, tmp_path):
        """Test multichannel files are averaged to mono."""
        path = tmp_path / "tone.wav"
        data = _write_tone(path, channels=3, subtype="FLOAT")

        samples, _ = decode_mono(path)

        assert samples.ndim == 1
        np.testing.assert_allclose(samples, data.mean(axis=1), atol=1e-6)

    def test_unsigned_8bit_file(self, tmp_path):
        """Test 8-bit unsigned WAV files decode into range."""
        path = tmp_path / "tone.wav"
        _write_tone(path, subtype="PCM_U8")

        samples, _ = decode_mono(path)

        assert len(samples) == 16000
        assert np.all(np.abs(samples) <= 1.0)
        assert np.max(np.abs(samples)) > 0.4

    def test_progress_hook(self, tmp_path):
        """Test the per-packet hook reports cumulative frames."""
        path = tmp_path / "tone.wav"
        _write_tone(path, duration=0.5)
        seen = []

        decode_mono(path, block_size=2000, on_buffer=lambda done, total: seen.append((done, total)))

        assert seen == [(2000, 8000), (4000, 8000), (6000, 8000), (8000, 8000)]

    def test_should_stop_aborts(self, tmp_path):
        """Test the stop predicate aborts between packets."""
        path = tmp_path / "tone.wav"
        _write_tone(path)

        with pytest.raises(TranscriptionCancelledError):
            decode_mono(path, should_stop=lambda: True)
