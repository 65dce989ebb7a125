"""Container probing and block-wise audio decoding via libsndfile."""

import logging
from pathlib import Path
from typing import Callable, Iterator

import numpy as np
import soundfile

from srt_editor._types import AudioTrack, DecodedBuffer
from srt_editor.errors import (
    AudioIOError,
    NoAudioTrackError,
    PacketDecodeError,
    ProbeError,
    TranscriptionCancelledError,
)
from srt_editor.normalizer import to_mono

logger = logging.getLogger(__name__)

NULL_CODEC = ""


def _native_dtype(subtype: str) -> str:
    """Pick the read dtype closest to the codec's own sample representation."""
    subtype = subtype.upper()
    if subtype in ("FLOAT", "DOUBLE"):
        return "float32"
    if subtype.endswith(("_16", "_S8", "_U8")):
        return "int16"
    if subtype.endswith(("_24", "_32")):
        return "int32"
    return "float32"


class AudioDecoder:
    """Opens an audio container and yields its packets as decoded buffers.

    libsndfile exposes a single stream per file, decoded here in fixed-size
    blocks; each block plays the role of a container packet. A block that fails
    to decode is logged and skipped so a corrupt region degrades the output
    instead of aborting it.
    """

    def __init__(self, path: Path | str, block_size: int = 4096):
        """Initialize decoder.

        Args:
            path: Audio file path
            block_size: Frames per decoded packet
        """
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        self.path = Path(path)
        self.block_size = block_size
        self.track: AudioTrack | None = None
        self._file: soundfile.SoundFile | None = None
        self._dtype = "float32"
        self.skipped_packets = 0

    def __enter__(self):
        """Context manager entry; opens the file."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit; ensure cleanup."""
        self.close()
        return False

    @property
    def total_frames(self) -> int:
        if self._file is None:
            return 0
        return max(int(self._file.frames), 0)

    def open(self) -> AudioTrack:
        """Open and probe the file, then select the first audio track.

        libsndfile identifies the format from the file content; it falls back
        to the file extension on its own only when no header matches.

        Returns:
            The selected AudioTrack

        Raises:
            AudioIOError: If the file cannot be opened
            ProbeError: If no supported container format matches
            NoAudioTrackError: If no track carries audio
        """
        try:
            with open(self.path, "rb") as f:
                f.read(1)
        except OSError as e:
            logger.error("Failed to open audio file %s: %s", self.path, e)
            raise AudioIOError(f"Failed to open audio file {self.path}: {e}") from e

        try:
            self._file = soundfile.SoundFile(str(self.path))
        except Exception as e:
            logger.error("Failed to probe audio file %s: %s", self.path, e)
            raise ProbeError(f"Failed to probe audio file {self.path}: {e}") from e

        tracks = [
            AudioTrack(
                track_id=0,
                sample_rate=int(self._file.samplerate),
                channels=int(self._file.channels),
                codec=self._file.subtype or NULL_CODEC,
            )
        ]
        track = next(
            (t for t in tracks if t.codec != NULL_CODEC and t.channels > 0),
            None,
        )
        if track is None:
            self.close()
            raise NoAudioTrackError(f"No audio track found in {self.path}")

        self.track = track
        self._dtype = _native_dtype(track.codec)
        logger.debug(
            "Probed %s: format=%s, codec=%s, %d Hz, %d channels, %d frames",
            self.path,
            self._file.format,
            track.codec,
            track.sample_rate,
            track.channels,
            self.total_frames,
        )
        return track

    def close(self) -> None:
        """Close the underlying file."""
        if self._file is not None:
            try:
                self._file.close()
            except Exception as e:
                logger.warning("Error closing audio file: %s", e)
            finally:
                self._file = None

    def buffers(self) -> Iterator[DecodedBuffer]:
        """Yield one DecodedBuffer per packet until end of stream.

        Raises:
            AudioIOError: If called before open()
        """
        if self._file is None or self.track is None:
            raise AudioIOError("Decoder is not open")

        while True:
            position = self._file.tell()
            try:
                data = self._read_block(self.block_size)
            except RuntimeError as e:
                self.skipped_packets += 1
                error = PacketDecodeError(
                    f"Failed to decode packet at frame {position}: {e}"
                )
                logger.warning("%s; skipping", error)
                next_position = position + self.block_size
                if not self._file.seekable() or next_position >= self.total_frames:
                    break
                self._file.seek(next_position)
                continue

            if data.shape[0] == 0:
                break

            yield DecodedBuffer(samples=data, sample_format=self._dtype)

    def _read_block(self, frames: int) -> np.ndarray:
        return self._file.read(frames, dtype=self._dtype, always_2d=True)


def decode_mono(
    path: Path | str,
    *,
    block_size: int = 4096,
    on_buffer: Callable[[int, int], None] | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> tuple[np.ndarray, int]:
    """Decode a file to a mono float32 stream at its native rate.

    Args:
        path: Audio file path
        block_size: Frames per decoded packet
        on_buffer: Called with (frames_done, frames_total) after each packet
        should_stop: Polled between packets; a true result aborts the decode

    Returns:
        Tuple of (samples, sample_rate)

    Raises:
        AudioIOError, ProbeError, NoAudioTrackError: On fatal decode failures
        TranscriptionCancelledError: If should_stop() became true
    """
    fragments: list[np.ndarray] = []
    frames_done = 0

    with AudioDecoder(path, block_size=block_size) as decoder:
        total = decoder.total_frames
        for buffer in decoder.buffers():
            if should_stop is not None and should_stop():
                raise TranscriptionCancelledError("decoding")
            fragments.append(to_mono(buffer))
            frames_done += buffer.frames
            if on_buffer is not None:
                on_buffer(frames_done, total)
        sample_rate = decoder.track.sample_rate
        if decoder.skipped_packets:
            logger.warning(
                "Decoded %s with %d skipped packet(s)", path, decoder.skipped_packets
            )

    if not fragments:
        return np.zeros(0, dtype=np.float32), sample_rate

    samples = np.concatenate(fragments).astype(np.float32, copy=False)
    logger.debug("Decoded %d mono samples at %d Hz", len(samples), sample_rate)
    return samples, sample_rate
