"""Peak-bucket waveform generation for the editor timeline."""

import logging
from pathlib import Path
from typing import Callable

import numpy as np

from srt_editor._types import ProgressEvent, ProgressStatus
from srt_editor.decoder import decode_mono
from srt_editor.errors import AudioIOError
from srt_editor.progress import NullProgressSink, ProgressSink

logger = logging.getLogger(__name__)

# Fixed UI-facing schedule: decoding owns [0.0, 0.8], downsampling [0.8, 0.99],
# and 1.0 is reported once the vector is ready.
DECODE_SHARE = 0.8
DOWNSAMPLE_CEILING = 0.99
PROGRESS_EVERY_BUCKETS = 1000
DECODE_PROGRESS_STEP = 0.02


def chunk_bounds(n: int, target: int) -> list[tuple[int, int]]:
    """Partition [0, n) into ``target`` contiguous chunks.

    Every chunk is ``n // target`` long except the last, which absorbs the
    remainder. Requires ``n > target > 0``.
    """
    chunk_size = n // target
    bounds = [(i * chunk_size, (i + 1) * chunk_size) for i in range(target - 1)]
    bounds.append(((target - 1) * chunk_size, n))
    return bounds


def downsample_peaks(
    samples: np.ndarray,
    target: int,
    progress: Callable[[float], None] | None = None,
) -> np.ndarray:
    """Reduce a mono stream to at most ``target`` peak amplitudes.

    Args:
        samples: Mono float samples
        target: Number of buckets
        progress: Called with fractions in [0.8, 0.99] while bucketing

    Returns:
        float32 array of min(len(samples), target) values

    Raises:
        ValueError: If target is not positive
    """
    if target <= 0:
        raise ValueError(f"target must be positive, got {target}")

    samples = np.asarray(samples, dtype=np.float32)
    n = len(samples)
    if n == 0:
        return np.zeros(0, dtype=np.float32)

    if n <= target:
        if progress is not None:
            progress(0.9)
        return np.abs(samples)

    magnitudes = np.abs(samples)
    peaks = np.empty(target, dtype=np.float32)
    last = target - 1
    for i, (start, end) in enumerate(chunk_bounds(n, target)):
        peaks[i] = magnitudes[start:end].max()
        if progress is not None and (i % PROGRESS_EVERY_BUCKETS == 0 or i == last):
            fraction = DECODE_SHARE + (i + 1) / target * (1.0 - DECODE_SHARE)
            progress(DOWNSAMPLE_CEILING if i == last else min(fraction, DOWNSAMPLE_CEILING))

    return peaks


class WaveformGenerator:
    """Decodes a file and reduces it to a fixed-length peak vector."""

    def __init__(self, block_size: int = 4096):
        self.block_size = block_size

    def generate(
        self,
        path: Path | str,
        target_samples: int,
        sink: ProgressSink | None = None,
    ) -> np.ndarray:
        """Generate waveform data for an audio file.

        Reports 0.0 once at start and 1.0 once at completion; everything in
        between is strictly inside that range and non-decreasing.

        Args:
            path: Audio file path
            target_samples: Number of peak buckets
            sink: Progress sink receiving fractions in [0, 1]

        Returns:
            float32 array of min(decoded samples, target_samples) peaks

        Raises:
            AudioIOError: If the file cannot be read or holds no samples
            ProbeError, NoAudioTrackError: If the file is not usable audio
            ValueError: If target_samples is not positive
        """
        if target_samples <= 0:
            raise ValueError(f"target_samples must be positive, got {target_samples}")

        sink = sink or NullProgressSink()
        reported = 0.0

        def report(fraction: float, message: str) -> None:
            nonlocal reported
            reported = max(reported, fraction)
            sink.emit(ProgressEvent(reported, message, ProgressStatus.WAVEFORM))

        def on_buffer(done: int, total: int) -> None:
            if total <= 0:
                return
            fraction = min(done / total * DECODE_SHARE, DECODE_SHARE - DECODE_PROGRESS_STEP)
            if fraction > reported + DECODE_PROGRESS_STEP:
                report(fraction, "Decoding audio...")

        logger.info("Generating waveform for %s (%d buckets)", path, target_samples)
        report(0.0, "Decoding audio...")

        samples, sample_rate = decode_mono(path, block_size=self.block_size, on_buffer=on_buffer)
        if len(samples) == 0:
            raise AudioIOError(f"No audio samples extracted from {path}")

        report(DECODE_SHARE, "Building waveform...")
        peaks = downsample_peaks(
            samples,
            target_samples,
            progress=lambda fraction: report(fraction, "Building waveform..."),
        )
        report(1.0, "Waveform ready")

        logger.info(
            "Waveform ready: %d samples at %d Hz -> %d peaks",
            len(samples),
            sample_rate,
            len(peaks),
        )
        return peaks


def generate_waveform(path: Path | str, target_samples: int) -> np.ndarray:
    """Generate waveform data without progress reporting."""
    return WaveformGenerator().generate(path, target_samples)
