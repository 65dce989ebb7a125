"""Conversion of decoded buffers to mono float32 in [-1.0, 1.0].

Known limitation: a buffer in a representation other than float32, int16,
int32 or uint8 yields an empty fragment instead of failing the pipeline, so an
unexpected codec output silently shortens the stream rather than aborting it.
"""

import logging

import numpy as np

from srt_editor._types import DecodedBuffer, SUPPORTED_SAMPLE_FORMATS
from srt_editor.errors import UnsupportedSampleFormatError

logger = logging.getLogger(__name__)

_INT_SCALE = {
    "int16": 32768.0,
    "int32": 2147483648.0,
}


def to_mono(buffer: DecodedBuffer) -> np.ndarray:
    """Downmix and scale one decoded buffer.

    Args:
        buffer: Decoded samples shaped (frames, channels)

    Returns:
        float32 array with one value per frame
    """
    fmt = buffer.sample_format
    if fmt not in SUPPORTED_SAMPLE_FORMATS:
        error = UnsupportedSampleFormatError(f"Unsupported sample format '{fmt}'")
        logger.warning("%s; dropping %d frames", error, buffer.frames)
        return np.zeros(0, dtype=np.float32)

    data = buffer.samples
    if data.ndim == 1:
        data = data[:, None]
    if data.shape[0] == 0:
        return np.zeros(0, dtype=np.float32)

    if fmt == "float32":
        scaled = data.astype(np.float32, copy=False)
    elif fmt == "uint8":
        scaled = (data.astype(np.float32) - 128.0) / 128.0
    else:
        scaled = data.astype(np.float32) / _INT_SCALE[fmt]

    if scaled.shape[1] == 1:
        return np.ascontiguousarray(scaled[:, 0], dtype=np.float32)

    return scaled.mean(axis=1, dtype=np.float32)
