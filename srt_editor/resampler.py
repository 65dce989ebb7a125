"""Sample-rate conversion for inference input."""

import logging
from math import gcd

import numpy as np

logger = logging.getLogger(__name__)

RESAMPLE_METHODS = ("hold", "polyphase")


def output_length(n: int, from_rate: int, to_rate: int) -> int:
    """Number of output samples: floor(n / (from_rate / to_rate))."""
    return (n * to_rate) // from_rate


def resample(
    samples: np.ndarray,
    from_rate: int,
    to_rate: int,
    method: str = "hold",
) -> np.ndarray:
    """Convert a mono stream between sample rates.

    The default ``hold`` method picks the nearest prior input sample for every
    output step (zero-order hold). It is cheap and adequate for speech
    recognition input but aliases, so it is not suitable where spectral
    fidelity matters. ``polyphase`` filters with scipy's polyphase resampler.
    Both return exactly ``floor(len(samples) * to_rate / from_rate)`` samples.

    Args:
        samples: Mono float32 samples
        from_rate: Input sample rate in Hz
        to_rate: Output sample rate in Hz
        method: "hold" or "polyphase"

    Returns:
        Resampled float32 array (the input itself when rates match)

    Raises:
        ValueError: If a rate is not positive or method is unknown
    """
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {from_rate} -> {to_rate}")
    if method not in RESAMPLE_METHODS:
        raise ValueError(
            f"Invalid resample method '{method}'. "
            f"Must be one of: {', '.join(RESAMPLE_METHODS)}"
        )

    if from_rate == to_rate:
        return samples

    n = len(samples)
    out_len = output_length(n, from_rate, to_rate)
    logger.debug(
        "Resampling %d samples from %d Hz to %d Hz (%s) -> %d samples",
        n,
        from_rate,
        to_rate,
        method,
        out_len,
    )

    if out_len == 0:
        return np.zeros(0, dtype=np.float32)

    if method == "hold":
        src_idx = (np.arange(out_len, dtype=np.int64) * from_rate) // to_rate
        return np.asarray(samples, dtype=np.float32)[src_idx]

    from scipy.signal import resample_poly

    divisor = gcd(from_rate, to_rate)
    filtered = resample_poly(
        np.asarray(samples, dtype=np.float32),
        to_rate // divisor,
        from_rate // divisor,
    )
    if len(filtered) >= out_len:
        filtered = filtered[:out_len]
    else:
        filtered = np.pad(filtered, (0, out_len - len(filtered)))
    return filtered.astype(np.float32)
