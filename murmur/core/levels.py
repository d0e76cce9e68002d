"""
Audio Level Helpers for Murmur

Producer-side helpers that turn captured audio chunks into the raw level
samples posted to the overlay.
"""

from typing import Iterator, Sequence, Union
import math

import numpy as np

ArrayLike = Union[np.ndarray, Sequence[float]]


def compute_rms(samples: ArrayLike) -> float:
    """
    Root-mean-square amplitude of a chunk of float samples.

    Args:
        samples: Mono float32 samples in the -1.0..1.0 range

    Returns:
        RMS level (0.0 for an empty chunk)

    Example:
        >>> compute_rms(np.full(160, 0.05, dtype=np.float32))
        0.05...
    """
    chunk = np.asarray(samples, dtype=np.float64)
    if chunk.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(chunk * chunk)))


def synthetic_levels(
    sample_rate: int = 16000,
    chunk_ms: int = 30,
    tone_hz: float = 220.0,
    envelope_hz: float = 0.7,
    peak: float = 0.25,
    seed: int = 0
) -> Iterator[float]:
    """
    Endless stream of RMS levels from a generated speech-like signal.

    A tone amplitude-modulated by a slow envelope plus a little noise.
    Used by `murmur --demo` to drive the overlay without a microphone.

    Args:
        sample_rate: Samples per second of the generated signal
        chunk_ms: Chunk length; one level is produced per chunk
        tone_hz: Carrier frequency
        envelope_hz: Syllable-like modulation rate
        peak: Peak amplitude
        seed: Noise generator seed

    Yields:
        One RMS level per chunk
    """
    rng = np.random.default_rng(seed)
    chunk_len = max(1, sample_rate * chunk_ms // 1000)
    offset = 0

    while True:
        t = (offset + np.arange(chunk_len)) / sample_rate
        envelope = np.abs(np.sin(math.pi * envelope_hz * t))
        chunk = peak * envelope * np.sin(2.0 * math.pi * tone_hz * t)
        chunk += rng.normal(0.0, 0.002, chunk_len)
        offset += chunk_len
        yield compute_rms(chunk.astype(np.float32))
