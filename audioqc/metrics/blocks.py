"""Shared framing helpers for block-based metrics."""
from __future__ import annotations

import numpy as np


def _validate_mono(x: np.ndarray) -> np.ndarray:
    """Validate and coerce mono audio arrays."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("Expected 1D mono audio array.")
    if x.size == 0:
        raise ValueError("Expected non-empty audio array.")
    return x


def block_size(fs: float, seconds: float) -> int:
    if fs <= 0:
        raise ValueError("Sample rate must be positive.")
    if seconds <= 0:
        raise ValueError("Block length must be positive.")
    return max(1, int(round(float(seconds) * float(fs))))


def frame_blocks(x: np.ndarray, size: int) -> np.ndarray:
    """
    Split a mono signal into non-overlapping blocks.

    The trailing partial block is zero-padded so every sample is covered;
    callers that need exact-zero detection must use block_lengths().
    """
    x = _validate_mono(x)
    n_blocks = int(np.ceil(x.size / size))
    padded = np.zeros(n_blocks * size, dtype=np.float64)
    padded[:x.size] = x
    return padded.reshape(n_blocks, size)


def block_lengths(n_samples: int, size: int) -> np.ndarray:
    n_blocks = int(np.ceil(n_samples / size))
    lengths = np.full(n_blocks, size, dtype=np.int64)
    if n_blocks and n_samples % size:
        lengths[-1] = n_samples % size
    return lengths


def block_rms(x: np.ndarray, size: int) -> np.ndarray:
    """Per-block RMS of a mono signal (partial last block uses its true length)."""
    frames = frame_blocks(x, size)
    lengths = block_lengths(np.asarray(x).size, size)
    return np.sqrt(np.sum(frames ** 2, axis=1) / lengths)


def block_peak(x: np.ndarray, size: int) -> np.ndarray:
    return np.max(np.abs(frame_blocks(x, size)), axis=1)


def to_db(values: np.ndarray | float) -> np.ndarray:
    """Amplitude to dBFS, mapping zero to -inf without warnings."""
    v = np.asarray(values, dtype=np.float64)
    out = np.full(v.shape, float("-inf"), dtype=np.float64)
    np.log10(v, out=out, where=v > 0)
    return np.where(v > 0, 20.0 * out, float("-inf"))


def runs_of(mask: np.ndarray) -> list[tuple[int, int]]:
    """Return (start, end_exclusive) index pairs of True runs."""
    m = np.asarray(mask, dtype=bool)
    if m.size == 0:
        return []
    padded = np.concatenate(([False], m, [False]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    return [(int(s), int(e)) for s, e in zip(edges[::2], edges[1::2])]


def activity_threshold_db(noise_floor_db: float, *, margin_db: float = 20.0, min_threshold_db: float = -70.0) -> float:
    """Speech-activity threshold for one channel: noise floor plus a margin, floored."""
    return float(max(float(noise_floor_db) + float(margin_db), float(min_threshold_db)))


def activity_mask(rms: np.ndarray, threshold_db: float) -> np.ndarray:
    return to_db(rms) > threshold_db
