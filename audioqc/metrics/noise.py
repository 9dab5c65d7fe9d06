"""Noise floor estimation and digital silence metrics."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import _validate_mono, block_size, block_rms, block_peak, to_db


def noise_floor_dbfs_mono(
    x: np.ndarray,
    fs: float,
    *,
    window_seconds: float = 0.05,
    quiet_fraction: float = 0.3,
    bin_db: float = 1.0,
) -> float:
    """
    Estimate noise floor as the histogram mode of the quietest windows.

    Short-window RMS is computed over the signal and the quietest fraction
    of windows is binned in dB. The mean of the most populated bin is
    reported (lowest bin on ties). Exactly-zero windows stay in the quiet
    population as their own bin; when they are the most populated bin the
    floor is -inf.
    """
    x = _validate_mono(x)
    if not 0 < quiet_fraction <= 1:
        raise ValueError("quiet_fraction must be in (0, 1].")
    if bin_db <= 0:
        raise ValueError("bin_db must be positive.")
    size = block_size(fs, window_seconds)
    rms = block_rms(x, size)
    db = np.sort(to_db(rms))
    n_quiet = max(1, int(np.ceil(db.size * float(quiet_fraction))))
    quiet = db[:n_quiet]
    zeros = int(np.sum(np.isneginf(quiet)))
    quiet = quiet[np.isfinite(quiet)]
    if quiet.size == 0:
        return float("-inf")
    bins = np.floor(quiet / float(bin_db)).astype(np.int64)
    labels, counts = np.unique(bins, return_counts=True)
    if zeros >= int(np.max(counts)):
        return float("-inf")
    mode_bin = labels[int(np.argmax(counts))]
    return float(np.mean(quiet[bins == mode_bin]))


def noise_floor_per_channel(samples: np.ndarray, fs: float, **kwargs) -> list[float]:
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    return [noise_floor_dbfs_mono(x[:, idx], fs, **kwargs) for idx in range(x.shape[1])]


def overall_noise_floor(per_channel: list[float]) -> float:
    """Overall floor is the quietest channel's floor."""
    if not per_channel:
        return float("-inf")
    return float(min(per_channel))


def digital_silence(
    samples: np.ndarray,
    fs: float,
    *,
    window_seconds: float = 0.05,
) -> dict:
    """Fraction of windows in which every sample on every channel is exactly 0.0."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.size == 0:
        raise ValueError("Expected non-empty audio array.")
    size = block_size(fs, window_seconds)
    peaks = np.max(
        np.stack([block_peak(x[:, idx], size) for idx in range(x.shape[1])], axis=0),
        axis=0,
    )
    silent = int(np.sum(peaks == 0.0))
    total = int(peaks.size)
    return {
        "has_digital_silence": silent > 0,
        "percentage": float(100.0 * silent / total) if total else 0.0,
        "silent_windows": silent,
        "total_windows": total,
    }
