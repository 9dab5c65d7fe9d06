"""Peak level and normalization metrics."""
from __future__ import annotations

import numpy as np


def _validate_frames(samples: np.ndarray) -> np.ndarray:
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2:
        raise ValueError("Expected mono or multichannel audio array.")
    if x.size == 0:
        raise ValueError("Expected non-empty audio array.")
    return x


def peak_dbfs(samples: np.ndarray) -> float:
    """Compute sample peak in dBFS across all channels."""
    x = _validate_frames(samples)
    peak = float(np.max(np.abs(x)))
    if peak <= 0:
        return float("-inf")
    return float(20.0 * np.log10(peak))


def normalization_status(
    peak_db: float,
    *,
    target_db: float = -6.0,
    tolerance_db: float = 0.1,
) -> dict:
    """
    Classify a peak level against a normalization target.

    Silence (peak of -inf) is too_quiet with an infinite distance.
    """
    distance = float(peak_db) - float(target_db)
    if abs(distance) <= float(tolerance_db):
        status = "normalized"
        message = f"Peak is at target ({target_db:g} dB)"
    elif distance > 0:
        status = "too_loud"
        message = f"Peak is {distance:.1f} dB above target ({target_db:g} dB)"
    else:
        status = "too_quiet"
        if np.isinf(distance):
            message = "File is silent"
        else:
            message = f"Peak is {abs(distance):.1f} dB below target ({target_db:g} dB)"
    return {
        "status": status,
        "target_db": float(target_db),
        "distance_db": distance,
        "tolerance_db": float(tolerance_db),
        "message": message,
    }
