"""Microphone bleed detection for two-channel recordings.

Two independent estimators run over the same block RMS data. The legacy
method measures the absolute level of the idle channel while the other
speaks; the separation method looks at how far the dominant channel
stands above the other and whether the two are correlated. Either one
flagging yields a "possible bleed" verdict.
"""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import runs_of, to_db

# separation for blocks where the other channel is exactly zero
_MAX_SEPARATION_DB = 120.0


def _mean_level_db(rms: np.ndarray) -> float:
    if rms.size == 0:
        return float("-inf")
    return float(to_db(float(np.mean(rms))))


def bleed_legacy(
    left_rms: np.ndarray,
    right_rms: np.ndarray,
    left_active: np.ndarray,
    right_active: np.ndarray,
    *,
    threshold_db: float = -60.0,
) -> dict:
    """Idle-channel level (dBFS) during blocks where only the other channel is active."""
    left_db = _mean_level_db(left_rms[right_active & ~left_active])
    right_db = _mean_level_db(right_rms[left_active & ~right_active])
    return {
        "left_channel_bleed_db": left_db,
        "right_channel_bleed_db": right_db,
        "threshold_db": float(threshold_db),
        "detected": bool(left_db > threshold_db or right_db > threshold_db),
    }


def separation_db(left_rms: np.ndarray, right_rms: np.ndarray) -> np.ndarray:
    """Dominant-over-other level difference per block, capped for silent partners."""
    dominant = np.maximum(left_rms, right_rms)
    other = np.minimum(left_rms, right_rms)
    sep = np.full(dominant.shape, _MAX_SEPARATION_DB, dtype=np.float64)
    np.divide(dominant, other, out=sep, where=other > 0)
    sep = np.where(other > 0, to_db(sep), _MAX_SEPARATION_DB)
    return np.minimum(sep, _MAX_SEPARATION_DB)


def bleed_separation(
    left_rms: np.ndarray,
    right_rms: np.ndarray,
    correlation: np.ndarray,
    active: np.ndarray,
    block_seconds: float,
    *,
    separation_threshold_db: float = 15.0,
    correlation_threshold: float = 0.3,
    confirmed_percentage_threshold: float = 0.5,
    max_segments: int = 5,
) -> dict:
    """
    Separation-and-correlation bleed estimator over active blocks.

    A block is confirmed bleed when the channels are separated by less
    than separation_threshold_db and correlated above correlation_threshold.
    Severity (0-100) weighs how shallow the separation is in confirmed
    blocks against how many blocks are affected (saturating at 10%).
    """
    n_active = int(np.sum(active))
    if n_active == 0:
        return {
            "median_separation": None,
            "p10_separation": None,
            "percentage_confirmed_bleed": 0.0,
            "severity_score": 0.0,
            "peak_correlation": 0.0,
            "bleed_segments": [],
            "detected": False,
        }

    sep = separation_db(left_rms, right_rms)
    confirmed = active & (sep < separation_threshold_db) & (correlation > correlation_threshold)
    percentage = float(100.0 * np.sum(confirmed) / n_active)
    if np.any(confirmed):
        magnitude = float(np.mean(np.clip(1.0 - sep[confirmed] / separation_threshold_db, 0.0, 1.0)))
    else:
        magnitude = 0.0
    severity = 100.0 * (0.5 * magnitude + 0.5 * min(percentage / 10.0, 1.0))

    segments = []
    for start, end in runs_of(confirmed):
        segments.append(
            {
                "start_time": float(start * block_seconds),
                "end_time": float(end * block_seconds),
                "duration": float((end - start) * block_seconds),
                "correlation": float(np.mean(correlation[start:end])),
                "separation_db": float(np.median(sep[start:end])),
            }
        )
    segments.sort(key=lambda s: (-s["duration"], -s["correlation"], s["start_time"]))

    return {
        "median_separation": float(np.median(sep[active])),
        "p10_separation": float(np.percentile(sep[active], 10)),
        "percentage_confirmed_bleed": percentage,
        "severity_score": float(severity),
        "peak_correlation": float(np.max(np.abs(correlation[active]))),
        "bleed_segments": segments[:max(0, int(max_segments))],
        "detected": bool(percentage > confirmed_percentage_threshold),
    }


def detect_mic_bleed(legacy: dict, separation: dict) -> dict:
    """Combine both estimators; either one flagging reports possible bleed."""
    detected = bool(legacy["detected"] or separation["detected"])
    return {
        "old": legacy,
        "new": separation,
        "detected": detected,
        "verdict": "possible bleed" if detected else "no bleed",
    }
