"""Clipping detection metrics."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import _validate_mono


def channel_name(idx: int, channels: int) -> str:
    if channels == 1:
        return "Mono"
    if channels == 2:
        return ("Left", "Right")[idx]
    return f"Channel {idx + 1}"


def _runs(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Start indices and lengths of contiguous True runs."""
    indices = np.flatnonzero(mask)
    if indices.size == 0:
        empty = np.array([], dtype=np.int64)
        return empty, empty
    gaps = np.flatnonzero(np.diff(indices) > 1)
    run_starts = np.concatenate(([0], gaps + 1))
    run_ends = np.concatenate((gaps, [indices.size - 1]))
    return indices[run_starts], indices[run_ends] - indices[run_starts] + 1


def _clipping_stats_mono(x: np.ndarray, *, hard: float, near: float) -> dict:
    x = _validate_mono(x)
    abs_x = np.abs(x)
    hard_mask = abs_x >= hard
    near_mask = (abs_x >= near) & ~hard_mask
    hard_starts, hard_lengths = _runs(hard_mask)
    _, near_lengths = _runs(near_mask)
    return {
        "total_samples": int(x.size),
        "clipped_samples": int(np.sum(hard_mask)),
        "clipped_percentage": float(100.0 * np.sum(hard_mask) / x.size),
        "clipping_event_count": int(hard_lengths.size),
        "near_clipping_samples": int(np.sum(near_mask)),
        "near_clipping_percentage": float(100.0 * np.sum(near_mask) / x.size),
        "near_clipping_event_count": int(near_lengths.size),
        "max_run_length": int(np.max(hard_lengths)) if hard_lengths.size else 0,
        "_hard_runs": (hard_starts, hard_lengths),
    }


def detect_clipping(
    samples: np.ndarray,
    fs: float,
    *,
    hard_threshold: float = 0.999,
    near_threshold: float = 0.98,
    max_regions: int = 10,
) -> dict:
    """
    Detect hard and near clipping per channel.

    Hard clipping is |x| >= hard_threshold; near clipping is the band
    [near_threshold, hard_threshold). Percentages are 0-100 of all samples.
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or x.size == 0:
        raise ValueError("Expected non-empty mono or multichannel audio array.")
    if not 0 < near_threshold < hard_threshold:
        raise ValueError("near_threshold must be positive and below hard_threshold.")

    n_ch = x.shape[1]
    per_channel = []
    regions = []
    for idx in range(n_ch):
        stats = _clipping_stats_mono(x[:, idx], hard=hard_threshold, near=near_threshold)
        starts, lengths = stats.pop("_hard_runs")
        name = channel_name(idx, n_ch)
        per_channel.append({"channel_name": name, **stats})
        for start, length in zip(starts, lengths):
            regions.append(
                {
                    "channel_name": name,
                    "start_time": float(start / fs),
                    "end_time": float((start + length) / fs),
                    "sample_count": int(length),
                }
            )

    total = int(x.size)
    clipped = sum(ch["clipped_samples"] for ch in per_channel)
    near = sum(ch["near_clipping_samples"] for ch in per_channel)
    # largest first; start time keeps ordering deterministic on ties
    regions.sort(key=lambda r: (-r["sample_count"], r["start_time"], r["channel_name"]))
    return {
        "clipped_percentage": float(100.0 * clipped / total),
        "clipping_event_count": int(sum(ch["clipping_event_count"] for ch in per_channel)),
        "near_clipping_percentage": float(100.0 * near / total),
        "near_clipping_event_count": int(sum(ch["near_clipping_event_count"] for ch in per_channel)),
        "per_channel": per_channel,
        "hard_clipping_regions": regions[:max(0, int(max_regions))],
    }
