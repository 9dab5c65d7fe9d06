"""Silence segmentation metrics."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import block_size, block_rms, runs_of, to_db


def silence_threshold_db(
    noise_floor_db: float,
    peak_db: float,
    *,
    threshold_ratio: float = 0.25,
    silent_floor_db: float = -120.0,
) -> float:
    """Dynamic threshold a fixed fraction of the way from noise floor to peak."""
    nf = float(noise_floor_db)
    if not np.isfinite(nf):
        nf = float(silent_floor_db)
    return nf + float(threshold_ratio) * (float(peak_db) - nf)


def detect_silence_segments(
    samples: np.ndarray,
    fs: float,
    *,
    noise_floor_db: float,
    peak_db: float,
    window_seconds: float = 0.05,
    threshold_ratio: float = 0.25,
    min_duration_seconds: float = 0.15,
    silent_floor_db: float = -120.0,
) -> dict:
    """
    Detect silent runs below a noise-floor-relative threshold.

    A window is silent when its loudest channel is below the threshold.
    Runs shorter than min_duration_seconds are dropped. Leading and
    trailing runs are those touching the file edges; the longest silence
    is taken over internal runs only.
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    if x.ndim != 2 or x.size == 0:
        raise ValueError("detect_silence_segments expects non-empty audio.")
    if fs <= 0:
        raise ValueError("detect_silence_segments expects positive sample rate.")

    n = x.shape[0]
    size = block_size(fs, window_seconds)
    levels = np.max(
        np.stack([to_db(block_rms(x[:, idx], size)) for idx in range(x.shape[1])], axis=0),
        axis=0,
    )
    if np.isneginf(peak_db):
        threshold = float("-inf")
        silent = np.ones(levels.size, dtype=bool)
    else:
        threshold = silence_threshold_db(
            noise_floor_db, peak_db,
            threshold_ratio=threshold_ratio, silent_floor_db=silent_floor_db,
        )
        silent = levels < threshold

    min_samples = int(round(float(min_duration_seconds) * fs))
    segments: list[dict] = []
    leading = 0.0
    trailing = 0.0
    internal: list[float] = []
    for start_block, end_block in runs_of(silent):
        start = start_block * size
        end = min(end_block * size, n)
        if end - start < min_samples:
            continue
        seg = {
            "start_time": float(start / fs),
            "end_time": float(end / fs),
            "duration": float((end - start) / fs),
        }
        segments.append(seg)
        touches_start = start == 0
        touches_end = end == n
        if touches_start:
            leading = seg["duration"]
        if touches_end:
            trailing = seg["duration"]
        if not touches_start and not touches_end:
            internal.append(seg["duration"])

    return {
        "threshold_db": float(threshold),
        "leading_silence": float(leading),
        "trailing_silence": float(trailing),
        "longest_silence": float(max(internal, default=0.0)),
        "segment_count": len(segments),
        "total_silence": float(sum(seg["duration"] for seg in segments)),
        "segments": segments,
    }
