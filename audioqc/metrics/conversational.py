"""Speech overlap, channel consistency and channel sync for conversational stereo."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import block_size, block_rms, runs_of, to_db


def speech_overlap(
    left_active: np.ndarray,
    right_active: np.ndarray,
    block_seconds: float,
    *,
    min_overlap_seconds: float = 0.5,
) -> dict:
    """
    Share of speech blocks where both channels are active.

    The percentage is relative to blocks where at least one channel is
    active, not to the whole file.
    """
    any_active = left_active | right_active
    both = left_active & right_active
    n_any = int(np.sum(any_active))
    percentage = float(100.0 * np.sum(both) / n_any) if n_any else 0.0

    segments = []
    for start, end in runs_of(both):
        duration = (end - start) * block_seconds
        if duration + 1e-9 < min_overlap_seconds:
            continue
        segments.append(
            {
                "start_time": float(start * block_seconds),
                "end_time": float(end * block_seconds),
                "duration": float(duration),
            }
        )
    return {
        "overlap_percentage": percentage,
        "overlap_segments": segments,
        "min_overlap_duration": float(min_overlap_seconds),
        "longest_overlap_segment": float(max((s["duration"] for s in segments), default=0.0)),
        "speech_blocks": n_any,
        "overlap_blocks": int(np.sum(both)),
    }


def channel_consistency(
    left_rms: np.ndarray,
    right_rms: np.ndarray,
    active: np.ndarray,
    block_seconds: float,
    *,
    segment_seconds: float = 10.0,
    dominance_ratio: float = 2.5,
) -> dict:
    """
    Check that the dominant speaker stays on the same channel.

    Each fixed-length segment is labeled by the plurality of left- vs
    right-dominant active blocks (balanced blocks do not vote). Segments
    whose label differs from the first labeled segment are inconsistent.
    """
    per_segment = max(1, int(round(segment_seconds / block_seconds)))
    left_dom = active & (left_rms > dominance_ratio * right_rms)
    right_dom = active & (right_rms > dominance_ratio * left_rms)

    labels: list[str | None] = []
    for start in range(0, left_rms.size, per_segment):
        n_left = int(np.sum(left_dom[start:start + per_segment]))
        n_right = int(np.sum(right_dom[start:start + per_segment]))
        if n_left > n_right:
            labels.append("left")
        elif n_right > n_left:
            labels.append("right")
        else:
            labels.append(None)

    labeled = [label for label in labels if label is not None]
    reference = labeled[0] if labeled else None
    inconsistent = sum(1 for label in labeled if label != reference)
    if labeled:
        percentage = 100.0 * (len(labeled) - inconsistent) / len(labeled)
    else:
        percentage = 100.0
    return {
        "is_consistent": inconsistent == 0,
        "consistency_percentage": float(percentage),
        "total_segments": len(labels),
        "inconsistent_segments": int(inconsistent),
        "reference_channel": reference,
    }


def _first_last_active(x: np.ndarray, size: int, threshold_db: float) -> tuple[int, int] | None:
    active = np.flatnonzero(to_db(block_rms(x, size)) > threshold_db)
    if active.size == 0:
        return None
    return int(active[0]), int(active[-1])


def channel_sync(
    samples: np.ndarray,
    fs: float,
    *,
    window_seconds: float = 0.05,
    threshold_db: float = -60.0,
    in_sync_ms: float = 50.0,
    slight_offset_ms: float = 100.0,
) -> dict:
    """Compare where speech starts and ends on each channel."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 2 or x.shape[1] != 2:
        raise ValueError("Expected stereo samples with shape (n, 2).")
    size = block_size(fs, window_seconds)
    left = _first_last_active(x[:, 0], size, threshold_db)
    right = _first_last_active(x[:, 1], size, threshold_db)
    if left is None or right is None:
        return {"sync_status": "unknown", "start_diff_ms": None, "end_diff_ms": None, "max_diff_ms": None}

    window_ms = 1000.0 * size / float(fs)
    start_diff = abs(left[0] - right[0]) * window_ms
    end_diff = abs(left[1] - right[1]) * window_ms
    max_diff = max(start_diff, end_diff)
    if max_diff < in_sync_ms:
        status = "In Sync"
    elif max_diff <= slight_offset_ms:
        status = "Slight Offset"
    else:
        status = "Out of Sync"
    return {
        "sync_status": status,
        "start_diff_ms": float(start_diff),
        "end_diff_ms": float(end_diff),
        "max_diff_ms": float(max_diff),
    }


def conversational_analysis(
    samples: np.ndarray,
    fs: float,
    *,
    left_rms: np.ndarray,
    right_rms: np.ndarray,
    left_active: np.ndarray,
    right_active: np.ndarray,
    block_seconds: float,
    config: dict,
) -> dict:
    """Overlap, consistency and sync over one shared block RMS pass."""
    active = left_active | right_active
    return {
        "overlap": speech_overlap(
            left_active, right_active, block_seconds,
            min_overlap_seconds=config["min_overlap_seconds"],
        ),
        "consistency": channel_consistency(
            left_rms, right_rms, active, block_seconds,
            segment_seconds=config["consistency_segment_seconds"],
            dominance_ratio=config.get("dominance_ratio", 2.5),
        ),
        "sync": channel_sync(
            samples, fs,
            window_seconds=config["sync_window_seconds"],
            threshold_db=config["sync_threshold_db"],
            in_sync_ms=config["in_sync_ms"],
            slight_offset_ms=config["slight_offset_ms"],
        ),
    }
