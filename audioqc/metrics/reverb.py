"""Reverberation time (RT60) estimation from transient decays."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import _validate_mono, block_size, block_rms, to_db


def energy_envelope_db(x: np.ndarray, fs: float, *, frame_seconds: float = 0.01) -> tuple[np.ndarray, float]:
    """Short-term RMS envelope in dB and its frame period in seconds."""
    x = _validate_mono(x)
    size = block_size(fs, frame_seconds)
    return to_db(block_rms(x, size)), size / float(fs)


def _fit_decay(t: np.ndarray, env: np.ndarray) -> tuple[float, float]:
    """Least-squares slope (dB/s) and Pearson r of a decay segment."""
    slope, _ = np.polyfit(t, env, 1)
    if np.std(env) == 0:
        return float(slope), 0.0
    r = float(np.corrcoef(t, env)[0, 1])
    return float(slope), r


def decay_times(
    x: np.ndarray,
    fs: float,
    *,
    noise_floor_db: float,
    frame_seconds: float = 0.01,
    onset_rise_db: float = 10.0,
    onset_lookback_frames: int = 5,
    onset_margin_db: float = 25.0,
    peak_search_seconds: float = 0.5,
    fit_start_drop_db: float = 5.0,
    fit_end_drop_db: float = 35.0,
    fit_floor_margin_db: float = 10.0,
    rebound_db: float = 6.0,
    max_decay_seconds: float = 3.0,
    min_fit_frames: int = 3,
    min_fit_span_db: float = 10.0,
    min_fit_r: float = 0.9,
    max_rt60_seconds: float = 10.0,
) -> list[float]:
    """
    Estimate RT60 for each transient-to-decay event in a mono signal.

    An onset is a frame at least onset_rise_db above the minimum of the
    preceding frames and onset_margin_db above the noise floor. The decay
    after the local peak is fit by linear regression on the dB envelope from
    peak - fit_start_drop_db down to the deeper of peak - fit_end_drop_db and
    noise floor + fit_floor_margin_db; the fit stops early when the level
    rebounds (new speech). RT60 is extrapolated as -60 / slope.
    """
    env, dt = energy_envelope_db(x, fs, frame_seconds=frame_seconds)
    nf = float(noise_floor_db) if np.isfinite(noise_floor_db) else -120.0
    lookback = max(1, int(onset_lookback_frames))
    peak_frames = max(1, int(round(peak_search_seconds / dt)))
    max_frames = max(1, int(round(max_decay_seconds / dt)))
    n = env.size

    events: list[float] = []
    i = lookback
    while i < n:
        level = env[i]
        prev_min = float(np.min(env[i - lookback:i]))
        if not (np.isfinite(level) and level - prev_min >= onset_rise_db and level >= nf + onset_margin_db):
            i += 1
            continue

        search_end = min(n, i + peak_frames)
        p = i + int(np.argmax(env[i:search_end]))
        peak = float(env[p])
        end_level = max(peak - fit_end_drop_db, nf + fit_floor_margin_db)
        limit = min(n, p + max_frames + 1)

        start = None
        for j in range(p + 1, limit):
            if env[j] <= peak - fit_start_drop_db:
                start = j
                break

        stop = search_end
        if start is not None:
            fit_idx = []
            running_min = float("inf")
            j = start
            while j < limit:
                value = float(env[j])
                if value > running_min + rebound_db:
                    break
                if np.isfinite(value):
                    fit_idx.append(j)
                    running_min = min(running_min, value)
                if value <= end_level:
                    j += 1
                    break
                j += 1
            stop = max(stop, j)

            if len(fit_idx) >= min_fit_frames:
                seg = env[fit_idx]
                if float(np.max(seg) - np.min(seg)) >= min_fit_span_db:
                    t = np.asarray(fit_idx, dtype=np.float64) * dt
                    slope, r = _fit_decay(t, seg)
                    if slope < 0 and r <= -min_fit_r:
                        rt60 = -60.0 / slope
                        if rt60 <= max_rt60_seconds:
                            events.append(float(rt60))
        i = stop
    return events


def rt60_label(
    seconds: float | None,
    *,
    excellent_below: float = 0.3,
    good_below: float = 0.6,
    fair_below: float = 1.0,
) -> str | None:
    if seconds is None:
        return None
    if seconds < excellent_below:
        return "Excellent"
    if seconds < good_below:
        return "Good"
    if seconds < fair_below:
        return "Fair"
    return "Poor"


def estimate_rt60(
    samples: np.ndarray,
    fs: float,
    *,
    noise_floor_per_channel: list[float],
    labels: dict | None = None,
    **kwargs,
) -> dict:
    """Median RT60 per channel and over all pooled events, with a quality label."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 1:
        x = x[:, None]
    labels = labels or {}
    per_channel = []
    pooled: list[float] = []
    for idx in range(x.shape[1]):
        events = decay_times(x[:, idx], fs, noise_floor_db=noise_floor_per_channel[idx], **kwargs)
        pooled.extend(events)
        median = float(np.median(events)) if events else None
        per_channel.append(
            {
                "time": median,
                "label": rt60_label(median, **labels),
                "event_count": len(events),
            }
        )
    overall = float(np.median(pooled)) if pooled else None
    return {
        "time": overall,
        "label": rt60_label(overall, **labels),
        "event_count": len(pooled),
        "per_channel_rt60": per_channel,
    }
