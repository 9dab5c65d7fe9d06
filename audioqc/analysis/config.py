from __future__ import annotations


DEFAULT_ANALYZER_CONFIG = {
    "block_seconds": 0.25,
    "normalization": {
        "target_db": -6.0,
        "tolerance_db": 0.1,
    },
    "noise_floor": {
        "window_seconds": 0.05,
        "quiet_fraction": 0.3,
        "histogram_bin_db": 1.0,
    },
    "silence": {
        "window_seconds": 0.05,
        "threshold_ratio": 0.25,
        "min_duration_seconds": 0.15,
        "silent_floor_db": -120.0,
    },
    "clipping": {
        "hard_threshold": 0.999,
        "near_threshold": 0.98,
        "max_regions": 10,
    },
    "reverb": {
        "frame_seconds": 0.01,
        "onset_rise_db": 10.0,
        "onset_lookback_frames": 5,
        "onset_margin_db": 25.0,
        "peak_search_seconds": 0.5,
        "fit_start_drop_db": 5.0,
        "fit_end_drop_db": 35.0,
        "fit_floor_margin_db": 10.0,
        "rebound_db": 6.0,
        "max_decay_seconds": 3.0,
        "min_fit_frames": 3,
        "min_fit_span_db": 10.0,
        "min_fit_r": 0.9,
        "max_rt60_seconds": 10.0,
        "labels": {
            "excellent_below": 0.3,
            "good_below": 0.6,
            "fair_below": 1.0,
        },
    },
    "stereo": {
        "silence_rms": 0.001,
        "near_identical_ratio": 0.01,
        "mono_block_fraction": 0.95,
        "dominance_ratio": 2.5,
        "min_channel_fraction": 0.1,
        "conversational_fraction": 0.5,
        "dual_mono_correlation": 0.8,
    },
    "activity": {
        "margin_db": 20.0,
        "min_threshold_db": -70.0,
    },
    "bleed": {
        "old_threshold_db": -60.0,
        "separation_threshold_db": 15.0,
        "correlation_threshold": 0.3,
        "confirmed_percentage_threshold": 0.5,
        "max_segments": 5,
    },
    "conversational": {
        "min_overlap_seconds": 0.5,
        "consistency_segment_seconds": 10.0,
        "sync_window_seconds": 0.05,
        "sync_threshold_db": -60.0,
        "in_sync_ms": 50.0,
        "slight_offset_ms": 100.0,
    },
}


def _merge_config(base: dict, overrides: dict | None) -> dict:
    if not overrides:
        return base
    merged = {**base}
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_config(base[key], value)
        else:
            merged[key] = value
    return merged


def build_analyzer_config(overrides: dict | None = None) -> dict:
    """Return merged analyzer configuration with defaults applied."""
    return _merge_config(DEFAULT_ANALYZER_CONFIG, overrides)
