from __future__ import annotations

import numpy as np
import pytest

from audioqc.metrics.clipping import channel_name, detect_clipping
from audioqc.metrics.levels import peak_dbfs
from audioqc.metrics.noise import noise_floor_dbfs_mono
from audioqc.metrics.silence import detect_silence_segments, silence_threshold_db
from tests.conftest import bursts_with_gap, tone


def test_single_internal_gap_is_longest_silence():
    fs = 48000
    x = bursts_with_gap(fs, gap_s=3.0)
    result = detect_silence_segments(
        x, fs, noise_floor_db=noise_floor_dbfs_mono(x, fs), peak_db=peak_dbfs(x)
    )
    assert result["segment_count"] == 1
    seg = result["segments"][0]
    assert seg["start_time"] == pytest.approx(1.0, abs=0.05)
    assert seg["duration"] == pytest.approx(3.0, abs=0.05)
    assert result["longest_silence"] == pytest.approx(3.0, abs=0.05)
    assert result["leading_silence"] == 0.0
    assert result["trailing_silence"] == 0.0


def test_digital_zero_gap_is_one_internal_segment():
    fs = 48000
    x = bursts_with_gap(fs, gap_s=3.0, bed_amp=0.0)
    result = detect_silence_segments(
        x, fs, noise_floor_db=noise_floor_dbfs_mono(x, fs), peak_db=peak_dbfs(x)
    )
    assert result["segments"] == [{"start_time": 1.0, "end_time": 4.0, "duration": 3.0}]
    assert result["longest_silence"] == pytest.approx(3.0)
    assert result["leading_silence"] == 0.0
    assert result["trailing_silence"] == 0.0


def test_leading_and_trailing_silence_are_not_internal():
    fs = 48000
    x = np.concatenate([np.zeros(fs // 2), tone(1.0, fs), np.zeros(fs)])
    x = x + 1e-4 * np.random.default_rng(2).standard_normal(x.size)
    result = detect_silence_segments(
        x, fs, noise_floor_db=noise_floor_dbfs_mono(x, fs), peak_db=peak_dbfs(x)
    )
    assert result["leading_silence"] == pytest.approx(0.5, abs=0.05)
    assert result["trailing_silence"] == pytest.approx(1.0, abs=0.05)
    assert result["longest_silence"] == 0.0


def test_silent_file_is_one_segment():
    fs = 8000
    result = detect_silence_segments(np.zeros(fs), fs, noise_floor_db=float("-inf"), peak_db=float("-inf"))
    assert result["segment_count"] == 1
    assert result["total_silence"] == pytest.approx(1.0)


def test_short_gaps_are_ignored():
    fs = 48000
    x = bursts_with_gap(fs, gap_s=0.1)
    result = detect_silence_segments(x, fs, noise_floor_db=-80.0, peak_db=peak_dbfs(x))
    assert result["segment_count"] == 0


def test_silence_threshold_is_between_floor_and_peak():
    assert silence_threshold_db(-80.0, 0.0) == pytest.approx(-60.0)
    assert silence_threshold_db(float("-inf"), 0.0) == pytest.approx(-90.0)


def test_clipping_counts_runs_and_near_band():
    x = np.array([0.0, 1.0, 1.0, 0.0, 0.99, 0.0, -1.0, 0.0])
    result = detect_clipping(x, 8)
    assert result["clipped_percentage"] == pytest.approx(37.5)
    assert result["clipping_event_count"] == 2
    assert result["near_clipping_percentage"] == pytest.approx(12.5)
    assert result["near_clipping_event_count"] == 1
    regions = result["hard_clipping_regions"]
    assert regions[0]["sample_count"] == 2
    assert regions[0]["start_time"] == pytest.approx(1 / 8)
    assert regions[0]["channel_name"] == "Mono"


def test_clean_tone_has_no_clipping():
    result = detect_clipping(tone(1.0, 48000, amp=0.5), 48000)
    assert result["clipped_percentage"] == 0.0
    assert result["clipping_event_count"] == 0
    assert result["hard_clipping_regions"] == []


def test_clipping_per_channel_names():
    fs = 48000
    clipped = np.clip(tone(0.5, fs, amp=1.5), -1.0, 1.0)
    x = np.stack([clipped, tone(0.5, fs, amp=0.3)], axis=1)
    result = detect_clipping(x, fs, max_regions=3)
    left, right = result["per_channel"]
    assert left["channel_name"] == "Left"
    assert left["clipped_samples"] > 0
    assert right["clipped_samples"] == 0
    assert len(result["hard_clipping_regions"]) == 3
    assert channel_name(2, 6) == "Channel 3"
