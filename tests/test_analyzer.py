from __future__ import annotations

import numpy as np
import pytest

from audioqc.analysis.analyzer import LevelAnalyzer, analyze_buffer
from audioqc.analysis.config import DEFAULT_ANALYZER_CONFIG, build_analyzer_config
from audioqc.errors import AnalysisError
from audioqc.types import AnalysisMode, AudioBuffer, StereoType
from tests.conftest import bursts_with_gap, conversational_stereo, tone

FS = 48000


def _buffer(samples: np.ndarray, fs: int = FS) -> AudioBuffer:
    x = samples if samples.ndim == 2 else samples[:, None]
    return AudioBuffer(samples=x, fs=float(fs), duration=x.shape[0] / fs, channels=x.shape[1])


def test_cheap_metrics_only_outside_experimental_mode():
    metrics = analyze_buffer(_buffer(bursts_with_gap(FS)), AnalysisMode.AUDIO_ONLY)
    assert metrics.peak_db == pytest.approx(-6.02, abs=0.05)
    assert metrics.normalization["status"] == "normalized"
    assert metrics.noise_floor_db == pytest.approx(-80.0, abs=1.5)
    assert metrics.clipping["clipped_percentage"] == 0.0
    assert metrics.reverb is None
    assert metrics.silence is None
    assert metrics.stereo_separation is None
    assert metrics.mode is AnalysisMode.AUDIO_ONLY


def test_experimental_mono_adds_reverb_and_silence():
    metrics = LevelAnalyzer().analyze(_buffer(bursts_with_gap(FS)), AnalysisMode.EXPERIMENTAL)
    assert metrics.silence["longest_silence"] == pytest.approx(3.0, abs=0.05)
    assert "per_channel_rt60" in metrics.reverb
    assert metrics.stereo_separation is None
    assert metrics.mic_bleed is None
    assert metrics.conversational is None


def test_experimental_digital_zero_gap():
    metrics = analyze_buffer(_buffer(bursts_with_gap(FS, bed_amp=0.0)), AnalysisMode.EXPERIMENTAL)
    assert np.isneginf(metrics.noise_floor_db)
    assert metrics.digital_silence["percentage"] == pytest.approx(60.0)
    assert metrics.silence["segment_count"] == 1
    assert metrics.silence["longest_silence"] == pytest.approx(3.0)
    assert metrics.silence["leading_silence"] == 0.0


def test_experimental_identical_stereo_stops_at_classification():
    mono = tone(2.0, FS, amp=0.3)
    metrics = analyze_buffer(_buffer(np.stack([mono, mono], axis=1)), AnalysisMode.EXPERIMENTAL)
    assert metrics.stereo_separation["stereo_type"] == StereoType.MONO.value
    assert metrics.mic_bleed is None
    assert metrics.conversational is None


def test_experimental_conversational_bundle():
    x = conversational_stereo(FS, overlap_s=1.0)
    metrics = analyze_buffer(_buffer(x), AnalysisMode.EXPERIMENTAL)
    assert metrics.stereo_separation["stereo_type"] == StereoType.CONVERSATIONAL.value
    overlap = metrics.conversational["overlap"]
    assert overlap["overlap_percentage"] == pytest.approx(100.0 * 12 / 32, abs=1.0)
    assert overlap["longest_overlap_segment"] == pytest.approx(1.0)
    assert len(overlap["overlap_segments"]) == 3
    assert metrics.mic_bleed["old"]["detected"] is False
    assert metrics.mic_bleed["verdict"] == "no bleed"
    assert metrics.conversational["sync"]["sync_status"] in ("In Sync", "Slight Offset", "Out of Sync")


def test_empty_buffer_raises_analysis_error():
    empty = AudioBuffer(samples=np.zeros((0, 1)), fs=48000.0, duration=0.0, channels=1)
    with pytest.raises(AnalysisError) as excinfo:
        LevelAnalyzer().analyze(empty)
    assert excinfo.value.analysis_type == "input"


def test_non_finite_samples_raise_analysis_error():
    x = tone(0.5, FS)
    x[10] = np.nan
    with pytest.raises(AnalysisError):
        LevelAnalyzer().analyze(_buffer(x))


def test_config_overrides_merge_with_defaults():
    cfg = build_analyzer_config({"normalization": {"target_db": -3.0}})
    assert cfg["normalization"]["target_db"] == -3.0
    assert cfg["normalization"]["tolerance_db"] == DEFAULT_ANALYZER_CONFIG["normalization"]["tolerance_db"]
    assert DEFAULT_ANALYZER_CONFIG["normalization"]["target_db"] == -6.0

    metrics = LevelAnalyzer(cfg).analyze(_buffer(tone(1.0, FS, amp=0.5)), AnalysisMode.FULL)
    assert metrics.normalization["status"] == "too_quiet"
