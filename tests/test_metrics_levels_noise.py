from __future__ import annotations

import numpy as np
import pytest

from audioqc.metrics.blocks import activity_threshold_db, block_rms, runs_of, to_db
from audioqc.metrics.levels import normalization_status, peak_dbfs
from audioqc.metrics.noise import digital_silence, noise_floor_dbfs_mono, noise_floor_per_channel, overall_noise_floor
from tests.conftest import bursts_with_gap, noise, tone


def test_peak_dbfs_takes_loudest_channel():
    x = np.stack([tone(0.5, 8000, amp=0.25), tone(0.5, 8000, amp=0.5)], axis=1)
    assert peak_dbfs(x) == pytest.approx(20 * np.log10(0.5), abs=1e-3)
    assert peak_dbfs(x[:, 0]) == pytest.approx(20 * np.log10(0.25), abs=1e-3)


def test_normalization_status_classes():
    at_target = normalization_status(-6.05)
    assert at_target["status"] == "normalized"
    loud = normalization_status(-3.0)
    assert loud["status"] == "too_loud"
    assert loud["distance_db"] == pytest.approx(3.0)
    quiet = normalization_status(-12.0)
    assert quiet["status"] == "too_quiet"


def test_all_zero_input_is_silent_not_nan():
    x = np.zeros(48000)
    peak = peak_dbfs(x)
    assert np.isneginf(peak)
    status = normalization_status(peak)
    assert status["status"] == "too_quiet"
    assert np.isneginf(status["distance_db"])
    assert status["message"] == "File is silent"
    assert np.isneginf(noise_floor_dbfs_mono(x, 48000))
    silence = digital_silence(x, 48000)
    assert silence["has_digital_silence"] is True
    assert silence["percentage"] == pytest.approx(100.0)


def test_noise_floor_tracks_quiet_passages():
    fs = 48000
    bed = noise(4.0, fs, amp=1e-3, seed=3)
    speech = bed.copy()
    speech[fs:3 * fs] += tone(2.0, fs, amp=0.5)
    nf = noise_floor_dbfs_mono(speech, fs)
    assert nf == pytest.approx(-60.0, abs=1.5)


def test_noise_floor_is_silent_when_digital_silence_dominates():
    fs = 48000
    x = np.concatenate([np.zeros(fs), noise(2.0, fs, amp=1e-3, seed=4)])
    assert np.isneginf(noise_floor_dbfs_mono(x, fs))
    silence = digital_silence(x, fs)
    assert silence["percentage"] == pytest.approx(100.0 / 3.0, abs=0.5)


def test_noise_floor_keeps_bed_level_with_a_few_zero_windows():
    fs = 48000
    x = np.concatenate([np.zeros(fs // 10), noise(3.9, fs, amp=1e-3, seed=4)])
    assert noise_floor_dbfs_mono(x, fs) == pytest.approx(-60.0, abs=1.5)


def test_noise_floor_of_speech_with_digital_silence_gap():
    fs = 48000
    x = bursts_with_gap(fs, gap_s=3.0, bed_amp=0.0)
    assert np.isneginf(noise_floor_dbfs_mono(x, fs))


def test_overall_noise_floor_is_quietest_channel():
    fs = 48000
    x = np.stack([noise(1.0, fs, amp=1e-2, seed=5), noise(1.0, fs, amp=1e-4, seed=6)], axis=1)
    per_channel = noise_floor_per_channel(x, fs)
    assert per_channel[0] > per_channel[1]
    assert overall_noise_floor(per_channel) == per_channel[1]


def test_block_helpers():
    x = np.array([1.0, 1.0, 1.0, 0.0, 0.0])
    rms = block_rms(x, 2)
    assert np.allclose(rms, [1.0, np.sqrt(0.5), 0.0])
    db = to_db(rms)
    assert db[0] == 0.0
    assert np.isneginf(db[2])
    assert runs_of(np.array([True, True, False, True])) == [(0, 2), (3, 4)]
    assert activity_threshold_db(-100.0) == -70.0
    assert activity_threshold_db(-60.0) == -40.0
