from __future__ import annotations

import numpy as np
import pytest

from audioqc.metrics.noise import noise_floor_dbfs_mono
from audioqc.metrics.reverb import decay_times, estimate_rt60, rt60_label
from tests.conftest import decaying_bursts

FS = 48000


def test_decay_times_recover_known_rt60():
    x = decaying_bursts(FS, rt60_s=0.5, count=3)
    nf = noise_floor_dbfs_mono(x, FS)
    events = decay_times(x, FS, noise_floor_db=nf)
    assert len(events) == 3
    assert np.median(events) == pytest.approx(0.5, abs=0.05)


def test_estimate_rt60_labels_and_pools_channels():
    left = decaying_bursts(FS, rt60_s=0.5, count=3)
    x = np.stack([left, left], axis=1)
    nf = noise_floor_dbfs_mono(left, FS)
    result = estimate_rt60(x, FS, noise_floor_per_channel=[nf, nf])
    assert result["time"] == pytest.approx(0.5, abs=0.05)
    assert result["label"] == "Good"
    assert result["event_count"] == 6
    assert [ch["event_count"] for ch in result["per_channel_rt60"]] == [3, 3]


def test_silent_input_has_no_rt60():
    result = estimate_rt60(np.zeros(FS), FS, noise_floor_per_channel=[float("-inf")])
    assert result["time"] is None
    assert result["label"] is None
    assert result["event_count"] == 0


def test_rt60_label_bands():
    assert rt60_label(None) is None
    assert rt60_label(0.2) == "Excellent"
    assert rt60_label(0.3) == "Good"
    assert rt60_label(0.8) == "Fair"
    assert rt60_label(1.0) == "Poor"
