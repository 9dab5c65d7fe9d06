"""Stereo separation classification."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import block_size, block_rms
from audioqc.metrics.correlation import block_correlation
from audioqc.types import StereoType


def _result(stereo_type: StereoType, confidence: float, **details) -> dict:
    return {
        "stereo_type": stereo_type.value,
        "stereo_confidence": float(min(max(confidence, 0.0), 1.0)),
        **details,
    }


def classify_stereo(
    samples: np.ndarray,
    fs: float,
    *,
    block_seconds: float = 0.25,
    silence_rms: float = 0.001,
    near_identical_ratio: float = 0.01,
    mono_block_fraction: float = 0.95,
    dominance_ratio: float = 2.5,
    min_channel_fraction: float = 0.1,
    conversational_fraction: float = 0.5,
    dual_mono_correlation: float = 0.8,
) -> dict:
    """
    Classify the relationship between the two channels of a stereo file.

    Blocks where both channels are below silence_rms are ignored. The
    first matching rule wins:
      - identical or near-identical channels in nearly every active block: Mono
      - each channel dominant for a meaningful share of blocks: Conversational Stereo
      - highly correlated channels: Dual Mono
      - one channel carrying nearly all the signal: True Stereo with reason
        left_only or right_only
      - otherwise: True Stereo
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 2 or x.shape[1] != 2:
        raise ValueError("Expected stereo samples with shape (n, 2).")
    if x.shape[0] == 0:
        raise ValueError("Expected non-empty audio array.")
    left = x[:, 0]
    right = x[:, 1]
    size = block_size(fs, block_seconds)
    total_blocks = int(np.ceil(left.size / size))

    if np.array_equal(left, right):
        return _result(StereoType.MONO, 1.0, total_blocks=total_blocks, active_blocks=None, reason="identical")

    lr = block_rms(left, size)
    rr = block_rms(right, size)
    level = np.maximum(lr, rr)
    active = level >= silence_rms
    n_active = int(np.sum(active))
    if n_active == 0:
        return _result(StereoType.MONO, 1.0, total_blocks=total_blocks, active_blocks=0, reason="silent")

    diff = block_rms(left - right, size)
    near = active & (diff <= near_identical_ratio * level)
    near_fraction = float(np.sum(near) / n_active)

    left_dom = active & (lr > dominance_ratio * rr)
    right_dom = active & (rr > dominance_ratio * lr)
    left_pct = float(np.sum(left_dom) / n_active)
    right_pct = float(np.sum(right_dom) / n_active)
    balanced_pct = float(1.0 - left_pct - right_pct)
    corr = block_correlation(left, right, size)[active]
    mean_corr = float(np.mean(corr))

    details = {
        "total_blocks": total_blocks,
        "active_blocks": n_active,
        "left_dominant_fraction": left_pct,
        "right_dominant_fraction": right_pct,
        "balanced_fraction": balanced_pct,
        "near_identical_fraction": near_fraction,
        "mean_correlation": mean_corr,
    }
    if near_fraction >= mono_block_fraction:
        return _result(StereoType.MONO, near_fraction, reason="near_identical", **details)
    if (
        left_pct >= min_channel_fraction
        and right_pct >= min_channel_fraction
        and left_pct + right_pct >= conversational_fraction
    ):
        return _result(StereoType.CONVERSATIONAL, left_pct + right_pct, reason="alternating", **details)
    if mean_corr >= dual_mono_correlation:
        return _result(StereoType.DUAL_MONO, mean_corr, reason="correlated", **details)
    if max(left_pct, right_pct) >= mono_block_fraction:
        reason = "left_only" if left_pct > right_pct else "right_only"
        return _result(StereoType.TRUE_STEREO, 1.0 - balanced_pct, reason=reason, **details)
    return _result(StereoType.TRUE_STEREO, balanced_pct, reason="balanced", **details)
