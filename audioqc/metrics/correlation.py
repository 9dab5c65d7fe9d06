"""Inter-channel correlation metrics."""
from __future__ import annotations

import numpy as np

from audioqc.metrics.blocks import frame_blocks


def block_correlation(left: np.ndarray, right: np.ndarray, size: int) -> np.ndarray:
    """
    Pearson correlation per non-overlapping block of two channels.

    Blocks are aligned with blocks.block_rms; a block where either channel
    is constant yields 0.0.
    """
    lf = frame_blocks(left, size)
    rf = frame_blocks(right, size)
    if lf.shape != rf.shape:
        raise ValueError("Channels must have the same length.")
    lc = lf - np.mean(lf, axis=1, keepdims=True)
    rc = rf - np.mean(rf, axis=1, keepdims=True)
    numerator = np.sum(lc * rc, axis=1)
    denom = np.sqrt(np.sum(lc ** 2, axis=1) * np.sum(rc ** 2, axis=1))
    corr = np.divide(
        numerator,
        denom,
        out=np.zeros_like(numerator, dtype=np.float64),
        where=denom > 0,
    )
    return np.clip(corr, -1.0, 1.0)

