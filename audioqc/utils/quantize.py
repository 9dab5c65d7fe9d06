from __future__ import annotations
import math


def q(x: float | None, step: float) -> float | None:
    """Round a float to the nearest step (half away from zero); inf and None pass through."""
    if x is None or math.isnan(x) or math.isinf(x):
        return x
    inv = 1.0 / step
    y = x * inv
    if y >= 0:
        yq = math.floor(y + 0.5)
    else:
        yq = -math.floor(-y + 0.5)
    return yq / inv


def q_tree(value, step: float):
    """Quantize every float inside nested dicts, lists and tuples."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return q(value, step)
    if isinstance(value, dict):
        return {k: q_tree(v, step) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [q_tree(v, step) for v in value]
    return value
