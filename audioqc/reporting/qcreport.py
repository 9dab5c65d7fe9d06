from __future__ import annotations
from dataclasses import asdict

from audioqc.types import BatchResult, CriteriaValidation, LevelMetrics
from audioqc.utils.quantize import q, q_tree

REPORT_SCHEMA_VERSION = "1.0"


def _validation_dict(validation: CriteriaValidation | None) -> dict | None:
    if validation is None:
        return None
    return {
        "overall_status": validation.overall_status.value,
        "fields": {
            key: {"status": r.status.value, "value": r.value, "issue": r.issue}
            for key, r in validation.fields.items()
        },
    }


def _metrics_dict(metrics: LevelMetrics | None, step: float) -> dict | None:
    if metrics is None:
        return None
    d = asdict(metrics)
    d["mode"] = metrics.mode.value
    d["peak_db"] = q(metrics.peak_db, step)
    d["noise_floor_db"] = q(metrics.noise_floor_db, step)
    return q_tree(d, step)


def build_result_dict(result: BatchResult, *, step: float = 0.001) -> dict:
    """
    Build a JSON-ready dict for one file's result.

    Floats are quantized to `step`; -inf (silence) is kept as-is so
    json.dumps writes it as -Infinity.
    """
    metadata = None
    if result.metadata is not None:
        metadata = asdict(result.metadata)
        metadata["duration"] = q(metadata["duration"], step)
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "filename": result.filename,
        "status": result.status.value,
        "mode": result.mode.value,
        "file_size": int(result.file_size),
        "error": result.error,
        "warnings": list(result.warnings),
        "metadata": metadata,
        "metrics": _metrics_dict(result.metrics, step),
        "validation": _validation_dict(result.validation),
    }
