"""Criteria construction from presets, dicts and JSON files."""
from __future__ import annotations
from typing import Any
import json
import math

from audioqc.criteria.presets import PRESETS
from audioqc.errors import CriteriaError
from audioqc.types import Criteria, StereoType

FILENAME_VALIDATION_TYPES = ("script-match", "bilingual-pattern")

_SET_FIELDS = ("file_type", "sample_rate", "bit_depth", "channels", "stereo_type")
_THRESHOLD_FIELDS = (
    "max_overlap_warning",
    "max_overlap_fail",
    "max_overlap_segment_warning",
    "max_overlap_segment_fail",
)
_KNOWN_KEYS = {"name", "label", "min_duration", "filename_validation", *_SET_FIELDS, *_THRESHOLD_FIELDS}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and not math.isnan(v) and not math.isinf(v)


def _empty(v: Any) -> bool:
    return v is None or v == "" or v == []


def _as_list(key: str, v: Any, err) -> list | None:
    if _empty(v):
        return None
    if isinstance(v, (str, int)):
        v = [v]
    if not isinstance(v, (list, tuple, set, frozenset)):
        err(f"{key} must be a list of accepted values.")
        return None
    return list(v)


def _int_set(key: str, v: Any, err) -> frozenset[int] | None:
    values = _as_list(key, v, err)
    if values is None:
        return None
    out = set()
    for i, item in enumerate(values):
        try:
            if isinstance(item, float) and item.is_integer():
                item = int(item)
            number = int(str(item).strip())
        except ValueError:
            err(f"{key}[{i}] must be an integer.")
            continue
        if number <= 0:
            err(f"{key}[{i}] must be positive.")
            continue
        out.add(number)
    return frozenset(out) or None


def _number(key: str, v: Any, err) -> float | None:
    if _empty(v):
        return None
    if isinstance(v, str):
        try:
            v = float(v)
        except ValueError:
            err(f"{key} must be a number.")
            return None
    if not _is_number(v) or v < 0:
        err(f"{key} must be a non-negative finite number.")
        return None
    return float(v)


def criteria_from_dict(j: dict, name: str | None = None) -> Criteria:
    """
    Build and validate a Criteria from a plain dict.

    Empty values mean "no constraint". Every problem found is collected
    before a single CriteriaError is raised.
    """
    if not isinstance(j, dict):
        raise CriteriaError("criteria must be an object")
    errors: list[str] = []

    def err(msg: str) -> None:
        errors.append(msg)

    for key in sorted(set(j) - _KNOWN_KEYS):
        err(f"unknown key: {key}")

    file_types = _as_list("file_type", j.get("file_type"), err)
    file_type = None
    if file_types is not None:
        cleaned = set()
        for i, item in enumerate(file_types):
            if not isinstance(item, str) or not item.strip():
                err(f"file_type[{i}] must be a non-empty string.")
                continue
            cleaned.add(item.strip().lower().lstrip("."))
        file_type = frozenset(cleaned) or None

    stereo_types = _as_list("stereo_type", j.get("stereo_type"), err)
    stereo_type = None
    if stereo_types is not None:
        valid = {s.value for s in StereoType}
        for i, item in enumerate(stereo_types):
            if item not in valid:
                err(f"stereo_type[{i}] must be one of {', '.join(sorted(valid))}.")
        stereo_type = frozenset(s for s in stereo_types if s in valid) or None

    thresholds = {key: _number(key, j.get(key), err) for key in _THRESHOLD_FIELDS}
    for warn_key, fail_key in (
        ("max_overlap_warning", "max_overlap_fail"),
        ("max_overlap_segment_warning", "max_overlap_segment_fail"),
    ):
        warn, fail = thresholds[warn_key], thresholds[fail_key]
        if warn is not None and fail is not None and warn > fail:
            err(f"{warn_key} must not exceed {fail_key}.")

    filename_validation = j.get("filename_validation") or None
    if filename_validation is not None and filename_validation not in FILENAME_VALIDATION_TYPES:
        err(f"filename_validation must be one of {', '.join(FILENAME_VALIDATION_TYPES)}.")

    criteria = Criteria(
        name=str(name or j.get("name") or "custom"),
        file_type=file_type,
        sample_rate=_int_set("sample_rate", j.get("sample_rate"), err),
        bit_depth=_int_set("bit_depth", j.get("bit_depth"), err),
        channels=_int_set("channels", j.get("channels"), err),
        min_duration=_number("min_duration", j.get("min_duration"), err),
        stereo_type=stereo_type,
        filename_validation=filename_validation,
        **thresholds,
    )
    if errors:
        raise CriteriaError("invalid criteria", validation_errors=errors)
    return criteria


def load_criteria(path: str) -> Criteria:
    """Load criteria from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            j = json.load(f)
        except json.JSONDecodeError as exc:
            raise CriteriaError(f"criteria file is not valid JSON: {exc}") from exc
    return criteria_from_dict(j)


def get_preset(preset_id: str) -> Criteria:
    if preset_id not in PRESETS:
        raise CriteriaError(f"unknown preset: {preset_id}")
    return criteria_from_dict(PRESETS[preset_id], name=preset_id)


def list_presets() -> list[tuple[str, str]]:
    """(preset id, display label) pairs in definition order."""
    return [(preset_id, p.get("label", preset_id)) for preset_id, p in PRESETS.items()]
