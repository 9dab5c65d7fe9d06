"""Per-field criteria validation and overall status aggregation."""
from __future__ import annotations
from typing import Iterable

from audioqc.types import (
    STATUS_RANK,
    AudioMetadata,
    Criteria,
    CriteriaValidation,
    FilenameValidation,
    LevelMetrics,
    Status,
    ValidationResult,
)

AUDIO_FIELDS = (
    "file_type",
    "sample_rate",
    "bit_depth",
    "channels",
    "duration",
    "stereo_type",
    "speech_overlap",
    "overlap_segment",
)


def format_sample_rate(value) -> str:
    if isinstance(value, int) and value > 0:
        return f"{value / 1000:.1f} kHz"
    return "unknown"


def format_bit_depth(value) -> str:
    if isinstance(value, int) and value > 0:
        return f"{value}-bit"
    return "unknown"


def format_channels(value) -> str:
    if not isinstance(value, int) or value <= 0:
        return "unknown"
    suffix = {1: " (Mono)", 2: " (Stereo)"}.get(value, "")
    return f"{value} channel{'s' if value != 1 else ''}{suffix}"


def format_duration(value) -> str:
    if isinstance(value, (int, float)) and value > 0:
        return f"{value:.2f} seconds"
    return "unknown"


def _accepted(values: Iterable) -> str:
    return ", ".join(str(v) for v in sorted(values))


def _membership(actual, accepted, display: str, label: str) -> ValidationResult:
    if accepted is None:
        return ValidationResult(Status.UNKNOWN, display)
    if actual in accepted:
        return ValidationResult(Status.PASS, display)
    return ValidationResult(
        Status.FAIL, display, f"{label} {display} not in accepted set ({_accepted(accepted)})"
    )


def _graded(value: float, warn: float | None, fail: float | None, display: str, label: str) -> ValidationResult:
    """At or below warn passes, at or above fail fails, in between warns."""
    if fail is not None and value >= fail:
        return ValidationResult(Status.FAIL, display, f"{label} {display} at or above fail threshold ({fail:g})")
    if warn is not None and value > warn:
        return ValidationResult(Status.WARNING, display, f"{label} {display} above warning threshold ({warn:g})")
    return ValidationResult(Status.PASS, display)


def _stereo_type(metadata: AudioMetadata, metrics: LevelMetrics | None, criteria: Criteria) -> ValidationResult:
    if criteria.stereo_type is None:
        return ValidationResult(Status.UNKNOWN, "-")
    if metadata.channels != 2:
        return ValidationResult(Status.UNKNOWN, "-", "Stereo type only applies to 2-channel files")
    if metrics is None or metrics.stereo_separation is None:
        return ValidationResult(Status.UNKNOWN, "-")
    detected = metrics.stereo_separation["stereo_type"]
    return _membership(detected, criteria.stereo_type, detected, "Stereo type")


def _overlap(metrics: LevelMetrics | None, criteria: Criteria) -> tuple[ValidationResult, ValidationResult]:
    overlap = None
    if metrics is not None and metrics.conversational is not None:
        overlap = metrics.conversational["overlap"]

    warn, fail = criteria.max_overlap_warning, criteria.max_overlap_fail
    if (warn is None and fail is None) or overlap is None:
        speech = ValidationResult(Status.UNKNOWN, "-")
    else:
        pct = float(overlap["overlap_percentage"])
        speech = _graded(pct, warn, fail, f"{pct:.1f}%", "Speech overlap")

    warn, fail = criteria.max_overlap_segment_warning, criteria.max_overlap_segment_fail
    if (warn is None and fail is None) or overlap is None:
        segment = ValidationResult(Status.UNKNOWN, "-")
    else:
        longest = float(overlap["longest_overlap_segment"])
        segment = _graded(longest, warn, fail, f"{longest:.2f} s", "Longest overlap segment")
    return speech, segment


def _filename(result: FilenameValidation | None, filename: str) -> ValidationResult:
    if result is None:
        return ValidationResult(Status.UNKNOWN, filename or "-")
    return ValidationResult(result.status, filename or "-", result.issue or None)


def overall_status(fields: dict[str, ValidationResult]) -> Status:
    """Worst status across fields; nothing evaluated aggregates to pass."""
    worst = Status.UNKNOWN
    for result in fields.values():
        if STATUS_RANK.get(result.status, 0) > STATUS_RANK[worst]:
            worst = result.status
    return Status.PASS if worst is Status.UNKNOWN else worst


def validate_criteria(
    metadata: AudioMetadata,
    metrics: LevelMetrics | None,
    criteria: Criteria,
    *,
    filename_result: FilenameValidation | None = None,
    filename: str = "",
    skip_audio: bool = False,
) -> CriteriaValidation:
    """
    Validate metadata and metrics against a criteria definition.

    Fields without a configured constraint, or whose metric was not
    computed, are `unknown`. With skip_audio every audio field is
    `unknown` and only the filename check can affect the outcome.
    Never raises for missing data.
    """
    fields: dict[str, ValidationResult] = {}
    if skip_audio:
        for key in AUDIO_FIELDS:
            fields[key] = ValidationResult(Status.UNKNOWN, "-")
    else:
        fields["file_type"] = _membership(
            (metadata.file_type or "").lower(), criteria.file_type, metadata.file_type or "unknown", "File type"
        )
        fields["sample_rate"] = _membership(
            metadata.sample_rate, criteria.sample_rate, format_sample_rate(metadata.sample_rate), "Sample rate"
        )
        fields["bit_depth"] = _membership(
            metadata.bit_depth, criteria.bit_depth, format_bit_depth(metadata.bit_depth), "Bit depth"
        )
        fields["channels"] = _membership(
            metadata.channels, criteria.channels, format_channels(metadata.channels), "Channels"
        )
        duration_display = format_duration(metadata.duration)
        if criteria.min_duration is None:
            fields["duration"] = ValidationResult(Status.UNKNOWN, duration_display)
        elif metadata.duration >= criteria.min_duration:
            fields["duration"] = ValidationResult(Status.PASS, duration_display)
        else:
            fields["duration"] = ValidationResult(
                Status.FAIL, duration_display,
                f"Duration {duration_display} below minimum ({criteria.min_duration:g} seconds)",
            )
        fields["stereo_type"] = _stereo_type(metadata, metrics, criteria)
        fields["speech_overlap"], fields["overlap_segment"] = _overlap(metrics, criteria)

    fields["filename"] = _filename(filename_result, filename)
    return CriteriaValidation(fields=fields, overall_status=overall_status(fields))
