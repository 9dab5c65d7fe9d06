from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import numpy as np


class Status(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"
    UNKNOWN = "unknown"
    ERROR = "error"


# Aggregation order for validation verdicts; ERROR is never aggregated.
STATUS_RANK = {
    Status.UNKNOWN: 0,
    Status.PASS: 1,
    Status.WARNING: 2,
    Status.FAIL: 3,
}


class AnalysisMode(str, Enum):
    AUDIO_ONLY = "audio-only"
    FILENAME_ONLY = "filename-only"
    FULL = "full"
    EXPERIMENTAL = "experimental"


class StereoType(str, Enum):
    MONO = "Mono"
    DUAL_MONO = "Dual Mono"
    CONVERSATIONAL = "Conversational Stereo"
    TRUE_STEREO = "True Stereo"


@dataclass(frozen=True)
class AudioMetadata:
    file_type: str
    sample_rate: int
    bit_depth: int | str
    channels: int
    duration: float
    file_size: int
    codec: str = ""


@dataclass(frozen=True)
class AudioBuffer:
    samples: np.ndarray
    fs: float
    duration: float
    channels: int
    backend: str = ""
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_channels(cls, channels: list, fs: float, *, backend: str = "") -> "AudioBuffer":
        """Build a buffer from per-channel sample arrays of equal length."""
        arrays = [np.asarray(c, dtype=np.float64) for c in channels]
        if not arrays:
            samples = np.zeros((0, 0), dtype=np.float64)
        else:
            lengths = {a.size for a in arrays}
            if len(lengths) != 1:
                raise ValueError("All channels must have the same length.")
            samples = np.stack(arrays, axis=1)
        n = samples.shape[0]
        return cls(
            samples=samples,
            fs=float(fs),
            duration=n / float(fs) if fs else 0.0,
            channels=len(arrays),
            backend=backend,
        )

    def channel(self, idx: int) -> np.ndarray:
        return self.samples[:, idx]


@dataclass(frozen=True)
class LevelMetrics:
    peak_db: float
    normalization: dict
    noise_floor_db: float
    noise_floor_per_channel: list[float]
    digital_silence: dict
    clipping: dict
    reverb: dict | None = None
    silence: dict | None = None
    stereo_separation: dict | None = None
    mic_bleed: dict | None = None
    conversational: dict | None = None
    mode: AnalysisMode = AnalysisMode.FULL


@dataclass(frozen=True)
class Criteria:
    name: str = "custom"
    file_type: frozenset[str] | None = None
    sample_rate: frozenset[int] | None = None
    bit_depth: frozenset[int] | None = None
    channels: frozenset[int] | None = None
    min_duration: float | None = None
    stereo_type: frozenset[str] | None = None
    max_overlap_warning: float | None = None
    max_overlap_fail: float | None = None
    max_overlap_segment_warning: float | None = None
    max_overlap_segment_fail: float | None = None
    filename_validation: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    status: Status
    value: str
    issue: str | None = None


@dataclass(frozen=True)
class CriteriaValidation:
    fields: dict[str, ValidationResult]
    overall_status: Status


@dataclass(frozen=True)
class FilenameValidation:
    status: Status
    issue: str = ""
    expected_format: str = ""
    is_spontaneous: bool | None = None


@dataclass(frozen=True)
class BatchResult:
    filename: str
    status: Status
    mode: AnalysisMode
    file_size: int = 0
    metadata: AudioMetadata | None = None
    metrics: LevelMetrics | None = None
    validation: CriteriaValidation | None = None
    error: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
