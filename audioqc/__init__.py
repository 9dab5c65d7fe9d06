"""
AudioQC - Audio Quality Control Tool

Objective level metrics for voice recordings, validated against
recording criteria presets.
"""
from audioqc.version import __version__
from audioqc.types import (
    Status,
    AnalysisMode,
    StereoType,
    AudioMetadata,
    AudioBuffer,
    LevelMetrics,
    Criteria,
    ValidationResult,
    CriteriaValidation,
    FilenameValidation,
    BatchResult,
)

__all__ = [
    "__version__",
    "Status",
    "AnalysisMode",
    "StereoType",
    "AudioMetadata",
    "AudioBuffer",
    "LevelMetrics",
    "Criteria",
    "ValidationResult",
    "CriteriaValidation",
    "FilenameValidation",
    "BatchResult",
]
