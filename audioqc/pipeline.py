"""Single-file pipeline: metadata, decode, analysis, validation."""
from __future__ import annotations
import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from audioqc.analysis.analyzer import LevelAnalyzer
from audioqc.criteria.filename import BilingualData, validate_filename
from audioqc.criteria.validator import validate_criteria
from audioqc.io.audio import decode_audio
from audioqc.errors import FormatError
from audioqc.io.metadata import header_read_limit, metadata_from_filename, read_metadata
from audioqc.types import AnalysisMode, AudioBuffer, BatchResult, Criteria

logger = logging.getLogger(__name__)


class FileState(str, Enum):
    QUEUED = "queued"
    READING_METADATA = "reading-metadata"
    DECODING = "decoding"
    ANALYZING = "analyzing"
    VALIDATING = "validating"
    DONE = "done"
    ERROR = "error"


StateCallback = Callable[[str, FileState], None]
Decoder = Callable[[bytes, str], AudioBuffer]


class FileSource(Protocol):
    """Anything that can hand over a file's name, size and bytes."""

    name: str
    size: int

    async def read(self, limit: int | None = None) -> bytes:
        """Return the whole file, or at most `limit` leading bytes."""


class LocalFileSource:
    def __init__(self, path: str):
        self.path = str(path)
        self.name = Path(path).name
        self.size = os.path.getsize(path)

    def _read(self, limit: int | None) -> bytes:
        with open(self.path, "rb") as f:
            return f.read() if limit is None else f.read(limit)

    async def read(self, limit: int | None = None) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, limit)

    def __repr__(self):
        return f"LocalFileSource({self.path!r})"


class BytesSource:
    """In-memory file, e.g. already downloaded by a provider."""

    def __init__(self, name: str, data: bytes, size: int | None = None):
        self.name = name
        self.data = bytes(data)
        self.size = len(self.data) if size is None else int(size)

    async def read(self, limit: int | None = None) -> bytes:
        return self.data if limit is None else self.data[:limit]

    def __repr__(self):
        return f"BytesSource({self.name!r}, {self.size} bytes)"


@dataclass
class AnalysisOptions:
    mode: AnalysisMode = AnalysisMode.AUDIO_ONLY
    criteria: Criteria = field(default_factory=Criteria)
    scripts: list[str] | None = None
    speaker_id: str | None = None
    bilingual_data: BilingualData | None = None
    analyzer_config: dict | None = None
    decoder: Decoder = decode_audio
    dsp_in_thread: bool = False


def _checks_filename(mode: AnalysisMode) -> bool:
    return mode in (AnalysisMode.FULL, AnalysisMode.FILENAME_ONLY)


async def _read_header_metadata(source: FileSource):
    """Parse metadata from the header prefix, falling back to the whole file."""
    name = source.name
    data = await source.read(header_read_limit(name))
    try:
        return read_metadata(data, name, source.size)
    except FormatError as exc:
        if not exc.truncated or len(data) >= source.size:
            raise
    logger.debug("%s: header extends past %d bytes, reading whole file", name, len(data))
    return read_metadata(await source.read(), name, source.size)


async def analyze_source(
    source: FileSource,
    options: AnalysisOptions,
    on_state: StateCallback | None = None,
) -> BatchResult:
    """
    Run one file through the pipeline for the configured mode.

    - filename-only: no bytes are read; audio fields are `unknown`.
    - audio-only: header prefix only (whole file for compressed formats or
      headers that run past the prefix); no filename check.
    - full: as audio-only, plus the filename check.
    - experimental: whole file decoded and every level metric computed.

    Errors propagate; the batch coordinator turns them into error results.
    """
    mode = AnalysisMode(options.mode)
    name = source.name

    def state(s: FileState) -> None:
        logger.debug("%s: %s", name, s.value)
        if on_state is not None:
            on_state(name, s)

    state(FileState.READING_METADATA)
    metrics = None
    warnings: tuple[str, ...] = ()
    if mode is AnalysisMode.FILENAME_ONLY:
        metadata = metadata_from_filename(name, source.size)
    elif mode is AnalysisMode.EXPERIMENTAL:
        data = await source.read()
        metadata = read_metadata(data, name, source.size)
        state(FileState.DECODING)
        loop = asyncio.get_running_loop()
        buffer = await loop.run_in_executor(None, options.decoder, data, name)
        warnings = tuple(buffer.warnings)
        state(FileState.ANALYZING)
        analyzer = LevelAnalyzer(options.analyzer_config)
        if options.dsp_in_thread:
            metrics = await loop.run_in_executor(None, analyzer.analyze, buffer, mode)
        else:
            metrics = analyzer.analyze(buffer, mode)
    else:
        metadata = await _read_header_metadata(source)

    state(FileState.VALIDATING)
    filename_result = None
    if _checks_filename(mode):
        filename_result = validate_filename(
            name,
            options.criteria.filename_validation,
            scripts=options.scripts,
            speaker_id=options.speaker_id,
            bilingual_data=options.bilingual_data,
        )
    validation = validate_criteria(
        metadata,
        metrics,
        options.criteria,
        filename_result=filename_result,
        filename=name,
        skip_audio=mode is AnalysisMode.FILENAME_ONLY,
    )
    state(FileState.DONE)
    return BatchResult(
        filename=name,
        status=validation.overall_status,
        mode=mode,
        file_size=int(source.size),
        metadata=metadata,
        metrics=metrics,
        validation=validation,
        warnings=warnings,
    )
