"""Bounded-concurrency batch runner over the single-file pipeline."""
from __future__ import annotations
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from audioqc.pipeline import AnalysisOptions, FileSource, FileState, StateCallback, analyze_source
from audioqc.types import AnalysisMode, BatchResult, Status

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3


class BatchState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ProgressEvent:
    processed: int
    total: int
    started: int
    filename: str
    status: Status


ProgressCallback = Callable[[ProgressEvent], None]


class BatchCoordinator:
    """
    Run many files through analyze_source with at most `concurrency` in flight.

    Workers pull from a shared queue on one event loop. cancel() stops new
    files from starting; files already in flight finish and keep their
    results. A failing file becomes an `error` result and never aborts
    its siblings. Results are appended in completion order.
    """

    def __init__(
        self,
        options: AnalysisOptions | None = None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        on_progress: ProgressCallback | None = None,
        on_state: StateCallback | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1.")
        self.options = options or AnalysisOptions()
        self.concurrency = int(concurrency)
        self.on_progress = on_progress
        self.on_state = on_state
        self.results: list[BatchResult] = []
        self.state = BatchState.IDLE
        self.total = 0
        self.started = 0
        self.processed = 0
        self._cancel_requested = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> None:
        """Stop starting new files; in-flight files finish normally."""
        self._cancel_requested = True
        if self.state is BatchState.RUNNING:
            self.state = BatchState.DRAINING
            logger.info("Batch cancel requested; draining %d in-flight file(s)", self.started - self.processed)

    def _emit_state(self, name: str, state: FileState) -> None:
        if self.on_state is not None:
            self.on_state(name, state)

    async def _process(self, source: FileSource) -> BatchResult:
        try:
            return await analyze_source(source, self.options, self.on_state)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Analysis failed for %s: %s", source.name, exc)
            self._emit_state(source.name, FileState.ERROR)
            return BatchResult(
                filename=source.name,
                status=Status.ERROR,
                mode=AnalysisMode(self.options.mode),
                file_size=int(getattr(source, "size", 0) or 0),
                error=str(exc) or exc.__class__.__name__,
            )

    async def _worker(self, queue: deque) -> None:
        while queue and not self._cancel_requested:
            source = queue.popleft()
            self.started += 1
            result = await self._process(source)
            self.results.append(result)
            self.processed += 1
            if self.on_progress is not None:
                self.on_progress(
                    ProgressEvent(
                        processed=self.processed,
                        total=self.total,
                        started=self.started,
                        filename=result.filename,
                        status=result.status,
                    )
                )

    async def run(self, sources: Sequence[FileSource]) -> list[BatchResult]:
        """Process all sources (or until cancelled) and return the results list."""
        if self.state is not BatchState.IDLE:
            raise RuntimeError("BatchCoordinator instances run once.")
        queue = deque(sources)
        self.total = len(queue)
        self.state = BatchState.DRAINING if self._cancel_requested else BatchState.RUNNING
        logger.info(
            "Batch started: %d file(s), concurrency %d, mode %s",
            self.total, self.concurrency, AnalysisMode(self.options.mode).value,
        )
        for source in queue:
            self._emit_state(source.name, FileState.QUEUED)

        workers = [
            asyncio.create_task(self._worker(queue))
            for _ in range(min(self.concurrency, self.total))
        ]
        if workers:
            await asyncio.gather(*workers)

        self.state = BatchState.STOPPED if self._cancel_requested else BatchState.COMPLETED
        logger.info(
            "Batch %s: %d of %d file(s) processed", self.state.value, self.processed, self.total
        )
        return self.results


def run_batch(
    sources: Sequence[FileSource],
    options: AnalysisOptions | None = None,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_progress: ProgressCallback | None = None,
    on_state: StateCallback | None = None,
) -> list[BatchResult]:
    """Synchronous wrapper around BatchCoordinator.run()."""
    coordinator = BatchCoordinator(
        options, concurrency=concurrency, on_progress=on_progress, on_state=on_state
    )
    return asyncio.run(coordinator.run(sources))
