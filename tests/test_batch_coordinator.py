from __future__ import annotations

import asyncio

import pytest

from audioqc.batch.coordinator import BatchCoordinator, BatchState, run_batch
from audioqc.errors import DecodeError
from audioqc.io.audio import decode_audio
from audioqc.pipeline import AnalysisOptions, BytesSource, FileState
from audioqc.types import AnalysisMode, Status
from tests.conftest import tone, wav_bytes

FS = 16000


def _sources(count: int, *, broken: set[int] = frozenset()) -> list[BytesSource]:
    good = wav_bytes(tone(0.5, FS), FS, subtype="PCM_16")
    return [
        BytesSource(f"file_{i:02d}.wav", b"garbage bytes, no header" if i in broken else good)
        for i in range(count)
    ]


def test_failing_file_does_not_abort_batch():
    events = []
    states = []
    results = run_batch(
        _sources(5, broken={1}),
        AnalysisOptions(mode=AnalysisMode.AUDIO_ONLY),
        concurrency=2,
        on_progress=events.append,
        on_state=lambda name, s: states.append((name, s)),
    )
    assert len(results) == 5
    by_name = {r.filename: r for r in results}
    broken = by_name["file_01.wav"]
    assert broken.status == Status.ERROR
    assert "unrecognized container signature" in broken.error
    assert all(r.status == Status.PASS for name, r in by_name.items() if name != "file_01.wav")
    assert ("file_01.wav", FileState.ERROR) in states
    assert [e.processed for e in events] == [1, 2, 3, 4, 5]
    assert all(e.total == 5 for e in events)


def test_decode_failure_is_isolated_to_its_file():
    def decoder(raw, name):
        if name == "file_01.wav":
            raise DecodeError("file_01.wav: corrupt frame", backend="soundfile")
        return decode_audio(raw, name)

    states = []
    results = run_batch(
        _sources(5),
        AnalysisOptions(mode=AnalysisMode.EXPERIMENTAL, decoder=decoder),
        concurrency=2,
        on_state=lambda name, s: states.append((name, s)),
    )
    assert len(results) == 5
    errors = [r for r in results if r.status == Status.ERROR]
    assert [r.filename for r in errors] == ["file_01.wav"]
    assert errors[0].error == "file_01.wav: corrupt frame"
    assert ("file_01.wav", FileState.DECODING) in states
    assert ("file_01.wav", FileState.ANALYZING) not in states
    assert all(r.metrics is not None for r in results if r.status != Status.ERROR)


def test_all_files_queued_before_processing():
    states = []
    run_batch(_sources(4), concurrency=1, on_state=lambda name, s: states.append(s))
    assert states[:4] == [FileState.QUEUED] * 4


def test_cancel_drains_in_flight_files():
    analyzing = []
    started_after_cancel = []
    coordinator = None

    def on_state(name, state):
        if state is FileState.ANALYZING:
            analyzing.append(name)

    def on_progress(event):
        if coordinator.cancel_requested:
            started_after_cancel.append(event.started)
        if event.processed == 2:
            coordinator.cancel()
            started_after_cancel.append(event.started)

    coordinator = BatchCoordinator(
        AnalysisOptions(mode=AnalysisMode.EXPERIMENTAL),
        concurrency=3,
        on_progress=on_progress,
        on_state=on_state,
    )
    results = asyncio.run(coordinator.run(_sources(10)))

    assert coordinator.state is BatchState.STOPPED
    assert len(analyzing) <= 5
    assert len(results) == coordinator.started <= 5
    assert len(set(started_after_cancel)) == 1
    assert all(r.status != Status.ERROR for r in results)


def test_cancel_before_run_processes_nothing():
    coordinator = BatchCoordinator(concurrency=2)
    coordinator.cancel()
    results = asyncio.run(coordinator.run(_sources(3)))
    assert results == []
    assert coordinator.state is BatchState.STOPPED


def test_coordinator_runs_once_and_validates_concurrency():
    coordinator = BatchCoordinator()
    asyncio.run(coordinator.run([]))
    assert coordinator.state is BatchState.COMPLETED
    with pytest.raises(RuntimeError):
        asyncio.run(coordinator.run([]))
    with pytest.raises(ValueError):
        BatchCoordinator(concurrency=0)
