from __future__ import annotations

import json

import numpy as np

from audioqc.analysis.analyzer import analyze_buffer
from audioqc.criteria.loader import get_preset
from audioqc.criteria.validator import validate_criteria
from audioqc.reporting.batch_summary import build_batch_summary, render_markdown_summary
from audioqc.reporting.qcreport import build_result_dict
from audioqc.types import AnalysisMode, AudioBuffer, AudioMetadata, BatchResult, Status

FS = 8000


def _result(name: str, samples: np.ndarray, *, sample_rate: int = FS) -> BatchResult:
    buf = AudioBuffer(samples=samples[:, None], fs=float(FS), duration=samples.size / FS, channels=1)
    meta = AudioMetadata("wav", sample_rate, 24, 1, buf.duration, 1000, "pcm")
    metrics = analyze_buffer(buf, AnalysisMode.EXPERIMENTAL)
    criteria = get_preset("p2b2-pairs-mono")
    validation = validate_criteria(meta, metrics, criteria, filename=name)
    return BatchResult(
        filename=name,
        status=validation.overall_status,
        mode=AnalysisMode.EXPERIMENTAL,
        file_size=1000,
        metadata=meta,
        metrics=metrics,
        validation=validation,
    )


def test_result_dict_is_json_ready():
    t = np.arange(FS) / FS
    result = _result("tone.wav", 0.5 * np.sin(2 * np.pi * 300.0 * t), sample_rate=44100)
    d = build_result_dict(result)
    text = json.dumps(d)
    assert d["status"] == "pass"
    assert d["mode"] == "experimental"
    assert d["metrics"]["peak_db"] == round(d["metrics"]["peak_db"], 3)
    assert d["validation"]["fields"]["sample_rate"]["status"] == "pass"
    assert isinstance(d["metrics"]["clipping"]["hard_clipping_regions"], list)
    assert "NaN" not in text


def test_silent_file_keeps_negative_infinity():
    d = build_result_dict(_result("silence.wav", np.zeros(FS)))
    assert d["metrics"]["peak_db"] == float("-inf")
    assert d["metrics"]["normalization"]["status"] == "too_quiet"


def test_batch_summary_counts_and_causes():
    t = np.arange(FS) / FS
    ok = _result("a.wav", 0.5 * np.sin(2 * np.pi * 300.0 * t), sample_rate=48000)
    bad_rate = _result("b.wav", 0.5 * np.sin(2 * np.pi * 300.0 * t), sample_rate=32000)
    silent = _result("c.wav", np.zeros(FS), sample_rate=48000)
    error = BatchResult("d.wav", Status.ERROR, AnalysisMode.EXPERIMENTAL, error="d.wav: truncated header")
    summary = build_batch_summary([ok, bad_rate, silent, error], generated_utc="2026-01-01T00:00:00Z")

    counts = summary["totals"]["status_counts"]
    assert counts == {"pass": 2, "warning": 0, "fail": 1, "error": 1}
    assert summary["totals"]["files"] == 4
    assert summary["totals"]["processed"] == 3
    assert summary["totals"]["silent_files"] == 1
    assert summary["kpis"]["pass_rate"] == 0.5
    assert summary["field_failures"]["sample_rate"]["fail"] == 1
    assert "d.wav: truncated header" in summary["issue_causes"]
    assert summary["distributions"]["peak_db"]["count"] == 2

    md = render_markdown_summary(summary)
    assert md.startswith("# Batch Summary")
    assert "| fail | 1 |" in md
    assert "## Top issues" in md
