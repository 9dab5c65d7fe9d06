from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable

import numpy as np

from audioqc.types import BatchResult, Status


def _summary_stats(values: Iterable[float]) -> dict | None:
    vals = [float(v) for v in values if isinstance(v, (int, float)) and np.isfinite(v)]
    if not vals:
        return None
    arr = np.asarray(vals, dtype=np.float64)
    return {
        "count": int(arr.size),
        "mean": float(np.mean(arr)),
        "min": float(np.min(arr)),
        "p50": float(np.percentile(arr, 50)),
        "p90": float(np.percentile(arr, 90)),
        "max": float(np.max(arr)),
    }


def build_batch_summary(
    results: list[BatchResult],
    *,
    generated_utc: str | None = None
) -> dict:
    """Summarize a batch: status counts, rates, ranked issue causes and metric distributions."""
    counts = {s.value: 0 for s in (Status.PASS, Status.WARNING, Status.FAIL, Status.ERROR)}
    issue_causes: dict[str, int] = {}
    field_failures: dict[str, dict[str, int]] = defaultdict(lambda: {"warning": 0, "fail": 0})
    metric_values: dict[str, list[float]] = defaultdict(list)
    stereo_types: dict[str, int] = {}
    silent_files = 0

    for result in results:
        status = result.status.value
        counts[status] = counts.get(status, 0) + 1
        if result.error:
            issue_causes[result.error] = issue_causes.get(result.error, 0) + 1
            continue

        if result.validation is not None:
            for key, field in result.validation.fields.items():
                if field.status in (Status.WARNING, Status.FAIL):
                    field_failures[key][field.status.value] += 1
                    cause = field.issue or f"{key} {field.status.value}"
                    # multi-line filename issues count once per line
                    for line in cause.splitlines():
                        issue_causes[line] = issue_causes.get(line, 0) + 1

        metrics = result.metrics
        if metrics is None:
            continue
        if np.isneginf(metrics.peak_db):
            silent_files += 1
        metric_values["peak_db"].append(metrics.peak_db)
        metric_values["noise_floor_db"].append(metrics.noise_floor_db)
        metric_values["clipped_percentage"].append(metrics.clipping["clipped_percentage"])
        if metrics.reverb is not None and metrics.reverb.get("time") is not None:
            metric_values["rt60_s"].append(metrics.reverb["time"])
        if metrics.stereo_separation is not None:
            st = metrics.stereo_separation["stereo_type"]
            stereo_types[st] = stereo_types.get(st, 0) + 1
        if metrics.conversational is not None:
            metric_values["overlap_percentage"].append(
                metrics.conversational["overlap"]["overlap_percentage"]
            )

    total = sum(counts.values())
    denom = max(1, total)
    distributions = {k: _summary_stats(v) for k, v in metric_values.items()}
    distributions = {k: v for k, v in distributions.items() if v is not None}
    generated_utc = generated_utc or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    return {
        "schema_version": "1.0",
        "generated_utc": generated_utc,
        "totals": {
            "files": total,
            "processed": total - counts[Status.ERROR.value],
            "status_counts": counts,
            "silent_files": silent_files,
        },
        "kpis": {
            "pass_rate": counts[Status.PASS.value] / denom,
            "warning_rate": counts[Status.WARNING.value] / denom,
            "fail_rate": counts[Status.FAIL.value] / denom,
            "error_rate": counts[Status.ERROR.value] / denom,
        },
        "field_failures": {k: dict(v) for k, v in sorted(field_failures.items())},
        "issue_causes": dict(sorted(issue_causes.items(), key=lambda kv: kv[1], reverse=True)),
        "stereo_types": dict(sorted(stereo_types.items())),
        "distributions": distributions,
    }


def render_markdown_summary(summary: dict) -> str:
    """Render a Markdown summary."""
    totals = summary.get("totals", {})
    counts = totals.get("status_counts", {})
    lines = [
        "# Batch Summary",
        "",
        f"Generated: {summary.get('generated_utc', 'unknown')}",
        "",
        "| Status | Count |",
        "| --- | --- |",
    ]
    for status in ("pass", "warning", "fail", "error"):
        lines.append(f"| {status} | {counts.get(status, 0)} |")
    causes = summary.get("issue_causes", {})
    if causes:
        lines.extend(["", "## Top issues", ""])
        for cause, n in list(causes.items())[:10]:
            lines.append(f"- {cause} ({n})")
    dists = summary.get("distributions", {})
    if dists:
        lines.extend(["", "## Distributions", "", "| Metric | Min | P50 | P90 | Max |", "| --- | --- | --- | --- | --- |"])
        for metric, stats in dists.items():
            lines.append(
                f"| {metric} | {stats['min']:.2f} | {stats['p50']:.2f} | {stats['p90']:.2f} | {stats['max']:.2f} |"
            )
    return "\n".join(lines) + "\n"
