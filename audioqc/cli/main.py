"""AudioQC CLI - audio quality checks against recording criteria."""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from audioqc.version import __version__
from audioqc.batch.coordinator import DEFAULT_CONCURRENCY, ProgressEvent, run_batch
from audioqc.criteria.filename import load_bilingual_data
from audioqc.criteria.loader import get_preset, list_presets, load_criteria
from audioqc.errors import AnalysisError, CriteriaError, DecodeError, FormatError
from audioqc.pipeline import AnalysisOptions, LocalFileSource, analyze_source
from audioqc.reporting.batch_summary import build_batch_summary, render_markdown_summary
from audioqc.reporting.qcreport import build_result_dict
from audioqc.types import AnalysisMode, Criteria, Status

logger = logging.getLogger("audioqc")

EXIT_PASS = 0
EXIT_WARN = 10
EXIT_FAIL = 20
EXIT_BAD_ARGS = 2
EXIT_DECODE_ERROR = 3
EXIT_CRITERIA_ERROR = 4
EXIT_INTERNAL_ERROR = 5

SUPPORTED_AUDIO_EXTS = {".wav", ".flac", ".mp3", ".aif", ".aiff", ".aifc"}


def _iter_audio_files(folder: Path, recursive: bool) -> list[Path]:
    """Collect supported audio files from a folder."""
    if not folder.is_dir():
        raise ValueError(f"Folder not found: {folder}")
    files: Iterable[Path]
    files = folder.rglob("*") if recursive else folder.glob("*")
    return sorted(p for p in files if p.is_file() and p.suffix.lower() in SUPPORTED_AUDIO_EXTS)


def _read_scripts(path: str | None) -> list[str] | None:
    """Script names, one per line, or every .txt file in a folder."""
    if not path:
        return None
    p = Path(path)
    if p.is_dir():
        return sorted(f.name for f in p.iterdir() if f.suffix.lower() == ".txt")
    return [line.strip() for line in p.read_text(encoding="utf-8").splitlines() if line.strip()]


def _resolve_criteria(args) -> Criteria:
    if args.criteria:
        return load_criteria(args.criteria)
    return get_preset(args.preset)


def _build_options(args) -> AnalysisOptions:
    return AnalysisOptions(
        mode=AnalysisMode(args.mode),
        criteria=_resolve_criteria(args),
        scripts=_read_scripts(args.scripts),
        speaker_id=args.speaker_id,
        bilingual_data=load_bilingual_data(args.bilingual_data) if args.bilingual_data else None,
        dsp_in_thread=bool(getattr(args, "dsp_thread", False)),
    )


def _exit_code_for_status(status: Status) -> int:
    if status == Status.PASS:
        return EXIT_PASS
    if status == Status.WARNING:
        return EXIT_WARN
    if status == Status.ERROR:
        return EXIT_INTERNAL_ERROR
    return EXIT_FAIL


def _write_or_print(payload: str, out: str | None) -> None:
    if out:
        Path(out).write_text(payload, encoding="utf-8")
        print(f"Report written to: {out}", file=sys.stderr)
    else:
        print(payload)


def cmd_analyze(args) -> int:
    """Handle analyze command."""
    try:
        options = _build_options(args)
        result = asyncio.run(analyze_source(LocalFileSource(args.audio_path), options))
        _write_or_print(json.dumps(build_result_dict(result), indent=2), args.out)
        return _exit_code_for_status(result.status)
    except CriteriaError as e:
        print(f"Error: Invalid criteria - {e}", file=sys.stderr)
        return EXIT_CRITERIA_ERROR
    except FileNotFoundError as e:
        print(f"Error: File not found - {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except (FormatError, DecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except json.JSONDecodeError as e:
        print(f"Error: Invalid bilingual data JSON - {e}", file=sys.stderr)
        return EXIT_BAD_ARGS
    except AnalysisError as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def _print_progress(event: ProgressEvent) -> None:
    tag = "ERROR" if event.status == Status.ERROR else "OK"
    stream = sys.stderr if event.status == Status.ERROR else sys.stdout
    print(f"[{tag}] ({event.processed}/{event.total}) {event.filename}: {event.status.value}", file=stream)


def cmd_batch(args) -> int:
    """Handle batch command."""
    try:
        audio_paths = _iter_audio_files(Path(args.folder), args.recursive)
        if not audio_paths:
            print("Error: No input files found.", file=sys.stderr)
            return EXIT_BAD_ARGS
        options = _build_options(args)
        workers = max(1, int(args.workers))

        results = run_batch(
            [LocalFileSource(str(p)) for p in audio_paths],
            options,
            concurrency=workers,
            on_progress=_print_progress,
        )

        summary = build_batch_summary(results)
        if args.out_dir:
            out_dir = Path(args.out_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            for result in results:
                out_path = out_dir / (Path(result.filename).stem + ".qcreport.json")
                out_path.write_text(json.dumps(build_result_dict(result), indent=2), encoding="utf-8")
            (out_dir / "batch-summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")
            (out_dir / "batch-summary.md").write_text(render_markdown_summary(summary), encoding="utf-8")
        else:
            print(json.dumps(summary, indent=2))

        if summary["totals"]["status_counts"].get("error", 0):
            return EXIT_INTERNAL_ERROR
        return EXIT_PASS
    except CriteriaError as e:
        print(f"Error: Invalid criteria - {e}", file=sys.stderr)
        return EXIT_CRITERIA_ERROR
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_ARGS
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def cmd_presets(args) -> int:
    """Handle presets command."""
    for preset_id, label in list_presets():
        print(f"{preset_id:32s} {label}")
    return EXIT_PASS


def _add_criteria_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--preset", "-p",
        default="custom",
        help="Built-in criteria preset id (default: custom; see `audioqc presets`)"
    )
    p.add_argument(
        "--criteria", "-c",
        help="Path to custom criteria JSON (overrides --preset)"
    )
    p.add_argument(
        "--mode", "-m",
        choices=[m.value for m in AnalysisMode],
        default=AnalysisMode.AUDIO_ONLY.value,
        help="Analysis mode (default: audio-only)"
    )
    p.add_argument(
        "--scripts",
        help="Script list file (one name per line) or folder of .txt scripts for script-match"
    )
    p.add_argument(
        "--speaker-id",
        help="Speaker ID expected in script-match filenames"
    )
    p.add_argument(
        "--bilingual-data",
        help="JSON with language codes, conversations and contributor pairs"
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="audioqc",
        description="AudioQC - audio recording quality checks"
    )
    parser.add_argument(
        "--version", action="version",
        version=f"audioqc {__version__}"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze one audio file against criteria"
    )
    analyze_parser.add_argument(
        "audio_path",
        help="Path to audio file"
    )
    _add_criteria_args(analyze_parser)
    analyze_parser.add_argument(
        "--out", "-o",
        help="Output path for result JSON"
    )
    analyze_parser.set_defaults(func=cmd_analyze)

    batch_parser = subparsers.add_parser(
        "batch",
        help="Batch analyze a folder"
    )
    batch_parser.add_argument(
        "--folder",
        required=True,
        help="Folder containing audio files"
    )
    _add_criteria_args(batch_parser)
    batch_parser.add_argument(
        "--recursive",
        action="store_true",
        help="Recurse into subfolders"
    )
    batch_parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Files in flight at once (default: {DEFAULT_CONCURRENCY})"
    )
    batch_parser.add_argument(
        "--dsp-thread",
        action="store_true",
        help="Run level analysis in a worker thread"
    )
    batch_parser.add_argument(
        "--out-dir",
        help="Directory for per-file result JSONs and batch summaries"
    )
    batch_parser.set_defaults(func=cmd_batch)

    presets_parser = subparsers.add_parser(
        "presets",
        help="List built-in criteria presets"
    )
    presets_parser.set_defaults(func=cmd_presets)

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    else:
        parser.print_help()
        sys.exit(EXIT_BAD_ARGS)


if __name__ == "__main__":
    main()
