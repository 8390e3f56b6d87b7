"""
Worker entrypoint: analyse one recording from the command line.

Usage:
    python -m worker.entrypoint AUDIO_PATH [--save] [--out result.json]

The worker:
    1. Runs AnalysisService.analyze() on AUDIO_PATH.
    2. Prints the summary, tasks, sentiment and the speaker-normalized transcript.
    3. Optionally writes the result as JSON to --out.
    4. Exits 0 on success, 1 on failure.

All logging is JSON (structlog) on stderr; the report goes to stdout.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from domain.models import AnalysisResult, TranscriptSegment
from shared_utils.constants import LogScope
from shared_utils.error_handler import AppException
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.di_container import get_di_container

logger = get_scoped_logger(LogScope.WORKER)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worker.entrypoint",
        description="Transcribe and summarise a recorded call.",
    )
    parser.add_argument("audio_path", help="Path of the audio file to analyse")
    parser.add_argument("--save", action="store_true", help="Save the result to history")
    parser.add_argument("--out", default="", help="Write the result as JSON to this path")
    return parser


def render_report(result: AnalysisResult, segments: List[TranscriptSegment]) -> str:
    """Plain-text rendering of a result."""
    lines = ["Summary", "-------"]
    lines.extend(result.summary)

    lines += ["", "Tasks", "-----"]
    if result.action_items:
        for item in result.action_items:
            extra = " / ".join(part for part in (item.assignee, item.deadline) if part)
            lines.append(f"- {item.task}" + (f" ({extra})" if extra else ""))
    else:
        lines.append("(none)")

    lines += ["", f"Sentiment: {result.sentiment} ({result.sentiment_score:.2f})"]
    if result.record_id:
        lines.append(f"Record: {result.record_id}")
    for warning in result.warnings:
        lines.append(f"Warning: {warning}")

    lines += ["", "Transcript", "----------"]
    lines.extend(f"{s.speaker}: {s.text}" for s in segments)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Worker main: parse args, build deps, run the analysis."""
    args = build_parser().parse_args(argv)

    logger.info("worker_started", audio_path=args.audio_path, save=args.save)

    def progress(stage: str, fraction: float) -> None:
        logger.info("worker_progress", stage=stage, fraction=round(fraction, 3))

    try:
        service = get_di_container().get_analysis_service()
        result = service.analyze(args.audio_path, progress_cb=progress, save=args.save)

        print(render_report(result, service.segments(result)))

        if args.out:
            with open(args.out, "w", encoding="utf-8") as fh:
                json.dump(result.model_dump(by_alias=True), fh, ensure_ascii=False, indent=2)

        logger.info(
            "worker_completed",
            audio_path=args.audio_path,
            record_id=result.record_id,
            warnings=len(result.warnings),
        )
        return 0

    except AppException as exc:
        logger.error(
            "worker_failed",
            audio_path=args.audio_path,
            error_code=exc.error_code,
            error=exc.message,
        )
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.error(
            "worker_failed",
            audio_path=args.audio_path,
            error=str(exc),
        )
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
