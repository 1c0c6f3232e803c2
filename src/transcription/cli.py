"""Command-line transcription of a local audio file of any length.

Entry point
-----------
Run as a module::

    python -m src.transcription.cli recording.mp3 \\
        --output transcript.json \\
        --format json

Use ``--help`` for full argument documentation.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from src.pipeline_config import ChunkingLimits
from src.transcription.errors import TranscriptionError
from src.transcription.models import TranscriptionResult
from src.transcription.planning import check_audio_file_size
from src.transcription.stitching import format_timestamp


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.transcription.cli",
        description="Transcribe a local audio file, splitting it to fit the provider size limit.",
    )
    parser.add_argument("audio", help="Path to a local audio file.")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Known duration in seconds (skips the ffprobe call for the whole file).",
    )
    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the transcript to this file instead of stdout.",
    )
    parser.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="json: {segments, duration_seconds, estimated_cost}; text: '[m:ss] text' lines.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def format_result(result: TranscriptionResult, output_format: str) -> str:
    """Render a result as JSON or as timestamped text lines."""
    if output_format == "text":
        return "\n".join(
            f"[{format_timestamp(seg.start_seconds)}] {seg.text}" for seg in result.segments
        )
    return json.dumps(
        {
            "segments": result.to_dicts(),
            "segment_count": len(result.segments),
            "duration_seconds": result.duration_seconds,
            "estimated_cost": result.estimated_cost,
        },
        indent=2,
        ensure_ascii=False,
    )


def main(argv: list[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Import here so --help works without a configured environment
    from src.config import settings
    from src.transcription.pipeline import transcribe_audio

    check = check_audio_file_size(args.audio, ChunkingLimits.from_settings(settings))
    if not check.valid:
        print(f"ERROR: {check.error}", file=sys.stderr)
        return 1

    print(f"Transcribing {args.audio} ({check.size_mb:.1f} MB) …", file=sys.stderr)
    try:
        result = transcribe_audio(args.audio, duration_hint=args.duration)
    except TranscriptionError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    rendered = format_result(result, args.format)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(rendered + "\n")
        print(f"Saved {len(result.segments)} segments -> {args.output}", file=sys.stderr)
    else:
        print(rendered)

    print(
        f"Transcription complete: {len(result.segments)} segments, "
        f"estimated cost {result.estimated_cost}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
