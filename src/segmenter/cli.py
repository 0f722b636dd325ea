"""
Command-line interface for the video segmentation pipeline.
"""

import argparse
import logging
import pathlib
import sys

from dotenv import load_dotenv

from .config import SCHEMA_VARIANTS, PipelineConfig
from .errors import SegmenterError
from .pipeline import Pipeline
from .stitch import parse_selection

logger = logging.getLogger("segmenter")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def _selection(value: str) -> list[int]:
    try:
        return parse_selection(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid segment list {value!r}: {e}") from None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(
        description="Cut a video into chapter, controversial and viral clips using Gemini"
    )

    # IO
    ap.add_argument("--video-dir", default="video", help="Directory searched for the input video")
    ap.add_argument("--input-video", default=None, help="Process this file instead of searching --video-dir")
    ap.add_argument("--output-dir", default="output")
    ap.add_argument(
        "--analysis-json",
        default=None,
        help="Use a saved analysis response instead of calling Gemini",
    )

    # Gemini
    ap.add_argument("--model", default="gemini-1.5-flash")
    ap.add_argument(
        "--schema",
        choices=SCHEMA_VARIANTS,
        default="records",
        help="records: start/end/name objects; legacy: timestamp -> label only",
    )
    ap.add_argument("--poll-interval", type=float, default=10.0, help="Seconds between upload status checks")
    ap.add_argument("--max-polls", type=int, default=60, help="Give up after this many status checks")

    # ffmpeg
    ap.add_argument("--max-concurrent", type=int, default=1, help="Max concurrent ffmpeg processes per category")
    ap.add_argument("--engine-timeout", type=float, default=None, help="Per-clip ffmpeg timeout (sec)")
    ap.add_argument("--reencode", action="store_true", help="Re-encode clips (libx264/aac) instead of stream copy")

    # Segment policy
    ap.add_argument(
        "--enforce-min-durations",
        action="store_true",
        help="Drop controversial (<10s) and viral (<30s) segments the model got wrong",
    )

    # Stitching
    ap.add_argument(
        "--stitch",
        type=_selection,
        default=None,
        help="Comma-separated chapter numbers to combine, e.g. 3,1,5 (output is in chapter order)",
    )
    ap.add_argument("--stitch-output", default="stitched_chapters", help="Stitched file name (no extension)")

    # Logging
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    # Look for .env in the project root (parent of src directory)
    project_root = pathlib.Path(__file__).parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        # Fallback: try loading from current directory
        load_dotenv()

    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = PipelineConfig.from_env(
            video_dir=args.video_dir,
            input_video=args.input_video,
            output_dir=args.output_dir,
            analysis_json=args.analysis_json,
            model=args.model,
            schema_variant=args.schema,
            poll_interval=args.poll_interval,
            max_polls=args.max_polls,
            max_concurrent=args.max_concurrent,
            engine_timeout=args.engine_timeout,
            reencode=args.reencode,
            enforce_min_durations=args.enforce_min_durations,
            stitch_output=args.stitch_output,
        )
        summary = Pipeline(config).run(selection=args.stitch)
    except SegmenterError as e:
        logger.error("Error processing video: %s", e)
        return 1

    logger.info(
        "Video processing completed: %d clip(s), %d skipped segment(s), %d skipped categor%s",
        summary.artifact_count,
        summary.failure_count,
        len(summary.skipped_categories),
        "y" if len(summary.skipped_categories) == 1 else "ies",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
