"""
Pipeline controller: find the video, analyze it, cut every category, stitch.

Segment and category failures are logged and collected in the RunSummary;
only input discovery and analysis errors abort a run.
"""

import asyncio
import logging
import mimetypes
import os

from .config import KNOWN_CATEGORIES, PipelineConfig
from .document import load_analysis_file
from .errors import DocumentMalformed, InvalidRange, MalformedTimestamp, NoInputFound, StitchFailed
from .io_ffmpeg import FfmpegEngine, ensure_dir
from .materialize import materialize_category, output_extension
from .materialize_async import materialize_category_async
from .models import CategoryResult, RunSummary, SegmentDescriptor, StitchSelection
from .normalize import apply_min_duration, normalize_category
from .stitch import stitch

logger = logging.getLogger("segmenter")

STITCH_CATEGORY = "chapters"


def locate_input_video(config: PipelineConfig) -> str:
    """
    Return the explicit input video, or the first matching file in video_dir.
    With several candidates the first in sorted order wins.
    """
    if config.input_video:
        if not os.path.isfile(config.input_video):
            raise NoInputFound(f"Input video not found: {config.input_video}")
        return config.input_video

    if not os.path.isdir(config.video_dir):
        raise NoInputFound(f"Video directory not found: {config.video_dir}")
    extensions = tuple(ext.lower() for ext in config.video_extensions)
    candidates = sorted(
        name
        for name in os.listdir(config.video_dir)
        if name.lower().endswith(extensions) and os.path.isfile(os.path.join(config.video_dir, name))
    )
    if not candidates:
        raise NoInputFound(f"No video files found in {config.video_dir}")
    if len(candidates) > 1:
        logger.warning(
            "Found %d videos in %s; processing %s and ignoring the rest",
            len(candidates),
            config.video_dir,
            candidates[0],
        )
    return os.path.join(config.video_dir, candidates[0])


def category_order(document: dict) -> list[str]:
    """Known categories first, then any others in document order."""
    ordered = [c for c in KNOWN_CATEGORIES if c in document]
    ordered += [c for c in document if c not in KNOWN_CATEGORIES]
    return ordered


class Pipeline:
    """Runs one video through analysis, clipping and optional stitching."""

    def __init__(self, config: PipelineConfig, analyzer=None, engine=None):
        config.validate()
        self.config = config
        self._analyzer = analyzer
        self.engine = engine or FfmpegEngine(reencode=config.reencode, timeout=config.engine_timeout)

    @property
    def analyzer(self):
        if self._analyzer is None:
            from .analysis import GeminiAnalyzer

            self._analyzer = GeminiAnalyzer(
                api_key=self.config.api_key,
                model=self.config.model,
                poll_interval=self.config.poll_interval,
                max_polls=self.config.max_polls,
                schema_variant=self.config.schema_variant,
            )
        return self._analyzer

    def analyze(self, video_path: str) -> dict:
        if self.config.analysis_json:
            logger.info("Using saved analysis -> %s", self.config.analysis_json)
            return load_analysis_file(self.config.analysis_json)
        mime_type = mimetypes.guess_type(video_path)[0] or "video/mp4"
        return self.analyzer.analyze(video_path, mime_type)

    def prepare_category(self, category: str, payload) -> tuple[list[SegmentDescriptor], list[SegmentDescriptor]]:
        """Normalize one category and apply the minimum-duration policy."""
        descriptors = normalize_category(payload)
        if not self.config.enforce_min_durations:
            return descriptors, []
        return apply_min_duration(descriptors, category, self.config.min_duration_for(category))

    def materialize(self, video_path: str, descriptors: list[SegmentDescriptor], category: str) -> CategoryResult:
        if self.config.max_concurrent > 1:
            return asyncio.run(
                materialize_category_async(
                    video_path,
                    descriptors,
                    category,
                    self.config.output_dir,
                    self.engine,
                    max_concurrent=self.config.max_concurrent,
                )
            )
        return materialize_category(video_path, descriptors, category, self.config.output_dir, self.engine)

    def stitch_output_path(self, video_path: str) -> str:
        name = f"{self.config.stitch_output}.{output_extension(video_path)}"
        return os.path.join(self.config.output_dir, name)

    def run(self, selection: list[int] | StitchSelection | None = None) -> RunSummary:
        """Process the input video; returns a summary even when some segments fail."""
        ensure_dir(self.config.output_dir)
        video_path = locate_input_video(self.config)
        logger.info("Processing video: %s", video_path)

        document = self.analyze(video_path)
        summary = RunSummary(video_path=video_path)

        for category in category_order(document):
            logger.info("Splitting %s…", category)
            try:
                descriptors, rejected = self.prepare_category(category, document[category])
            except (DocumentMalformed, MalformedTimestamp, InvalidRange) as e:
                logger.error("Skipping category %s: %s", category, e)
                summary.skipped_categories[category] = f"{type(e).__name__}: {e}"
                continue
            if rejected:
                summary.rejected[category] = rejected
            if not descriptors:
                logger.info("No segments to cut for %s", category)
            summary.categories[category] = self.materialize(video_path, descriptors, category)

        chapters = summary.categories.get(STITCH_CATEGORY)
        if selection is not None and chapters is not None and chapters.artifacts:
            if not isinstance(selection, StitchSelection):
                selection = StitchSelection(indices=list(selection), output_path=self.stitch_output_path(video_path))
            try:
                summary.stitch = stitch(chapters.artifacts, selection, self.engine)
            except StitchFailed as e:
                logger.error("%s", e)
                summary.stitch_error = str(e)
        elif selection is not None:
            logger.warning("Stitch requested but no chapter clips were produced; skipping")

        log_summary(summary)
        return summary


def log_summary(summary: RunSummary) -> None:
    logger.info("=== Summary for %s ===", summary.video_path)
    for category, result in summary.categories.items():
        logger.info(
            "%s: %d clip(s) in %s, %d skipped",
            category,
            len(result.artifacts),
            result.output_dir,
            len(result.failures),
        )
        for failure in result.failures:
            logger.info("  skipped segment %d: %s", failure.index, failure.reason)
    for category, rejected in summary.rejected.items():
        logger.info("%s: %d segment(s) below the minimum duration", category, len(rejected))
    for category, reason in summary.skipped_categories.items():
        logger.info("%s: category skipped (%s)", category, reason)
    if summary.stitch is not None and summary.stitch.output_path:
        logger.info("Stitched %d clip(s) -> %s", len(summary.stitch.inputs), summary.stitch.output_path)
    if summary.stitch_error:
        logger.info("Stitch failed: %s", summary.stitch_error)
