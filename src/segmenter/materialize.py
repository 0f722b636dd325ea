"""
Cut one clip per segment descriptor.

A failing segment is logged and skipped; the rest of the category still runs.
Artifacts keep their original 1-based segment number in the filename, so a
failed segment leaves a gap in the numbering rather than shifting it.
"""

import logging
import os
from pathlib import Path

from tqdm import tqdm

from .errors import CorruptOutput, EngineInvocationFailed
from .io_ffmpeg import ensure_dir
from .models import CategoryResult, SegmentArtifact, SegmentDescriptor, SegmentFailure
from .timecode import format_offset

logger = logging.getLogger("segmenter")


def output_extension(video_path: str) -> str:
    return Path(video_path).suffix.lstrip(".") or "mp4"


def category_output_dir(output_root: str, video_path: str, category: str) -> str:
    """<output-root>/<video-basename>_<category>"""
    return os.path.join(output_root, f"{Path(video_path).stem}_{category}")


def segment_filename(index: int, category: str, ext: str = "mp4") -> str:
    return f"segment_{index}_{category}.{ext}"


def verify_artifact(path: str) -> None:
    """Raise CorruptOutput unless path is an existing, non-empty file."""
    if not os.path.isfile(path):
        raise CorruptOutput(f"Output file was not created: {path}")
    if os.path.getsize(path) == 0:
        raise CorruptOutput(f"Output file is empty: {path}")


def describe(desc: SegmentDescriptor) -> str:
    end = "end" if desc.end is None else format_offset(desc.end)
    return f"{format_offset(desc.start)}-{end}"


def materialize_segment(
    engine, video_path: str, desc: SegmentDescriptor, index: int, output_path: str
) -> SegmentArtifact:
    """Cut and verify a single clip; raises EngineInvocationFailed or CorruptOutput."""
    engine.cut(video_path, desc.start, desc.duration, output_path)
    verify_artifact(output_path)
    return SegmentArtifact(descriptor=desc, index=index, path=output_path, verified=True)


def materialize_category(
    video_path: str,
    descriptors: list[SegmentDescriptor],
    category: str,
    output_root: str,
    engine,
) -> CategoryResult:
    """Cut every descriptor of one category, one ffmpeg process at a time."""
    out_dir = category_output_dir(output_root, video_path, category)
    ensure_dir(out_dir)
    ext = output_extension(video_path)
    result = CategoryResult(category=category, output_dir=out_dir)

    for index, desc in enumerate(tqdm(descriptors, desc=f"Cutting {category}", unit="clip"), 1):
        out_path = os.path.join(out_dir, segment_filename(index, category, ext))
        logger.info("Segment %d (%s) %s started: %s", index, category, describe(desc), desc.label)
        try:
            artifact = materialize_segment(engine, video_path, desc, index, out_path)
        except (EngineInvocationFailed, CorruptOutput) as e:
            logger.error("Error processing segment %d (%s): %s", index, category, e)
            result.failures.append(
                SegmentFailure(descriptor=desc, index=index, reason=f"{type(e).__name__}: {e}")
            )
            continue
        logger.info("Segment %d (%s) saved -> %s", index, category, artifact.path)
        result.artifacts.append(artifact)

    return result
