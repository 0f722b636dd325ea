"""
Concurrent clip cutting with a bounded number of ffmpeg processes.
"""

import asyncio
import logging
import os

from tqdm.asyncio import tqdm

from .errors import CorruptOutput, EngineInvocationFailed
from .io_ffmpeg import ensure_dir
from .materialize import (
    category_output_dir,
    describe,
    output_extension,
    segment_filename,
    verify_artifact,
)
from .models import CategoryResult, SegmentArtifact, SegmentDescriptor, SegmentFailure

logger = logging.getLogger("segmenter")


async def materialize_category_async(
    video_path: str,
    descriptors: list[SegmentDescriptor],
    category: str,
    output_root: str,
    engine,
    max_concurrent: int = 4,
) -> CategoryResult:
    """
    Same contract as materialize_category, with up to max_concurrent cuts in flight.
    Artifacts and failures are reported in descriptor order, not completion order.
    """
    out_dir = category_output_dir(output_root, video_path, category)
    ensure_dir(out_dir)
    ext = output_extension(video_path)
    semaphore = asyncio.Semaphore(max_concurrent)

    async def process_single(index: int, desc: SegmentDescriptor):
        out_path = os.path.join(out_dir, segment_filename(index, category, ext))
        async with semaphore:
            logger.info("Segment %d (%s) %s started: %s", index, category, describe(desc), desc.label)
            try:
                await engine.cut_async(video_path, desc.start, desc.duration, out_path)
                verify_artifact(out_path)
            except (EngineInvocationFailed, CorruptOutput) as e:
                logger.error("Error processing segment %d (%s): %s", index, category, e)
                return SegmentFailure(descriptor=desc, index=index, reason=f"{type(e).__name__}: {e}")
        logger.info("Segment %d (%s) saved -> %s", index, category, out_path)
        return SegmentArtifact(descriptor=desc, index=index, path=out_path, verified=True)

    tasks = [process_single(index, desc) for index, desc in enumerate(descriptors, 1)]
    outcomes = await tqdm.gather(*tasks, desc=f"Cutting {category} (async)", unit="clip")

    result = CategoryResult(category=category, output_dir=out_dir)
    for outcome in outcomes:
        if isinstance(outcome, SegmentFailure):
            result.failures.append(outcome)
        else:
            result.artifacts.append(outcome)
    return result
