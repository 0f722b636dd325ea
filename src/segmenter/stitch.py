"""
Combine selected clips of one category into a single video.

Selections refer to segment numbers as embedded in the clip filenames
(segment_<n>_<category>.<ext>). The output always follows ascending segment
number, whatever order the selection lists them in.
"""

import logging
import os
import re

from .errors import CorruptOutput, EngineInvocationFailed, StitchFailed
from .io_ffmpeg import ensure_dir
from .materialize import verify_artifact
from .models import SegmentArtifact, StitchResult, StitchSelection

logger = logging.getLogger("segmenter")

_SEGMENT_NUMBER_RE = re.compile(r"^segment_(\d+)_")


def segment_number(path: str) -> int | None:
    """Segment number embedded in a clip filename, or None if it has none."""
    m = _SEGMENT_NUMBER_RE.match(os.path.basename(path))
    return int(m.group(1)) if m else None


def parse_selection(text: str) -> list[int]:
    """Parse '3,1,5' into [3, 1, 5]; raises ValueError on anything else."""
    indices = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        value = int(part)
        if value < 1:
            raise ValueError(f"Segment numbers start at 1, got {value}")
        indices.append(value)
    return indices


def select_artifacts(artifacts: list[SegmentArtifact], indices: list[int]) -> list[SegmentArtifact]:
    """Artifacts whose filename number is selected, in ascending segment order."""
    wanted = set(indices)
    chosen = []
    for artifact in artifacts:
        number = segment_number(artifact.path)
        if number is not None and number in wanted:
            chosen.append((number, artifact))
    chosen.sort(key=lambda item: item[0])
    return [artifact for _, artifact in chosen]


def stitch(artifacts: list[SegmentArtifact], selection: StitchSelection, engine) -> StitchResult:
    """
    Concatenate the selected artifacts into selection.output_path.

    Returns a skipped result (no engine call) when nothing matches.
    Raises StitchFailed if ffmpeg fails; the input clips are left alone.
    """
    chosen = select_artifacts(artifacts, selection.indices)
    if not chosen:
        logger.info("Stitch selection %s matches no clips; nothing to combine", selection.indices)
        return StitchResult(output_path=None, skipped=True)

    missing = sorted(set(selection.indices) - {segment_number(a.path) for a in chosen})
    if missing:
        logger.warning("Selected segments not available (failed or out of range): %s", missing)

    inputs = [a.path for a in chosen]
    ensure_dir(os.path.dirname(selection.output_path))
    logger.info("Stitching %d clips -> %s", len(inputs), selection.output_path)
    try:
        engine.concat(inputs, selection.output_path)
        verify_artifact(selection.output_path)
    except (EngineInvocationFailed, CorruptOutput) as e:
        raise StitchFailed(f"Could not stitch {selection.output_path}: {e}") from e

    logger.info("Stitched video saved -> %s", selection.output_path)
    return StitchResult(output_path=selection.output_path, inputs=inputs)
