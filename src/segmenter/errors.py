"""
Error types for the segmentation pipeline.

Segment-level errors (EngineInvocationFailed, CorruptOutput) skip one clip,
category-level errors (MalformedTimestamp, InvalidRange, DocumentMalformed)
skip one category, StitchFailed only aborts the stitch step. The analysis
and input errors abort the whole run.
"""


class SegmenterError(RuntimeError):
    """Base class for all pipeline errors."""


class ConfigError(SegmenterError):
    """Missing or invalid configuration (e.g. no API key)."""


class MalformedTimestamp(SegmenterError):
    """A textual timestamp could not be parsed."""


class InvalidRange(SegmenterError):
    """A time range ends before it starts."""


class DocumentMalformed(SegmenterError):
    """The analysis document (or one category of it) has an unusable structure."""


class EngineInvocationFailed(SegmenterError):
    """ffmpeg exited with an error, timed out, or could not be started."""

    def __init__(self, msg: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(msg)
        self.returncode = returncode
        self.output = output


class CorruptOutput(SegmenterError):
    """ffmpeg reported success but the output file is missing or empty."""


class StitchFailed(SegmenterError):
    """Concatenation of the selected clips failed."""


class NoInputFound(SegmenterError):
    """No input video was found."""


class AnalysisUnavailable(SegmenterError):
    """The analysis service could not be reached or returned nothing."""


class AnalysisFailedState(SegmenterError):
    """The uploaded video ended up in the FAILED processing state."""


class AnalysisTimedOut(SegmenterError):
    """The uploaded video did not become ready within the poll ceiling."""
