"""
Data models for the segmentation pipeline.
"""

from dataclasses import dataclass, field


@dataclass
class SegmentDescriptor:
    """A validated time range to cut from the source video."""

    start: int  # seconds
    duration: int | None  # seconds; None runs to the end of the input
    label: str
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def end(self) -> int | None:
        if self.duration is None:
            return None
        return self.start + self.duration


@dataclass
class SegmentArtifact:
    """A clip produced for one descriptor."""

    descriptor: SegmentDescriptor
    index: int  # 1-based segment number, also embedded in the filename
    path: str
    verified: bool = False


@dataclass
class SegmentFailure:
    """A segment that was skipped during materialization."""

    descriptor: SegmentDescriptor
    index: int
    reason: str


@dataclass
class CategoryResult:
    """Materialization outcome for one category."""

    category: str
    output_dir: str
    artifacts: list[SegmentArtifact] = field(default_factory=list)
    failures: list[SegmentFailure] = field(default_factory=list)


@dataclass
class StitchSelection:
    """1-based segment numbers to combine, and where to write the result."""

    indices: list[int]
    output_path: str


@dataclass
class StitchResult:
    """Outcome of a stitch; output_path is None when nothing was selected."""

    output_path: str | None
    inputs: list[str] = field(default_factory=list)
    skipped: bool = False


@dataclass
class RunSummary:
    """Everything one pipeline run produced or skipped."""

    video_path: str
    categories: dict[str, CategoryResult] = field(default_factory=dict)
    skipped_categories: dict[str, str] = field(default_factory=dict)
    rejected: dict[str, list[SegmentDescriptor]] = field(default_factory=dict)
    stitch: StitchResult | None = None
    stitch_error: str | None = None

    @property
    def artifact_count(self) -> int:
        return sum(len(r.artifacts) for r in self.categories.values())

    @property
    def failure_count(self) -> int:
        return sum(len(r.failures) for r in self.categories.values())
