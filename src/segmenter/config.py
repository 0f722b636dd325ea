"""
Pipeline configuration.
"""

import os
from dataclasses import dataclass, field

from .errors import ConfigError

# Processing order; other categories found in a document follow these.
KNOWN_CATEGORIES = ("chapters", "controversial", "viral")

DEFAULT_MIN_DURATIONS = {
    "chapters": 0,
    "controversial": 10,
    "viral": 30,
}

SCHEMA_VARIANTS = ("records", "legacy")


@dataclass
class PipelineConfig:
    """Settings for one pipeline run. Nothing here is read from globals at run time."""

    video_dir: str = "video"
    output_dir: str = "output"
    input_video: str | None = None
    video_extensions: tuple[str, ...] = (".mp4",)
    analysis_json: str | None = None

    # Gemini
    api_key: str | None = None
    model: str = "gemini-1.5-flash"
    schema_variant: str = "records"
    poll_interval: float = 10.0
    max_polls: int = 60

    # ffmpeg
    max_concurrent: int = 1
    engine_timeout: float | None = None
    reencode: bool = False

    # Category duration policy
    enforce_min_durations: bool = False
    min_durations: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MIN_DURATIONS))

    # Stitching
    stitch_output: str = "stitched_chapters"

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config with the API key taken from GEMINI_API_KEY or GOOGLE_API_KEY."""
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        values = {"api_key": api_key}
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        if self.schema_variant not in SCHEMA_VARIANTS:
            raise ConfigError(
                f"Unknown schema variant {self.schema_variant!r}; expected one of {SCHEMA_VARIANTS}"
            )
        if self.max_concurrent < 1:
            raise ConfigError("max_concurrent must be at least 1")
        if self.max_polls < 1:
            raise ConfigError("max_polls must be at least 1")
        if self.poll_interval < 0:
            raise ConfigError("poll_interval must not be negative")
        if self.engine_timeout is not None and self.engine_timeout <= 0:
            raise ConfigError("engine_timeout must be positive")

    def min_duration_for(self, category: str) -> int:
        return self.min_durations.get(category, 0)
