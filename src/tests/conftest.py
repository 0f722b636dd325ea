"""
Shared fixtures: a fake ffmpeg engine that writes placeholder files.
"""

import os
import re

import pytest

from segmenter.errors import EngineInvocationFailed

_NUMBER_RE = re.compile(r"^segment_(\d+)_")


def _number(path):
    m = _NUMBER_RE.match(os.path.basename(path))
    return int(m.group(1)) if m else None


class FakeEngine:
    """Records calls; selected segment numbers fail or produce empty output."""

    def __init__(self, fail_segments=(), empty_segments=(), fail_concat=False):
        self.fail_segments = set(fail_segments)
        self.empty_segments = set(empty_segments)
        self.fail_concat = fail_concat
        self.cuts: list[tuple[str, int, int | None, str]] = []
        self.concats: list[tuple[list[str], str]] = []

    def cut(self, input_video, start, duration, output_video):
        self.cuts.append((input_video, start, duration, output_video))
        number = _number(output_video)
        if number in self.fail_segments:
            raise EngineInvocationFailed(f"fake failure on segment {number}", returncode=1)
        with open(output_video, "wb") as f:
            if number not in self.empty_segments:
                f.write(b"fake video data")

    async def cut_async(self, input_video, start, duration, output_video):
        self.cut(input_video, start, duration, output_video)

    def concat(self, inputs, output_video):
        self.concats.append((list(inputs), output_video))
        if self.fail_concat:
            raise EngineInvocationFailed("fake concat failure", returncode=1)
        with open(output_video, "wb") as f:
            f.write(b"stitched")


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def video(tmp_path):
    """A placeholder input video file."""
    path = tmp_path / "video" / "talk.mp4"
    path.parent.mkdir()
    path.write_bytes(b"not really a video")
    return str(path)
