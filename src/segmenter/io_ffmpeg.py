"""
Video cutting and concatenation using ffmpeg.
"""

import asyncio
import logging
import os
import subprocess
import tempfile
from pathlib import Path

from .errors import EngineInvocationFailed
from .timecode import format_offset

logger = logging.getLogger("segmenter")

# Lines of ffmpeg output kept in error messages
OUTPUT_TAIL_LINES = 5


def _tail(output: str) -> str:
    return "\n".join(output.strip().splitlines()[-OUTPUT_TAIL_LINES:])


def run(cmd: list[str], *, check: bool = True, timeout: float | None = None) -> str:
    """Run a command and return its combined stdout/stderr."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise EngineInvocationFailed(f"{cmd[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise EngineInvocationFailed(f"Could not start {cmd[0]}: {e}") from e
    if proc.returncode != 0 and check:
        logger.debug("Command failed with code %d: %s", proc.returncode, proc.stdout)
        msg = f"{cmd[0]} failed with code {proc.returncode}: {_tail(proc.stdout)}"
        raise EngineInvocationFailed(msg, returncode=proc.returncode, output=proc.stdout)
    return proc.stdout


async def run_async(cmd: list[str], *, timeout: float | None = None) -> str:
    """Async counterpart of run(); always checks the exit code."""
    logger.debug("Running (async): %s", " ".join(map(str, cmd)))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.STDOUT
        )
    except OSError as e:
        raise EngineInvocationFailed(f"Could not start {cmd[0]}: {e}") from e
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise EngineInvocationFailed(f"{cmd[0]} timed out after {timeout}s") from e
    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    if proc.returncode != 0:
        msg = f"{cmd[0]} failed with code {proc.returncode}: {_tail(output)}"
        raise EngineInvocationFailed(msg, returncode=proc.returncode, output=output)
    return output


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def _codec_args(reencode: bool) -> list[str]:
    if reencode:
        return ["-c:v", "libx264", "-preset", "veryfast", "-crf", "18", "-c:a", "aac", "-b:a", "192k"]
    return ["-c", "copy"]


def build_cut_cmd(
    input_video: str,
    start: int,
    duration: int | None,
    output_video: str,
    reencode: bool = False,
) -> list[str]:
    """ffmpeg command for one clip; without a duration the clip runs to the end."""
    cmd = ["ffmpeg", "-hide_banner", "-y", "-ss", format_offset(start), "-i", input_video]
    if duration is not None:
        cmd += ["-t", format_offset(duration)]
    cmd += _codec_args(reencode)
    cmd.append(output_video)
    return cmd


def build_concat_cmd(list_file: str, output_video: str, reencode: bool = False) -> list[str]:
    return [
        "ffmpeg",
        "-hide_banner",
        "-y",
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        list_file,
        *_codec_args(reencode),
        output_video,
    ]


def write_concat_list(inputs: list[str], list_file: str) -> None:
    """Write an ffmpeg concat-demuxer list with absolute, quoted paths."""
    with open(list_file, "w", encoding="utf-8") as f:
        for path in inputs:
            quoted = os.path.abspath(path).replace("'", "'\\''")
            f.write(f"file '{quoted}'\n")


class FfmpegEngine:
    """Slicing/concatenation engine backed by the ffmpeg binary."""

    def __init__(self, reencode: bool = False, timeout: float | None = None):
        self.reencode = reencode
        self.timeout = timeout

    def cut(self, input_video: str, start: int, duration: int | None, output_video: str) -> None:
        cmd = build_cut_cmd(input_video, start, duration, output_video, self.reencode)
        logger.debug("ffmpeg started: %s", output_video)
        run(cmd, timeout=self.timeout)

    async def cut_async(
        self, input_video: str, start: int, duration: int | None, output_video: str
    ) -> None:
        cmd = build_cut_cmd(input_video, start, duration, output_video, self.reencode)
        logger.debug("ffmpeg started: %s", output_video)
        await run_async(cmd, timeout=self.timeout)

    def concat(self, inputs: list[str], output_video: str) -> None:
        out_dir = os.path.dirname(os.path.abspath(output_video))
        fd, list_file = tempfile.mkstemp(prefix="concat_", suffix=".txt", dir=out_dir)
        os.close(fd)
        try:
            write_concat_list(inputs, list_file)
            run(build_concat_cmd(list_file, output_video, self.reencode), timeout=self.timeout)
        finally:
            Path(list_file).unlink(missing_ok=True)
