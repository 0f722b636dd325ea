"""
Video analysis with Gemini: upload, wait for processing, prompt, parse.
"""

import logging
import os
import time
from collections.abc import Callable

from .document import parse_analysis_text
from .errors import AnalysisFailedState, AnalysisTimedOut, AnalysisUnavailable, ConfigError

logger = logging.getLogger("segmenter")

# Optional Gemini SDK
try:
    from google import genai
    from google.genai import types
except ImportError:
    genai = None
    types = None

STATE_PROCESSING = "PROCESSING"
STATE_ACTIVE = "ACTIVE"
STATE_FAILED = "FAILED"

RECORDS_PROMPT = """Analyze the given video and return a JSON object with exactly three keys: "chapters", "controversial_parts" and "viral_parts".

- "chapters": divide the whole video into consecutive chapters.
- "controversial_parts": segments of at least 10 seconds that could spark debate or controversy.
- "viral_parts": segments of at least 30 seconds with high potential to go viral.

Each key maps to an object whose keys are start timestamps ("HH:MM:SS") and whose values are objects:
{ "start": "HH:MM:SS", "end": "HH:MM:SS", "name": "<chapter name or short description>" }

Timestamps must be zero-padded and within the video's duration; every end must be after its start.
Return ONLY the JSON object, with no code fences, comments or explanations."""

LEGACY_PROMPT = """Generate a detailed JSON output with three objects based on the following criteria from the given video content:

Divide the Video into Chapters: Create an object with timestamps as keys and corresponding chapter names as values.
Find Controversial Parts: Identify segments with a minimum length of 10 seconds that could spark debate or controversy, with timestamps as keys and descriptions as values.
Identify Viral Parts: Locate segments with a minimum length of 30 seconds that have high potential to go viral, with timestamps as keys and descriptions as values.
Ensure the output only includes the JSON structure for these three objects, formatted for direct integration into code without extra lines or explanations. Keep it concise and precise."""

PROMPTS = {
    "records": RECORDS_PROMPT,
    "legacy": LEGACY_PROMPT,
}


def _state_name(file_obj) -> str:
    state = getattr(file_obj, "state", None)
    if state is None:
        return ""
    return getattr(state, "name", None) or str(state)


class GeminiAnalyzer:
    """Content-analysis collaborator backed by the Gemini Files API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-1.5-flash",
        poll_interval: float = 10.0,
        max_polls: int = 60,
        schema_variant: str = "records",
        client=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if schema_variant not in PROMPTS:
            raise ConfigError(f"Unknown schema variant {schema_variant!r}")
        if client is None:
            if genai is None:
                raise ConfigError("google-genai package not installed. Install with: pip install google-genai")
            if not api_key:
                raise ConfigError("GEMINI_API_KEY is not set. Put it in .env or environment.")
            client = genai.Client(api_key=api_key)
        self.client = client
        self.model = model
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.prompt = PROMPTS[schema_variant]
        self._sleep = sleep

    def upload(self, video_path: str, mime_type: str):
        logger.info("Uploading %s to Gemini…", os.path.basename(video_path))
        try:
            return self.client.files.upload(
                file=video_path,
                config={"mime_type": mime_type, "display_name": os.path.basename(video_path)},
            )
        except Exception as e:
            raise AnalysisUnavailable(f"Failed to upload video {video_path}: {e}") from e

    def wait_until_ready(self, file_obj):
        """Poll while the upload is PROCESSING, at most max_polls times."""
        polls = 0
        while _state_name(file_obj) == STATE_PROCESSING:
            if polls >= self.max_polls:
                raise AnalysisTimedOut(
                    f"{file_obj.name} still processing after {polls} polls "
                    f"({polls * self.poll_interval:.0f}s)"
                )
            logger.debug("File still processing: %s", file_obj.name)
            self._sleep(self.poll_interval)
            polls += 1
            try:
                file_obj = self.client.files.get(name=file_obj.name)
            except Exception as e:
                raise AnalysisUnavailable(f"Failed to query status of {file_obj.name}: {e}") from e

        state = _state_name(file_obj)
        if state == STATE_FAILED:
            raise AnalysisFailedState(f"Processing failed for uploaded video {file_obj.name}")
        if state != STATE_ACTIVE:
            logger.warning("Unexpected file state %r for %s; continuing", state, file_obj.name)
        logger.info("File ready for analysis: %s", file_obj.name)
        return file_obj

    def generate(self, file_obj) -> str:
        config = types.GenerateContentConfig(temperature=0.2) if types is not None else None
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[file_obj, self.prompt],
                config=config,
            )
        except Exception as e:
            raise AnalysisUnavailable(f"Gemini request failed: {e}") from e
        text = getattr(response, "text", None)
        if not text:
            raise AnalysisUnavailable("Gemini returned an empty response")
        logger.debug("Analysis response: %s", text)
        return text

    def delete(self, file_obj) -> None:
        try:
            self.client.files.delete(name=file_obj.name)
        except Exception as e:
            logger.warning("Failed to delete uploaded file %s: %s", file_obj.name, e)

    def analyze(self, video_path: str, mime_type: str = "video/mp4") -> dict:
        """Return the parsed analysis document for one video."""
        uploaded = self.upload(video_path, mime_type)
        try:
            ready = self.wait_until_ready(uploaded)
            text = self.generate(ready)
        finally:
            self.delete(uploaded)
        document = parse_analysis_text(text)
        logger.info("Analysis returned categories: %s", ", ".join(document) or "none")
        return document
