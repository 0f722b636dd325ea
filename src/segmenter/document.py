"""
Cleanup and parsing of the analysis service's text response.

The model is asked for bare JSON but often wraps it in code fences, adds a
sentence of commentary, or leaves small punctuation mistakes behind.
"""

import json
import logging
import re

from .errors import DocumentMalformed

logger = logging.getLogger("segmenter")

CATEGORY_ALIASES = {
    "chapters": "chapters",
    "chapter": "chapters",
    "controversial": "controversial",
    "controversial_parts": "controversial",
    "controversial_segments": "controversial",
    "viral": "viral",
    "viral_parts": "viral",
    "viral_segments": "viral",
}

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
# a quoted token sits between JSON punctuation; apostrophes inside text do not
_SINGLE_QUOTED_RE = re.compile(r"([{\[,:]\s*)'([^'\"\\]*)'(?=\s*[:,}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_MISSING_COMMA_RE = re.compile(r'("|\}|\])(\s*\n\s*)(")')


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers."""
    return _FENCE_RE.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """Keep only the outermost {...} span, dropping commentary around it."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return text
    return text[start : end + 1]


def _drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _double_quote_strings(text: str) -> str:
    return _SINGLE_QUOTED_RE.sub(r'\1"\2"', text)


def _quote_bare_keys(text: str) -> str:
    return _BARE_KEY_RE.sub(r'\1"\2"\3', text)


def _insert_missing_commas(text: str) -> str:
    return _MISSING_COMMA_RE.sub(r"\1,\2\3", text)


# Applied cumulatively, least invasive first.
_REPAIRS = (
    _drop_trailing_commas,
    _insert_missing_commas,
    _double_quote_strings,
    _quote_bare_keys,
)


def repair_json(text: str) -> str:
    """
    Best-effort fixes for common model punctuation mistakes:
    trailing commas, a missing comma between members on separate lines,
    single-quoted strings and bare keys.
    """
    for fix in _REPAIRS:
        text = fix(text)
    return text


def normalize_categories(document: dict) -> dict:
    """Map category aliases (e.g. 'viral_parts') to canonical names."""
    out: dict = {}
    for key, value in document.items():
        name = CATEGORY_ALIASES.get(str(key).strip().lower(), str(key).strip())
        if name in out:
            logger.warning("Duplicate category %r (from key %r); keeping the first one", name, key)
            continue
        out[name] = value
    return out


def parse_analysis_text(text: str) -> dict:
    """Parse a raw service response into an analysis document."""
    if not text or not text.strip():
        raise DocumentMalformed("Analysis response is empty")

    candidate = extract_json_object(strip_code_fences(text))
    document = _loads_with_repairs(candidate, text)

    if not isinstance(document, dict):
        raise DocumentMalformed(
            f"Analysis document must be a JSON object, got {type(document).__name__}"
        )
    return normalize_categories(document)


def load_analysis_file(path: str) -> dict:
    """Load a saved analysis response (fenced or bare JSON) from disk."""
    with open(path, encoding="utf-8") as f:
        return parse_analysis_text(f.read())


def _loads_with_repairs(candidate: str, raw: str):
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug("Strict JSON parse failed (%s); trying repair passes", e)
        error = e

    repaired = candidate
    for fix in _REPAIRS:
        repaired = fix(repaired)
        try:
            document = json.loads(repaired)
        except json.JSONDecodeError as e:
            error = e
            continue
        logger.info("Analysis response needed punctuation repair (%s)", fix.__name__.lstrip("_"))
        return document

    logger.debug("Raw response: %s", raw)
    raise DocumentMalformed(f"Analysis response is not valid JSON: {error}") from error
