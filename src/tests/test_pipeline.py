"""
Tests for the pipeline controller, with a fake analyzer and engine.
"""

import json
import os

import pytest
from conftest import FakeEngine

from segmenter.config import PipelineConfig
from segmenter.errors import AnalysisFailedState, ConfigError, NoInputFound
from segmenter.pipeline import Pipeline, category_order, locate_input_video
from segmenter.stitch import segment_number


class FakeAnalyzer:
    def __init__(self, document=None, error=None):
        self.document = document
        self.error = error
        self.calls = []

    def analyze(self, video_path, mime_type="video/mp4"):
        self.calls.append((video_path, mime_type))
        if self.error:
            raise self.error
        return self.document


DOCUMENT = {
    "chapters": {"00:00": "Intro", "00:05": "Setup", "00:12": "Wrap-up"},
    "controversial": [{"start_time": "00:02", "end_time": "00:14", "description": "Hot take"}],
    "viral": {"00:20": {"start": "00:20", "end": "00:55", "name": "Reveal"}},
}


def _config(tmp_path, **kwargs):
    return PipelineConfig(video_dir=str(tmp_path / "video"), output_dir=str(tmp_path / "output"), **kwargs)


def test_locate_input_video_picks_first_sorted(tmp_path):
    video_dir = tmp_path / "video"
    video_dir.mkdir()
    for name in ("b.mp4", "a.mp4", "notes.txt"):
        (video_dir / name).write_bytes(b"x")
    assert locate_input_video(_config(tmp_path)) == str(video_dir / "a.mp4")


def test_locate_input_video_none_found(tmp_path):
    (tmp_path / "video").mkdir()
    with pytest.raises(NoInputFound):
        locate_input_video(_config(tmp_path))
    with pytest.raises(NoInputFound):
        locate_input_video(PipelineConfig(video_dir=str(tmp_path / "missing")))
    with pytest.raises(NoInputFound):
        locate_input_video(PipelineConfig(input_video=str(tmp_path / "nope.mp4")))


def test_category_order():
    document = {"viral": {}, "bloopers": {}, "chapters": {}}
    assert category_order(document) == ["chapters", "viral", "bloopers"]


def test_run_produces_clips_per_category(tmp_path, video):
    engine = FakeEngine()
    analyzer = FakeAnalyzer(DOCUMENT)
    summary = Pipeline(_config(tmp_path), analyzer=analyzer, engine=engine).run()

    assert analyzer.calls == [(video, "video/mp4")]
    assert set(summary.categories) == {"chapters", "controversial", "viral"}
    chapters = summary.categories["chapters"]
    assert [os.path.basename(a.path) for a in chapters.artifacts] == [
        "segment_1_chapters.mp4",
        "segment_2_chapters.mp4",
        "segment_3_chapters.mp4",
    ]
    assert chapters.output_dir == os.path.join(str(tmp_path / "output"), "talk_chapters")
    assert summary.artifact_count == 5
    assert summary.stitch is None


def test_run_skips_missing_and_malformed_categories(tmp_path, video):
    document = {
        "chapters": {"00:00": "Intro", "oops": "Broken"},
        "viral": {"00:20": {"end": "00:10", "name": "Backwards"}},
        "controversial": {"00:30": "Fine"},
    }
    summary = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(document), engine=FakeEngine()).run()

    assert set(summary.categories) == {"controversial"}
    assert summary.skipped_categories["chapters"].startswith("MalformedTimestamp")
    assert summary.skipped_categories["viral"].startswith("InvalidRange")


def test_run_isolates_segment_failures(tmp_path, video):
    engine = FakeEngine(fail_segments={2})
    summary = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer({"chapters": DOCUMENT["chapters"]}), engine=engine).run()

    chapters = summary.categories["chapters"]
    assert [a.index for a in chapters.artifacts] == [1, 3]
    assert summary.failure_count == 1


def test_run_stitches_selected_chapters(tmp_path, video):
    engine = FakeEngine()
    pipeline = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(DOCUMENT), engine=engine)
    summary = pipeline.run(selection=[3, 1])

    assert summary.stitch.output_path == os.path.join(str(tmp_path / "output"), "stitched_chapters.mp4")
    inputs, _ = engine.concats[0]
    assert [segment_number(p) for p in inputs] == [1, 3]
    assert all("_chapters" in p for p in inputs)


def test_run_stitch_failure_is_not_fatal(tmp_path, video):
    engine = FakeEngine(fail_concat=True)
    summary = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(DOCUMENT), engine=engine).run(selection=[1])

    assert summary.stitch is None
    assert "stitch" in summary.stitch_error.lower()
    assert summary.artifact_count == 5


def test_run_stitch_without_chapters(tmp_path, video):
    engine = FakeEngine()
    document = {"viral": DOCUMENT["viral"]}
    summary = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(document), engine=engine).run(selection=[1])
    assert summary.stitch is None
    assert engine.concats == []


def test_run_enforces_min_durations(tmp_path, video):
    document = {
        "controversial": {
            "00:00": {"end": "00:05", "name": "Too short"},
            "00:10": {"end": "00:25", "name": "Long enough"},
        }
    }
    config = _config(tmp_path, enforce_min_durations=True)
    summary = Pipeline(config, analyzer=FakeAnalyzer(document), engine=FakeEngine()).run()

    assert [d.label for d in summary.rejected["controversial"]] == ["Too short"]
    artifacts = summary.categories["controversial"].artifacts
    assert [a.descriptor.label for a in artifacts] == ["Long enough"]


def test_run_trusts_durations_by_default(tmp_path, video):
    document = {"viral": {"00:00": {"end": "00:05", "name": "Short but trusted"}}}
    summary = Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(document), engine=FakeEngine()).run()
    assert len(summary.categories["viral"].artifacts) == 1
    assert summary.rejected == {}


def test_run_with_concurrency(tmp_path, video):
    engine = FakeEngine(fail_segments={2})
    config = _config(tmp_path, max_concurrent=3)
    summary = Pipeline(config, analyzer=FakeAnalyzer(DOCUMENT), engine=engine).run()
    assert [a.index for a in summary.categories["chapters"].artifacts] == [1, 3]
    assert len(engine.cuts) == 5


def test_run_from_saved_analysis(tmp_path, video):
    saved = tmp_path / "analysis.json"
    saved.write_text("```json\n" + json.dumps({"chapters": {"00:00": "Only"}}) + "\n```", encoding="utf-8")
    analyzer = FakeAnalyzer(DOCUMENT)
    config = _config(tmp_path, analysis_json=str(saved))

    summary = Pipeline(config, analyzer=analyzer, engine=FakeEngine()).run()

    assert analyzer.calls == []
    assert list(summary.categories) == ["chapters"]


def test_run_skips_category_with_infinite_duration(tmp_path, video):
    """json.loads turns a bare Infinity into float('inf'); only that category is lost."""
    saved = tmp_path / "analysis.json"
    saved.write_text(
        '{"chapters": {"00:00": "Intro", "00:05": "Main"},'
        ' "viral": [{"start": "00:20", "duration": Infinity, "description": "Forever"}]}',
        encoding="utf-8",
    )
    config = _config(tmp_path, analysis_json=str(saved))

    summary = Pipeline(config, analyzer=FakeAnalyzer(), engine=FakeEngine()).run()

    assert summary.skipped_categories["viral"].startswith("DocumentMalformed")
    assert len(summary.categories["chapters"].artifacts) == 2


def test_run_fatal_analysis_error(tmp_path, video):
    analyzer = FakeAnalyzer(error=AnalysisFailedState("failed"))
    with pytest.raises(AnalysisFailedState):
        Pipeline(_config(tmp_path), analyzer=analyzer, engine=FakeEngine()).run()


def test_run_without_video(tmp_path):
    (tmp_path / "video").mkdir()
    with pytest.raises(NoInputFound):
        Pipeline(_config(tmp_path), analyzer=FakeAnalyzer(DOCUMENT), engine=FakeEngine()).run()


def test_invalid_config():
    with pytest.raises(ConfigError):
        Pipeline(PipelineConfig(max_concurrent=0), engine=FakeEngine())
    with pytest.raises(ConfigError):
        PipelineConfig(schema_variant="xml").validate()


def test_config_from_env(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "secret")
    config = PipelineConfig.from_env(output_dir="clips", input_video=None)
    assert config.api_key == "secret"
    assert config.output_dir == "clips"
    assert config.min_duration_for("viral") == 30
    assert config.min_duration_for("bloopers") == 0
