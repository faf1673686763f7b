"""Tests for the run reporter."""

from __future__ import annotations

import json

import pytest

from covergen.observability.py_reporter import create_run_reporter, parse_level


def read_events(reporter):
    path = reporter.output_paths[0]
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def reporter(tmp_path):
    return create_run_reporter("covergen", run_id="run-1", output_dir=tmp_path, enable_console=False)


def test_event_file_location(reporter, tmp_path):
    assert reporter.output_paths[0] == tmp_path / "covergen" / "run-1.jsonl"


def test_env_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("COVERGEN_OBS_DIR", str(tmp_path / "obs"))
    reporter = create_run_reporter("covergen", run_id="env", enable_console=False)
    assert reporter.output_paths[0] == tmp_path / "obs" / "covergen" / "env.jsonl"


def test_generated_run_id(tmp_path):
    reporter = create_run_reporter("covergen", output_dir=tmp_path, enable_console=False)
    assert reporter.run_id.startswith("covergen-")


def test_level_gating(reporter):
    reporter.debug("hidden")
    reporter.info("shown", attrs={"item": "a"})
    events = read_events(reporter)
    assert len(events) == 1
    assert events[0]["kind"] == "info"
    assert events[0]["runId"] == "run-1"
    assert events[0]["attrs"] == {"message": "shown", "item": "a"}


def test_debug_level(tmp_path):
    reporter = create_run_reporter("covergen", run_id="dbg", output_dir=tmp_path, enable_console=False, level="debug")
    reporter.debug("visible")
    assert read_events(reporter)[0]["kind"] == "debug"


def test_parse_level():
    assert parse_level("WARN") == parse_level("warning")
    with pytest.raises(ValueError):
        parse_level("verbose")


def test_phase_events(reporter):
    with reporter.phase("render", total=2) as phase:
        phase.tick()
        phase.tick()
    kinds = [(e["kind"], e["phase"]) for e in read_events(reporter)]
    assert kinds[0] == ("start", "render")
    assert kinds[-1] == ("end", "render")
    end = read_events(reporter)[-1]
    assert end["counters"] == {"current": 2, "total": 2}
    assert reporter.status == "ok"


def test_failed_phase(reporter):
    with pytest.raises(RuntimeError):
        with reporter.phase("render"):
            raise RuntimeError("boom")
    assert reporter.status == "fail"


def test_warning_then_error(reporter, capsys):
    reporter.warning("careful")
    assert reporter.status == "warn"
    reporter.error("item", "it broke", file="post.txt", line=3)
    assert reporter.status == "fail"
    assert "COVERGEN_ERROR post.txt:3 item it broke" in capsys.readouterr().err
    error = read_events(reporter)[-1]
    assert error["kind"] == "error"
    assert error["attrs"]["code"] == "item"


def test_error_location_from_exception(reporter, capsys):
    try:
        raise ValueError("bad")
    except ValueError as e:
        reporter.error("item", "bad", exc=e)
    err = capsys.readouterr().err
    assert "test_reporter.py:" in err


def test_summary_and_finalize(reporter):
    reporter.summary(total=3, successful=2, failed=1, images=4)
    reporter.finalize({"images": 4})
    events = read_events(reporter)
    assert events[-2]["counters"] == {"total": 3, "successful": 2, "failed": 1, "images": 4}
    final = events[-1]
    assert final["phase"] == "summary"
    assert final["attrs"]["status"] == "ok"
    assert final["attrs"]["images"] == 4


def test_default_dir_is_under_working_directory(monkeypatch, tmp_path):
    monkeypatch.delenv("COVERGEN_OBS_DIR", raising=False)
    monkeypatch.chdir(tmp_path)
    reporter = create_run_reporter("covergen", run_id="cwd", enable_console=False)
    reporter.info("hello")
    expected = tmp_path / "artifacts" / "observability" / "covergen" / "cwd.jsonl"
    assert reporter.output_paths[0].resolve() == expected.resolve()
    assert expected.exists()
