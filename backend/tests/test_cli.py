"""
Tests for the dubqueue CLI dispatcher.

Commands run against a temporary DUBQUEUE_HOME; ffprobe and ffmpeg point at
paths that do not exist, so probing degrades and nothing is rendered.
"""

import json

import pytest

from dubqueue import cli
from dubqueue.presets import Preset, PresetStore
from dubqueue.storage import RunLock


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("DUBQUEUE_HOME", str(tmp_path))
    monkeypatch.setenv("DUBQUEUE_FFMPEG", str(tmp_path / "bin" / "ffmpeg"))
    monkeypatch.setenv("DUBQUEUE_FFPROBE", str(tmp_path / "bin" / "ffprobe"))
    monkeypatch.setattr(cli, "configure_logging", lambda config: None)
    PresetStore(tmp_path / "presets").save(Preset(name="Default"))
    return tmp_path


def test_presets_list(home, capsys):
    assert cli.main(["presets"]) == cli.EXIT_OK
    assert capsys.readouterr().out.strip() == "Default"


def test_presets_show(home, capsys):
    assert cli.main(["presets", "--show", "Default"]) == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out)["name"] == "Default"


def test_presets_show_missing(home, capsys):
    assert cli.main(["presets", "--show", "Nope"]) == cli.EXIT_VALIDATION
    assert "Nope" in capsys.readouterr().err


def test_queue_add_list_remove(home, capsys):
    video = home / "episode.mov"
    video.write_text("fake")

    assert cli.main(["queue", "add", "--preset", "Default", "--video", str(video),
                     "--output", str(home / "out" / "episode.mp4")]) == cli.EXIT_OK
    queued = capsys.readouterr().out
    assert "episode.mp4" in queued
    job_id = queued.strip().rsplit("[", 1)[-1].rstrip("]")

    assert cli.main(["queue", "list"]) == cli.EXIT_OK
    assert "Pending" in capsys.readouterr().out

    assert cli.main(["queue", "add", "--preset", "Default", "--video", str(video),
                     "--output", str(home / "out" / "episode.mp4")]) == cli.EXIT_VALIDATION
    assert "already queued" in capsys.readouterr().err

    assert cli.main(["queue", "remove", job_id]) == cli.EXIT_OK
    assert cli.main(["queue", "list"]) == cli.EXIT_OK
    assert "Queue is empty" in capsys.readouterr().out


def test_plan_prints_command(home, capsys):
    video = home / "episode.mov"
    video.write_text("fake")
    cli.main(["queue", "add", "--preset", "Default", "--video", str(video), "--anchor", "TopLeft"])
    job_id = capsys.readouterr().out.strip().rsplit("[", 1)[-1].rstrip("]")

    assert cli.main(["plan", job_id]) == cli.EXIT_OK
    captured = capsys.readouterr()
    command = json.loads(captured.out)
    assert command[0].endswith("ffmpeg")
    assert "ProbeFailure" in captured.err


def test_run_without_encoder_fails_every_job(home, capsys):
    video = home / "episode.mov"
    video.write_text("fake")
    cli.main(["queue", "add", "--preset", "Default", "--video", str(video)])

    assert cli.main(["queue", "run", "--interval", "0.05"]) == cli.EXIT_EXECUTION
    assert "1 failed" in capsys.readouterr().out


def test_run_empty_queue(home):
    assert cli.main(["queue", "run", "--interval", "0.05"]) == cli.EXIT_OK


def test_clear(home, capsys):
    assert cli.main(["queue", "clear"]) == cli.EXIT_OK
    assert "0 jobs removed" in capsys.readouterr().out


def test_queue_locked_by_another_run(home, capsys):
    run_lock = RunLock(home / "queue" / "queue.json.lock")
    assert run_lock.acquire()
    try:
        assert cli.main(["queue", "list"]) == cli.EXIT_OK
        assert cli.main(["queue", "clear"]) == cli.EXIT_VALIDATION
        assert "while the queue is processing" in capsys.readouterr().err
        assert cli.main(["queue", "run", "--interval", "0.05"]) == cli.EXIT_VALIDATION
    finally:
        run_lock.release()

    assert cli.main(["queue", "clear"]) == cli.EXIT_OK
