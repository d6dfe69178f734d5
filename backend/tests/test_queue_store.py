"""
Tests for queue persistence.
"""

import json

from dubqueue.jobs import JobStatus, QueueStore, RenderJob
from dubqueue.materials import LogoAnchor, LogoSettings, Material, MaterialType
from dubqueue.storage import RunLock


def test_missing_file_is_empty_queue(tmp_path):
    assert QueueStore(tmp_path / "queue.json").load() == []


def test_round_trip_preserves_jobs(tmp_path):
    store = QueueStore(tmp_path / "queue" / "queue.json")
    job = RenderJob(
        title="Episode 1",
        preset_name="Web",
        materials=[Material(type=MaterialType.VIDEO, path="/in/ep1.mov", duration="00:00:10.000", index=1)],
        logo=LogoSettings(anchor=LogoAnchor.TOP_LEFT, opacity=0.5),
        output_path="/out/ep1.mp4",
        status=JobStatus.FAILED,
        failure_reason="Encoder exited with code 1",
    )

    store.save([job])
    (loaded,) = store.load()

    assert loaded == job
    assert store.count() == 1


def test_processing_jobs_come_back_cancelled(tmp_path):
    store = QueueStore(tmp_path / "queue.json")
    store.save([RenderJob(output_path="a.mp4", status=JobStatus.PROCESSING)])

    (loaded,) = store.load()

    assert loaded.status == JobStatus.CANCELLED


def test_document_layout(tmp_path):
    path = tmp_path / "queue.json"
    QueueStore(path).save([RenderJob(output_path="a.mp4")])

    document = json.loads(path.read_text())

    assert document["version"] == 1
    assert document["jobs"][0]["status"] == "Pending"
    assert not (tmp_path / "queue.json.tmp").exists()


def test_corrupt_document_is_empty_queue(tmp_path):
    path = tmp_path / "queue.json"
    path.write_text("{not json")
    assert QueueStore(path).load() == []


def test_invalid_job_is_empty_queue(tmp_path):
    path = tmp_path / "queue.json"
    path.write_text(json.dumps({"version": 1, "jobs": [{"status": "Exploded"}]}))
    assert QueueStore(path).load() == []


def test_load_recovers_in_memory_only(tmp_path):
    path = tmp_path / "queue.json"
    QueueStore(path).save([RenderJob(output_path="a.mp4", status=JobStatus.PROCESSING)])

    QueueStore(path).load()

    (stored,) = QueueStore(path).read()
    assert stored.status == JobStatus.PROCESSING


def test_run_lock_excludes_second_holder(tmp_path):
    first = RunLock(tmp_path / "queue.json.lock")
    second = RunLock(tmp_path / "queue.json.lock")
    assert not second.held_elsewhere()

    assert first.acquire()
    assert first.held
    assert second.held_elsewhere()
    assert not second.acquire()
    assert not first.held_elsewhere()

    first.release()
    assert not second.held_elsewhere()
    assert second.acquire()
    second.release()
