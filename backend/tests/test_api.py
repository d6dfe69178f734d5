"""
Tests for the HTTP control API.

The app is built around a queue whose executor uses a fake probe and a
fake process factory, so no ffmpeg or ffprobe is needed.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakePopen
from dubqueue.compiler import FilterGraphBuilder
from dubqueue.config import AppConfig
from dubqueue.execution import RenderExecutor
from dubqueue.jobs import QueueStore, RenderQueue
from dubqueue.main import create_app


@pytest.fixture
def render_queue(tmp_path, preset_store, fake_probe):
    fake_probe.add(str(tmp_path / "main.mov"), duration=20)
    executor = RenderExecutor(
        ffmpeg_path="ffmpeg",
        builder=FilterGraphBuilder(probe=fake_probe),
        popen=FakePopen(),
    )
    return RenderQueue(
        QueueStore(tmp_path / "queue.json"),
        preset_store,
        executor=executor,
        shutdown_requester=lambda delay: True,
    )


@pytest.fixture
def client(tmp_path, render_queue):
    app = create_app(AppConfig(data_dir=tmp_path), render_queue=render_queue)
    return TestClient(app)


def enqueue(client, tmp_path, name="final.mp4", **extra):
    body = {
        "materials": [{"type": "Video", "path": str(tmp_path / "main.mov")}],
        "preset_name": "Default",
        "output_path": str(tmp_path / "out" / name),
    }
    body.update(extra)
    return client.post("/queue/jobs", json=body)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestPresetEndpoints:

    def test_save_list_get_delete(self, client):
        response = client.put("/presets/Web", json={"name": "ignored", "video": {"codec": "H264", "crf": 23}})
        assert response.status_code == 200
        assert response.json()["name"] == "Web"

        assert client.get("/presets").json()["names"] == ["Default", "Web"]
        assert client.get("/presets/Web").json()["video"]["crf"] == 23

        assert client.delete("/presets/Web").status_code == 200
        assert client.get("/presets/Web").status_code == 404

    def test_invalid_preset_body(self, client):
        response = client.put("/presets/Bad", json={"video": {"crf": 99}})
        assert response.status_code == 422

    def test_delete_missing_preset(self, client):
        assert client.delete("/presets/nope").status_code == 404


class TestQueueEndpoints:

    def test_enqueue_and_list(self, client, tmp_path):
        response = enqueue(client, tmp_path)

        assert response.status_code == 200
        job = response.json()
        assert job["status"] == "Pending"
        assert job["title"] == "main"
        assert job["sequence_id"] == 1

        listing = client.get("/queue").json()
        assert [j["id"] for j in listing["jobs"]] == [job["id"]]
        assert listing["is_busy"] is False

    def test_enqueue_orders_materials_by_index(self, client, tmp_path):
        response = client.post("/queue/jobs", json={
            "materials": [
                {"type": "Outro", "path": str(tmp_path / "outro.mp4"), "index": 3},
                {"type": "Video", "path": str(tmp_path / "main.mov"), "index": 2},
                {"type": "Intro", "path": str(tmp_path / "intro.mp4"), "index": 1},
            ],
            "preset_name": "Default",
            "output_path": str(tmp_path / "out" / "ordered.mp4"),
        })

        assert response.status_code == 200
        materials = response.json()["materials"]
        assert [m["type"] for m in materials] == ["Intro", "Video", "Outro"]
        assert [m["index"] for m in materials] == [1, 2, 3]

    def test_enqueue_without_video(self, client, tmp_path):
        response = client.post("/queue/jobs", json={
            "materials": [{"type": "Audio", "path": str(tmp_path / "dub.wav")}],
            "preset_name": "Default",
        })
        assert response.status_code == 400

    def test_enqueue_duplicate_output(self, client, tmp_path):
        enqueue(client, tmp_path)
        assert enqueue(client, tmp_path).status_code == 409

    def test_unknown_job(self, client):
        assert client.get("/queue/jobs/missing").status_code == 404
        assert client.delete("/queue/jobs/missing").status_code == 404

    def test_update_move_remove(self, client, tmp_path):
        first = enqueue(client, tmp_path, "a.mp4").json()
        second = enqueue(client, tmp_path, "b.mp4").json()

        updated = client.patch(f"/queue/jobs/{first['id']}", json={"title": "Renamed"}).json()
        assert updated["title"] == "Renamed"

        moved = client.post(f"/queue/jobs/{second['id']}/move", json={"position": 0}).json()
        assert [j["id"] for j in moved] == [second["id"], first["id"]]

        assert client.delete(f"/queue/jobs/{first['id']}").json()["success"] is True
        assert len(client.get("/queue").json()["jobs"]) == 1

    def test_plan_preview(self, client, tmp_path):
        job = enqueue(client, tmp_path).json()

        response = client.get(f"/queue/jobs/{job['id']}/plan")

        assert response.status_code == 200
        plan = response.json()
        assert plan["total_duration"] == 20
        assert plan["command"][0] == "ffmpeg"
        assert plan["command"][-1] == job["output_path"]
        assert "scale=w=1920:h=1080" in plan["filter_graph"]

    def test_plan_with_deleted_preset(self, client, tmp_path):
        job = enqueue(client, tmp_path).json()
        client.delete("/presets/Default")
        assert client.get(f"/queue/jobs/{job['id']}/plan").status_code == 404

    def test_run_to_completion(self, client, render_queue, tmp_path):
        enqueue(client, tmp_path)

        assert client.post("/queue/start").json()["success"] is True
        assert render_queue.wait(timeout=5)

        jobs = client.get("/queue").json()["jobs"]
        assert [j["status"] for j in jobs] == ["Completed"]
        progress = client.get("/queue/progress").json()
        assert progress["fraction"] == 1.0
        assert progress["is_running"] is False

    def test_reset_requires_finished_job(self, client, tmp_path):
        job = enqueue(client, tmp_path).json()
        assert client.post(f"/queue/jobs/{job['id']}/reset").status_code == 409

    def test_cancel_when_idle(self, client):
        assert client.post("/queue/cancel").json()["success"] is False

    def test_shutdown_option_and_clear(self, client, tmp_path):
        enqueue(client, tmp_path)
        assert client.post("/queue/shutdown", json={"enabled": True}).status_code == 200
        listing = client.get("/queue").json()
        assert listing["shutdown_when_completed"] is True
        assert listing["jobs"][0]["shutdown_when_completed"] is True

        assert client.post("/queue/clear").json()["success"] is True
        assert client.get("/queue").json()["jobs"] == []
