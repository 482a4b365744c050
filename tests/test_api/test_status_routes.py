"""
Tests for the pre-production status routes.
"""

import json

PROGRESS = {
    "currentStep": 2,
    "currentStepName": "Storyboards",
    "currentStepProgress": 50,
    "overallProgress": 31,
    "currentDetail": "Scene 3",
    "isComplete": False,
}


def test_update_then_poll(client):
    response = client.post("/api/preproduction-status",
                           json={"action": "update", "runId": "r1", "progress": PROGRESS})

    assert response.status_code == 200
    snapshot = client.get("/api/preproduction-status/r1").json()
    assert snapshot["progress"]["currentStepName"] == "Storyboards"
    assert snapshot["isComplete"] is False


def test_run_id_defaults(client):
    client.post("/api/preproduction-status", json={"action": "update", "progress": PROGRESS})

    assert client.get("/api/preproduction-status/default").status_code == 200


def test_update_without_progress_rejected(client):
    response = client.post("/api/preproduction-status", json={"action": "update", "runId": "r1"})

    assert response.status_code == 400
    assert response.json()["type"] == "validation"


def test_unknown_action_rejected(client):
    response = client.post("/api/preproduction-status", json={"action": "pause"})

    assert response.status_code == 400


def test_unknown_run_is_404(client):
    assert client.get("/api/preproduction-status/nope").status_code == 404
    assert client.get("/api/preproduction-status/nope/stream").status_code == 404


def test_reset_clears_progress(client):
    client.post("/api/preproduction-status", json={"action": "update", "runId": "r2", "progress": PROGRESS})

    response = client.post("/api/preproduction-status", json={"action": "reset", "runId": "r2"})

    assert response.json()["progress"] is None
    assert response.json()["events"] == 0


def test_stream_replays_finished_run(client):
    client.post("/api/preproduction-status", json={"action": "update", "runId": "r3", "progress": PROGRESS})
    client.post("/api/preproduction-status", json={
        "action": "update", "runId": "r3", "progress": {**PROGRESS, "overallProgress": 100, "isComplete": True},
    })

    response = client.get("/api/preproduction-status/r3/stream")

    frames = [json.loads(f[6:]) for f in response.text.split("\n\n") if f.startswith("data: ")]
    assert [f["type"] for f in frames] == ["progress", "progress", "complete"]
    assert frames[-1]["progress"]["isComplete"] is True
