"""
Tests for the generation routes.
"""

import json
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from greenlit.api.deps import AppServices
from greenlit.api.main import create_app
from greenlit.core.constants import STAGE_ORDER, STAGE_SPECS
from greenlit.llm.api_clients import APIError


def parse_sse(body: str) -> List[Dict[str, Any]]:
    """Decode `data: {...}` frames."""
    return [
        json.loads(frame[len("data: "):])
        for frame in body.split("\n\n")
        if frame.startswith("data: ")
    ]


def arc_body(story_bible, **extra):
    return {
        "storyBibleData": story_bible,
        "arcEpisodes": [{"episodeNumber": 1, "title": "First"}, {"episodeNumber": 2, "title": "Second"}],
        **extra,
    }


class TestStageRoutes:
    """Tests for the eight stage endpoints."""

    @pytest.mark.parametrize("route", [spec.route for spec in STAGE_SPECS.values()])
    def test_missing_upstream_is_400_without_provider_call(self, client, text_client, route):
        response = client.post(f"/api/generate/{route}", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "missing_prerequisite"
        assert body["error"].startswith("Cannot generate")
        assert body["details"]
        assert text_client.call_count == 0

    def test_breakdown_generated_from_script(self, client, text_client, artifacts):
        text_client.queue(artifacts["scriptBreakdown"])

        response = client.post("/api/generate/script-breakdown", json={
            "scriptData": artifacts["scripts"], "episodeNumber": 1,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["scriptBreakdown"] == artifacts["scriptBreakdown"]
        assert body["scope"] == "episode"
        assert body["episodeNumbers"] == [1]

    def test_arc_scope_aggregates_episode_data(self, client, text_client, artifacts):
        text_client.queue(artifacts["props"])

        response = client.post("/api/generate/props", json={
            "episodeNumbers": [1, 2],
            "episodePreProdData": {
                "1": {"scriptBreakdown": {"scenes": [{"heading": "A"}]}},
                "2": {"scriptBreakdown": {"scenes": [{"heading": "B"}]}},
            },
        })

        assert response.status_code == 200
        assert response.json()["scope"] == "arc"
        assert '"episodeNumber": 2' in text_client.calls[0]["prompt"]

    def test_malformed_episode_keys_rejected(self, client, text_client):
        response = client.post("/api/generate/script-breakdown", json={
            "episodeNumbers": [1, 2],
            "episodePreProdData": {"episode_1": {"scripts": {"scenes": []}}},
        })

        assert response.status_code == 400
        assert response.json()["type"] == "validation"
        assert text_client.call_count == 0

    def test_arc_missing_upstream_names_episodes(self, client):
        response = client.post("/api/generate/locations", json={"episodeNumbers": [4, 5]})

        assert response.status_code == 400
        assert "episodes 4, 5" in response.json()["details"]

    def test_unparseable_reply_is_500_parse(self, client, text_client, artifacts):
        text_client.queue("Sorry, I can't help with that.")

        response = client.post("/api/generate/locations", json={"breakdownData": artifacts["scriptBreakdown"]})

        assert response.status_code == 500
        assert response.json()["type"] == "parse"

    def test_upstream_failure_is_500(self, client, text_client, artifacts):
        text_client.queue(APIError("HTTP 503: unavailable", 503))

        response = client.post("/api/generate/locations", json={"breakdownData": artifacts["scriptBreakdown"]})

        assert response.status_code == 500
        assert response.json()["type"] == "upstream"

    def test_missing_provider_key_is_configuration_error(self, settings, store, artifacts):
        services = AppServices.build(settings.model_copy(update={"gemini_api_key": ""}), store=store)

        with TestClient(create_app(settings, services)) as client:
            response = client.post("/api/generate/props", json={"breakdownData": artifacts["scriptBreakdown"]})

        assert response.status_code == 500
        assert response.json()["type"] == "configuration"
        assert "GEMINI_API_KEY" in response.json()["error"]


class TestStoryBibleRoute:
    def test_generates_story_bible(self, client, text_client, sample_story_bible):
        text_client.queue(sample_story_bible)

        response = client.post("/api/generate/story-bible", json={"premise": "A lighthouse family"})

        assert response.status_code == 200
        assert response.json()["storyBible"]["seriesTitle"] == "Harbor Lights"

    def test_missing_premise_is_validation_error(self, client, text_client):
        response = client.post("/api/generate/story-bible", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "validation"
        assert "premise" in body["details"]
        assert text_client.call_count == 0


class TestArcRoutes:
    """Tests for the arc pre-production endpoints."""

    def test_json_run_succeeds(self, client, text_client, sample_story_bible, artifacts):
        text_client.queue(*(artifacts[stage.value] for stage in STAGE_ORDER))

        response = client.post("/api/generate/arc-preproduction",
                               json=arc_body(sample_story_bible, runId="arc-run"))

        assert response.status_code == 200
        body = response.json()
        assert body["runId"] == "arc-run"
        assert set(body["preProduction"]) == {stage.value for stage in STAGE_ORDER}
        assert set(body["stageStates"].values()) == {"complete"}

        status = client.get("/api/preproduction-status/arc-run").json()
        assert status["isComplete"] is True
        assert status["progress"]["overallProgress"] == 100

    def test_json_run_failure_returns_partial(self, client, text_client, sample_story_bible, artifacts):
        text_client.queue(artifacts["scripts"], "no json")

        response = client.post("/api/generate/arc-preproduction", json=arc_body(sample_story_bible))

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["failedStage"] == "scriptBreakdown"
        assert body["partialPreProduction"] == {"scripts": artifacts["scripts"]}

    def test_empty_arc_rejected(self, client, sample_story_bible):
        response = client.post("/api/generate/arc-preproduction",
                               json={"storyBibleData": sample_story_bible, "arcEpisodes": []})

        assert response.status_code == 400
        assert response.json()["type"] == "validation"

    def test_stream_emits_progress_then_complete(self, client, text_client, sample_story_bible, artifacts):
        text_client.queue(*(artifacts[stage.value] for stage in STAGE_ORDER))

        response = client.post("/api/generate/arc-preproduction/stream", json=arc_body(sample_story_bible))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        events = parse_sse(response.text)
        assert events[0]["type"] == "progress"
        assert events[-1]["type"] == "complete"
        assert all(e["type"] == "progress" for e in events[:-1])

    def test_stream_failure_ends_with_error(self, client, text_client, sample_story_bible, artifacts):
        text_client.queue(artifacts["scripts"], APIError("HTTP 500: boom", 500))

        events = parse_sse(client.post("/api/generate/arc-preproduction/stream",
                                       json=arc_body(sample_story_bible)).text)

        assert events[-1]["type"] == "error"
        assert events[-1]["errorType"] == "upstream"
        assert events[-1]["failedStage"] == "scriptBreakdown"

    def test_reused_run_id_reports_new_outcome(self, client, text_client, sample_story_bible, artifacts):
        text_client.queue(*(artifacts[stage.value] for stage in STAGE_ORDER))
        first = client.post("/api/generate/arc-preproduction", json=arc_body(sample_story_bible, runId="same"))
        assert first.status_code == 200

        text_client.queue(artifacts["scripts"], APIError("HTTP 500: boom", 500))
        events = parse_sse(client.post("/api/generate/arc-preproduction/stream",
                                       json=arc_body(sample_story_bible, runId="same")).text)

        assert events[0]["type"] == "progress"
        assert events[0]["progress"]["overallProgress"] == 0
        assert [e["type"] for e in events].count("complete") == 0
        assert events[-1]["type"] == "error"
        assert events[-1]["runId"] == "same"

        status = client.get("/api/preproduction-status/same").json()
        assert status["isComplete"] is True
        assert status["progress"]["overallProgress"] < 100

    def test_active_run_id_rejected(self, client, services, text_client, sample_story_bible):
        services.hub.channel("busy")

        response = client.post("/api/generate/arc-preproduction/stream",
                               json=arc_body(sample_story_bible, runId="busy"))

        assert response.status_code == 400
        assert response.json()["type"] == "validation"
        assert text_client.call_count == 0


class TestStoryboardStreamRoute:
    def test_scenes_streamed(self, client, text_client, artifacts):
        text_client.queue({"shots": [{"shotNumber": 1}]})

        response = client.post("/api/generate/storyboards/stream", json={
            "scriptData": artifacts["scripts"],
            "breakdownData": artifacts["scriptBreakdown"],
        })

        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["progress", "progress", "complete"]
        assert events[1]["scene"]["sceneNumber"] == 1
        assert events[-1]["storyboards"]["totalScenes"] == 1

    def test_missing_breakdown_rejected_before_streaming(self, client, artifacts):
        response = client.post("/api/generate/storyboards/stream", json={"scriptData": artifacts["scripts"]})

        assert response.status_code == 400
        assert response.json()["missing"] == "breakdownData"
