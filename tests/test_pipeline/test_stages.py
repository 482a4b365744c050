"""
Tests for the stage service.
"""

import pytest

from greenlit.core.constants import Input, Stage
from greenlit.core.exceptions import MissingPrerequisiteError
from greenlit.models.requests import StageRequest
from greenlit.pipeline.context import StageContext
from greenlit.pipeline.progress import ProgressChannel
from greenlit.pipeline.stages import error_body, error_event


class TestErrorBodies:
    def test_unexpected_error_is_generic(self):
        body = error_body(RuntimeError("socket closed"))
        assert body == {"error": "Generation failed", "details": "socket closed", "type": "internal"}

    def test_event_keeps_type_error(self):
        event = error_event(MissingPrerequisiteError("props", "breakdownData", "hint"), runId="r1")

        assert event["type"] == "error"
        assert event["errorType"] == "missing_prerequisite"
        assert event["missing"] == "breakdownData"
        assert event["runId"] == "r1"


class TestStageService:
    """Tests for StageService."""

    @pytest.mark.asyncio
    async def test_missing_prerequisite_makes_no_provider_call(self, services, text_client):
        with pytest.raises(MissingPrerequisiteError):
            await services.stages.run(Stage.PROPS, StageRequest())

        assert text_client.call_count == 0

    @pytest.mark.asyncio
    async def test_run_returns_artifact_and_context(self, services, text_client, artifacts):
        text_client.queue(artifacts["props"])

        artifact, ctx = await services.stages.run(
            Stage.PROPS, StageRequest(breakdownData=artifacts["scriptBreakdown"], episodeNumber=2)
        )

        assert artifact == artifacts["props"]
        assert ctx.scope == "episode"
        assert ctx.episode_numbers == [2]

    @pytest.mark.asyncio
    async def test_locations_images_attached_when_requested(self, services, text_client, image_client, artifacts):
        text_client.queue({"locations": [{"name": "Lighthouse"}, {"name": "Harbor"}]})

        artifact, _ = await services.stages.run(Stage.LOCATIONS, StageRequest(
            breakdownData=artifacts["scriptBreakdown"], includeImages=True,
        ))

        assert [len(loc["images"]) for loc in artifact["locations"]] == [1, 1]
        assert sorted(image_client.queries) == ["Harbor location", "Lighthouse location"]

    @pytest.mark.asyncio
    async def test_locations_without_images(self, services, text_client, image_client, artifacts):
        text_client.queue(artifacts["locations"])

        artifact, _ = await services.stages.run(
            Stage.LOCATIONS, StageRequest(breakdownData=artifacts["scriptBreakdown"])
        )

        assert "images" not in artifact["locations"][0]
        assert image_client.queries == []


class TestStoryboardStream:
    """Tests for scene-by-scene storyboard generation."""

    @pytest.fixture
    def ctx(self, artifacts):
        breakdown = {"scenes": [{"sceneNumber": 1, "heading": "A"}, {"sceneNumber": 2, "heading": "B"}]}
        return StageContext(scope="episode", artifacts={
            Stage.SCRIPTS: artifacts["scripts"],
            Stage.SCRIPT_BREAKDOWN: breakdown,
        })

    @pytest.mark.asyncio
    async def test_each_scene_published_then_complete(self, services, text_client, ctx):
        text_client.queue({"shots": [{"shotNumber": 1}]}, {"shots": [{"shotNumber": 1}, {"shotNumber": 2}]})
        channel = ProgressChannel("boards")

        result = await services.stages.stream_storyboards(ctx, channel)

        scene_events = [e for e in channel.events if "scene" in e]
        assert [e["scene"]["sceneNumber"] for e in scene_events] == [1, 2]
        assert channel.events[-1]["type"] == "complete"
        assert channel.events[-1]["storyboards"]["totalScenes"] == 2
        assert result["totalScenes"] == 2
        assert channel.closed

    @pytest.mark.asyncio
    async def test_failure_keeps_completed_scenes(self, services, text_client, ctx):
        text_client.queue({"shots": []}, "not json at all")
        channel = ProgressChannel("boards")

        await services.stages.stream_storyboards(ctx, channel)

        last = channel.events[-1]
        assert last["type"] == "error"
        assert last["errorType"] == "parse"
        assert len(last["partialStoryboards"]["scenes"]) == 1

    @pytest.mark.asyncio
    async def test_gate_failure_reported_as_event(self, services, text_client):
        channel = ProgressChannel("boards")

        await services.stages.stream_storyboards(
            StageContext(scope="episode", artifacts={Input.STORY_BIBLE: {"seriesTitle": "x"}}), channel
        )

        assert channel.events[-1]["errorType"] == "missing_prerequisite"
        assert text_client.call_count == 0
