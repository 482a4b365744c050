"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from greenlit.api.deps import AppServices
from greenlit.api.main import create_app
from greenlit.core.config import Settings
from greenlit.core.retry import FORBIDDEN_RETRY_CONFIG
from greenlit.llm.api_clients import ImageResult, TextResponse
from greenlit.storage.document_store import InMemoryDocumentStore


class FakeTextClient:
    """Scripted text provider. Each call consumes the next queued response."""

    PROVIDER = "FakeModel"

    def __init__(self):
        self.responses: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> "FakeTextClient":
        """Queue responses: strings are returned as-is, dicts as JSON, exceptions are raised."""
        self.responses.extend(responses)
        return self

    async def generate_text(self, prompt: str, system_prompt: str = "",
                            temperature: float = 0.7, max_tokens: int = 8192) -> TextResponse:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt})
        if not self.responses:
            raise AssertionError("Unexpected provider call")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        text = item if isinstance(item, str) else json.dumps(item)
        return TextResponse(text=text, model="fake-model")

    @property
    def call_count(self) -> int:
        return len(self.calls)


class FakeImageClient:
    PROVIDER = "FakeImages"

    def __init__(self):
        self.queries: List[str] = []

    async def search_photos(self, query: str, per_page: int = 1, orientation: str = "landscape"):
        self.queries.append(query)
        return [ImageResult(url=f"https://images.test/{len(self.queries)}.jpg",
                            thumb_url=f"https://images.test/{len(self.queries)}_t.jpg",
                            description=query)]


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# SAMPLE DATA
# =============================================================================

@pytest.fixture
def sample_story_bible() -> Dict[str, Any]:
    """Minimal valid story bible."""
    return {
        "seriesTitle": "Harbor Lights",
        "genre": "Drama",
        "premise": "A lighthouse keeper's family holds a coastal town together.",
        "themes": ["family", "duty"],
        "mainCharacters": [
            {"name": "Mara", "description": "The keeper", "archetype": "Guardian"},
            {"name": "Tobias", "description": "Her brother", "archetype": "Trickster"},
        ],
        "narrativeArcs": [{"title": "The Storm", "summary": "A storm season", "episodes": [1, 3]}],
        "worldBuilding": {"setting": "Coastal town", "rules": [], "locations": ["Lighthouse"]},
    }


@pytest.fixture
def sample_episode() -> Dict[str, Any]:
    return {
        "episodeNumber": 1,
        "title": "First Light",
        "synopsis": "Mara finds a wreck.",
        "scenes": [
            {"sceneNumber": 1, "heading": "EXT. LIGHTHOUSE - NIGHT", "content": "Waves crash."},
            {"sceneNumber": 2, "heading": "INT. KITCHEN - DAY", "content": "Breakfast argument."},
        ],
    }


def stage_artifacts() -> Dict[str, Dict[str, Any]]:
    """One valid artifact per stage, in pipeline order."""
    return {
        "scripts": {"title": "First Light", "fullScript": "INT. KITCHEN - DAY\nMARA: Morning."},
        "scriptBreakdown": {"scenes": [{"sceneNumber": 1, "heading": "INT. KITCHEN - DAY",
                                        "characters": ["Mara"]}]},
        "storyboards": {"scenes": [{"sceneNumber": 1, "shots": [{"shotNumber": 1, "shotType": "WIDE"}]}]},
        "props": {"props": [{"name": "Lantern"}], "wardrobe": [{"character": "Mara", "description": "Oilskin"}]},
        "locations": {"locations": [{"name": "Lighthouse", "description": "Tall"}]},
        "casting": {"cast": [{"characterName": "Mara", "description": "Lead"}]},
        "marketing": {"taglines": ["Hold the light"], "targetAudience": {"primary": "Adults"}},
        "postProduction": {"scenes": [{"sceneNumber": 1, "editing": "Slow"}]},
    }


@pytest.fixture
def artifacts() -> Dict[str, Dict[str, Any]]:
    return stage_artifacts()


# =============================================================================
# SERVICES AND APP
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        rate_limit_enabled=False,
        status_endpoint_url="",
        progress_max_runs=8,
        image_cache_size=4,
    )


@pytest.fixture
def text_client() -> FakeTextClient:
    return FakeTextClient()


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def services(settings, store, text_client, image_client, clock, sleep_recorder) -> AppServices:
    services = AppServices.build(
        settings,
        store=store,
        text_client_factory=lambda: text_client,
        image_client_factory=lambda: image_client,
        clock=clock,
    )
    services.invoker.retry_config = replace(FORBIDDEN_RETRY_CONFIG, sleep=sleep_recorder)
    return services


@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
