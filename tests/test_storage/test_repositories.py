"""
Tests for the document store and repositories.
"""

from unittest.mock import MagicMock

import pytest

from greenlit.core.config import Settings
from greenlit.core.constants import Stage
from greenlit.core.exceptions import (
    MissingConfigError,
    MissingPrerequisiteError,
    NotFoundError,
    ValidationFailure,
)
from greenlit.storage.document_store import (
    InMemoryDocumentStore,
    SupabaseDocumentStore,
    collection_path,
    create_document_store,
)
from greenlit.storage.repositories import PreProductionRepository, StoryBibleRepository


class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    def test_reads_are_copies(self, store):
        store.set("things", "a", {"items": [1]})
        store.get("things", "a")["items"].append(2)

        assert store.get("things", "a") == {"items": [1]}

    def test_list_filters_on_fields(self, store):
        store.set("logs", "1", {"linkId": "x", "action": "viewed"})
        store.set("logs", "2", {"linkId": "y", "action": "viewed"})

        assert [d["linkId"] for d in store.list("logs", where={"linkId": "x"})] == ["x"]
        assert len(store.list("logs")) == 2
        assert store.list("missing") == []

    def test_update_requires_existing(self, store):
        with pytest.raises(NotFoundError):
            store.update("things", "nope", {"a": 1})

    def test_add_generates_id(self, store):
        doc_id = store.add("things", {"a": 1})
        assert store.get("things", doc_id) == {"a": 1}

    def test_collection_path(self):
        assert collection_path("users", "u1/", "/storyBibles") == "users/u1/storyBibles"

    def test_supabase_backend_needs_credentials(self):
        with pytest.raises(MissingConfigError):
            create_document_store(Settings(_env_file=None, storage_backend="supabase", supabase_url=""))

    def test_supabase_store_addresses_documents_table(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = [{"data": {"seriesTitle": "T"}}]
        store = SupabaseDocumentStore(client)

        assert store.get("users/u1/storyBibles", "sb1") == {"seriesTitle": "T"}
        store.set("users/u1/storyBibles", "sb1", {"seriesTitle": "T"})

        client.table.assert_called_with("documents")
        client.table.return_value.upsert.assert_called_once_with(
            {"collection": "users/u1/storyBibles", "id": "sb1", "data": {"seriesTitle": "T"}}
        )

    def test_memory_backend_default(self):
        assert isinstance(create_document_store(Settings(_env_file=None)), InMemoryDocumentStore)


class TestStoryBibleRepository:
    """Tests for StoryBibleRepository."""

    def test_save_increments_version(self, store, sample_story_bible):
        repo = StoryBibleRepository(store)

        first = repo.save("u1", "sb1", sample_story_bible)
        second = repo.save("u1", "sb1", {**sample_story_bible, "genre": "Thriller"})

        assert first["version"] == 1
        assert second["version"] == 2
        assert repo.get("u1", "sb1")["genre"] == "Thriller"

    def test_invalid_story_bible_rejected(self, store):
        with pytest.raises(ValidationFailure):
            StoryBibleRepository(store).save("u1", "sb1", {"seriesTitle": ""})

    def test_missing_story_bible(self, store):
        repo = StoryBibleRepository(store)

        assert repo.find("u1", "nope") is None
        with pytest.raises(NotFoundError):
            repo.get("u1", "nope")


class TestPreProductionRepository:
    """Tests for PreProductionRepository."""

    @pytest.mark.parametrize("doc_id,doc_type", [("episode_1", "episode"), ("arc_0", "arc")])
    def test_get_or_create_empty(self, store, doc_id, doc_type):
        doc = PreProductionRepository(store).get_or_create("u1", "sb1", doc_id)

        assert doc["type"] == doc_type
        assert doc["scripts"] is None
        assert doc["postProduction"] is None

    @pytest.mark.parametrize("doc_id", ["episode-1", "arc_", "scene_3", "episode_1_extra"])
    def test_invalid_document_id(self, store, doc_id):
        with pytest.raises(ValidationFailure):
            PreProductionRepository(store).get_or_create("u1", "sb1", doc_id)

    def test_save_stage_in_order(self, store, artifacts):
        repo = PreProductionRepository(store)

        repo.save_stage("u1", "sb1", "episode_1", Stage.SCRIPTS, artifacts["scripts"])
        doc = repo.save_stage("u1", "sb1", "episode_1", Stage.SCRIPT_BREAKDOWN, artifacts["scriptBreakdown"])

        assert doc["scriptBreakdown"] == artifacts["scriptBreakdown"]
        assert repo.get("u1", "sb1", "episode_1")["scripts"] == artifacts["scripts"]

    def test_save_stage_without_prerequisite(self, store, artifacts):
        repo = PreProductionRepository(store)

        with pytest.raises(MissingPrerequisiteError):
            repo.save_stage("u1", "sb1", "episode_1", Stage.STORYBOARDS, artifacts["storyboards"])

        assert repo.get("u1", "sb1", "episode_1")["storyboards"] is None

    def test_load_episodes_skips_missing(self, store, artifacts):
        repo = PreProductionRepository(store)
        repo.save_stage("u1", "sb1", "episode_3", Stage.SCRIPTS, artifacts["scripts"])

        docs = repo.load_episodes("u1", "sb1", [1, 2, 3])

        assert list(docs) == [3]
