"""
Greenlit Repositories

Typed access to the story bible and pre-production collections.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from greenlit.core.constants import STAGE_ORDER, Stage, episode_document_id
from greenlit.core.exceptions import NotFoundError, ValidationFailure
from greenlit.core.logging_config import get_logger
from greenlit.models.story_bible import StoryBible
from greenlit.pipeline.state_machine import validate_transition
from greenlit.storage.document_store import Document, DocumentStore, collection_path

logger = get_logger("storage.repositories")

DOCUMENT_ID_PATTERN = re.compile(r"^(episode|arc)_(\d+)$")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoryBibleRepository:
    """Story bibles under ``users/{uid}/storyBibles``."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def collection(user_id: str) -> str:
        return collection_path("users", user_id, "storyBibles")

    def find(self, user_id: str, story_bible_id: str) -> Optional[Document]:
        return self.store.get(self.collection(user_id), story_bible_id)

    def get(self, user_id: str, story_bible_id: str) -> Document:
        doc = self.find(user_id, story_bible_id)
        if doc is None:
            raise NotFoundError(f"Story bible '{story_bible_id}' not found")
        return doc

    def save(self, user_id: str, story_bible_id: str, data: Dict[str, Any]) -> Document:
        """Validate and store a story bible, incrementing its version."""
        try:
            StoryBible.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure("Invalid story bible", str(e))

        collection = self.collection(user_id)
        existing = self.store.get(collection, story_bible_id)
        version = (existing or {}).get("version", 0) + 1
        doc = {**data, "id": story_bible_id, "version": version, "updatedAt": _now()}
        self.store.set(collection, story_bible_id, doc)
        logger.info(f"Saved story bible {story_bible_id} for {user_id} (v{version})")
        return doc


class PreProductionRepository:
    """Pre-production documents under ``users/{uid}/storyBibles/{sbid}/preproduction``."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def collection(user_id: str, story_bible_id: str) -> str:
        return collection_path("users", user_id, "storyBibles", story_bible_id, "preproduction")

    @staticmethod
    def check_document_id(doc_id: str) -> str:
        """Return the document type ("episode" or "arc") or raise."""
        match = DOCUMENT_ID_PATTERN.match(doc_id)
        if not match:
            raise ValidationFailure(
                f"Invalid pre-production document id: '{doc_id}'",
                "Use episode_{number} or arc_{index}",
            )
        return match.group(1)

    @staticmethod
    def empty_document(doc_id: str, doc_type: str) -> Document:
        now = _now()
        doc: Document = {"id": doc_id, "type": doc_type, "createdAt": now, "updatedAt": now}
        for stage in STAGE_ORDER:
            doc[stage.value] = None
        return doc

    def get(self, user_id: str, story_bible_id: str, doc_id: str) -> Optional[Document]:
        self.check_document_id(doc_id)
        return self.store.get(self.collection(user_id, story_bible_id), doc_id)

    def get_or_create(self, user_id: str, story_bible_id: str, doc_id: str) -> Document:
        doc_type = self.check_document_id(doc_id)
        collection = self.collection(user_id, story_bible_id)
        doc = self.store.get(collection, doc_id)
        if doc is None:
            doc = self.empty_document(doc_id, doc_type)
            self.store.set(collection, doc_id, doc)
            logger.info(f"Created empty pre-production document {collection}/{doc_id}")
        return doc

    def save_stage(self, user_id: str, story_bible_id: str, doc_id: str,
                   stage: Stage, artifact: Dict[str, Any]) -> Document:
        """Store one stage artifact after checking its prerequisites are present."""
        doc = self.get_or_create(user_id, story_bible_id, doc_id)
        validate_transition(doc, stage)
        doc[stage.value] = artifact
        doc["updatedAt"] = _now()
        self.store.set(self.collection(user_id, story_bible_id), doc_id, doc)
        logger.info(f"Saved {stage.value} to {doc_id}")
        return doc

    def load_episodes(self, user_id: str, story_bible_id: str,
                      episode_numbers: Iterable[int]) -> Dict[int, Document]:
        """Load the stored episode documents that exist, keyed by episode number."""
        collection = self.collection(user_id, story_bible_id)
        found = {}
        for number in episode_numbers:
            doc = self.store.get(collection, episode_document_id(number))
            if doc is not None:
                found[number] = doc
        return found
