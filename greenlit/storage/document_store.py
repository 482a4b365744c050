"""
Greenlit Document Store

Hierarchical JSON document storage. Collections are slash-joined paths
(``users/{uid}/storyBibles/{sbid}/preproduction``), documents are plain
dicts addressed by id within a collection.

Backends:
- InMemoryDocumentStore: default, used by tests
- SupabaseDocumentStore: one ``documents`` table keyed by (collection, id)
"""

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from greenlit.core.config import Settings
from greenlit.core.exceptions import MissingConfigError, NotFoundError
from greenlit.core.logging_config import get_logger

logger = get_logger("storage.documents")

Document = Dict[str, Any]


def collection_path(*segments: str) -> str:
    """Join path segments into a collection name."""
    return "/".join(str(s).strip("/") for s in segments)


class DocumentStore(ABC):
    """Abstract document store."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a copy of the document, or None."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Document) -> Document:
        """Create or overwrite a document."""

    @abstractmethod
    def list(self, collection: str, where: Optional[Dict[str, Any]] = None) -> List[Document]:
        """List documents, optionally filtered by top-level field equality."""

    def update(self, collection: str, doc_id: str, changes: Document) -> Document:
        """Shallow-merge ``changes`` into an existing document."""
        current = self.get(collection, doc_id)
        if current is None:
            raise NotFoundError(f"Document '{doc_id}' not found in {collection}")
        current.update(changes)
        return self.set(collection, doc_id, current)

    def add(self, collection: str, data: Document) -> str:
        """Insert a document under a generated id and return the id."""
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Reads and writes copy, so callers never share state."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, data: Document) -> Document:
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        return copy.deepcopy(data)

    def list(self, collection: str, where: Optional[Dict[str, Any]] = None) -> List[Document]:
        docs = self._collections.get(collection, {}).values()
        where = where or {}
        return [
            copy.deepcopy(doc) for doc in docs
            if all(doc.get(field) == value for field, value in where.items())
        ]


class SupabaseDocumentStore(DocumentStore):
    """Store backed by a Supabase ``documents`` table (collection, id, data jsonb)."""

    TABLE = "documents"

    def __init__(self, client):
        self.client = client

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        response = self.client.table(self.TABLE) \
            .select("data") \
            .eq("collection", collection) \
            .eq("id", doc_id) \
            .limit(1) \
            .execute()
        rows = response.data or []
        return rows[0]["data"] if rows else None

    def set(self, collection: str, doc_id: str, data: Document) -> Document:
        self.client.table(self.TABLE).upsert({
            "collection": collection,
            "id": doc_id,
            "data": data,
        }).execute()
        return data

    def list(self, collection: str, where: Optional[Dict[str, Any]] = None) -> List[Document]:
        query = self.client.table(self.TABLE).select("data").eq("collection", collection)
        for field, value in (where or {}).items():
            query = query.eq(f"data->>{field}", str(value))
        response = query.execute()
        return [row["data"] for row in (response.data or [])]


def create_document_store(settings: Settings) -> DocumentStore:
    """Build the configured store."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise MissingConfigError("SUPABASE_URL/SUPABASE_KEY", "Supabase document storage")
        from supabase import create_client

        logger.info(f"Using Supabase document store at {settings.supabase_url}")
        return SupabaseDocumentStore(create_client(settings.supabase_url, settings.supabase_key))

    logger.info("Using in-memory document store")
    return InMemoryDocumentStore()
