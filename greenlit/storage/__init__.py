"""
Greenlit Storage Module
"""

from .document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    SupabaseDocumentStore,
    collection_path,
    create_document_store,
)
from .repositories import StoryBibleRepository, PreProductionRepository
