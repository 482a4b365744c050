"""
Share Link Service

Read/write share links over a copy of a story bible. Links can expire or
be revoked by their owner; both make the link Gone rather than NotFound.
Every view and edit is recorded in the access log.
"""

import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from greenlit.core.exceptions import GoneError, NotFoundError, UnauthorizedError, ValidationFailure
from greenlit.core.logging_config import get_logger
from greenlit.storage.document_store import Document, DocumentStore

logger = get_logger("sharing.service")

SHARED_STORY_BIBLES = "sharedStoryBibles"
SHARE_LINKS = "shareLinks"
ACCESS_LOGS = "shareAccessLogs"

ACCESS_ACTIONS = ("viewed", "edited")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))


class ShareLinkService:
    """Create, read, edit, revoke and audit share links."""

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def _now(self) -> datetime:
        return as_utc(self.clock())

    # =========================================================================
    # LINK LIFECYCLE
    # =========================================================================

    def create(self, story_bible: Dict[str, Any], owner_id: str, owner_name: str = "",
               expires_at: Optional[datetime] = None) -> Dict[str, str]:
        """
        Share a copy of a story bible.

        Returns:
            {"linkId", "shareId"}
        """
        now = self._now()
        if expires_at is not None and as_utc(expires_at) <= now:
            raise ValidationFailure("Expiration must be in the future")

        share_id = uuid.uuid4().hex
        link_id = secrets.token_urlsafe(6)

        self.store.set(SHARED_STORY_BIBLES, share_id, {
            **story_bible,
            "shareId": share_id,
            "ownerId": owner_id,
            "version": 1,
            "sharedAt": now.isoformat(),
        })
        self.store.set(SHARE_LINKS, link_id, {
            "linkId": link_id,
            "shareId": share_id,
            "ownerId": owner_id,
            "ownerName": owner_name,
            "createdAt": now.isoformat(),
            "expiresAt": as_utc(expires_at).isoformat() if expires_at else None,
            "revoked": False,
            "revokedAt": None,
        })
        logger.info(f"Created share link {link_id} for {owner_id}")
        return {"linkId": link_id, "shareId": share_id}

    def _load_link(self, link_id: str) -> Document:
        link = self.store.get(SHARE_LINKS, link_id)
        if link is None:
            raise NotFoundError(f"Share link '{link_id}' not found")
        return link

    def _require_active(self, link: Document) -> None:
        if link.get("revoked"):
            raise GoneError("This share link has been revoked")
        expires_at = link.get("expiresAt")
        if expires_at and parse_timestamp(expires_at) <= self._now():
            raise GoneError("This share link has expired")

    def _require_owner(self, link: Document, owner_id: str) -> None:
        if link.get("ownerId") != owner_id:
            logger.warning(f"Rejected owner action on {link['linkId']} by {owner_id}")
            raise UnauthorizedError("Only the link owner can manage this share link")

    def _load_shared(self, link: Document) -> Document:
        shared = self.store.get(SHARED_STORY_BIBLES, link["shareId"])
        if shared is None:
            raise NotFoundError(f"Shared story bible for link '{link['linkId']}' not found")
        return shared

    def get(self, link_id: str) -> Dict[str, Any]:
        """Open a link. Logs a view."""
        link = self._load_link(link_id)
        self._require_active(link)
        shared = self._load_shared(link)
        self.log_access(link_id, "viewed")
        return {"link": self._public_link(link), "storyBible": shared}

    def update(self, link_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge edits into the shared copy. Last write wins."""
        link = self._load_link(link_id)
        self._require_active(link)
        shared = self._load_shared(link)

        protected = {"shareId", "ownerId", "version"}
        merged = {**shared, **{k: v for k, v in updates.items() if k not in protected}}
        merged["version"] = shared.get("version", 0) + 1
        merged["updatedAt"] = self._now().isoformat()
        self.store.set(SHARED_STORY_BIBLES, link["shareId"], merged)

        self.log_access(link_id, "edited")
        logger.info(f"Share link {link_id} edited (v{merged['version']})")
        return {"storyBible": merged, "version": merged["version"]}

    def revoke(self, link_id: str, owner_id: str) -> Dict[str, Any]:
        """Revoke a link. Revoking twice is a no-op reported as alreadyRevoked."""
        link = self._load_link(link_id)
        self._require_owner(link, owner_id)

        if link.get("revoked"):
            return {"linkId": link_id, "revoked": True, "alreadyRevoked": True}

        self.store.update(SHARE_LINKS, link_id, {"revoked": True, "revokedAt": self._now().isoformat()})
        logger.info(f"Share link {link_id} revoked")
        return {"linkId": link_id, "revoked": True, "alreadyRevoked": False}

    def extend_expiration(self, link_id: str, owner_id: str, expires_at: datetime) -> Dict[str, Any]:
        """Move a link's expiry. Revoked links stay revoked."""
        link = self._load_link(link_id)
        self._require_owner(link, owner_id)
        if link.get("revoked"):
            raise GoneError("This share link has been revoked")

        expires_at = as_utc(expires_at)
        if expires_at <= self._now():
            raise ValidationFailure("Expiration must be in the future")

        self.store.update(SHARE_LINKS, link_id, {"expiresAt": expires_at.isoformat()})
        logger.info(f"Share link {link_id} extended to {expires_at.isoformat()}")
        return {"linkId": link_id, "expiresAt": expires_at.isoformat()}

    # =========================================================================
    # ACCESS LOG
    # =========================================================================

    def log_access(self, link_id: str, action: str) -> Document:
        if action not in ACCESS_ACTIONS:
            raise ValidationFailure(f"Unknown access action: '{action}'")
        entry = {"linkId": link_id, "action": action, "timestamp": self._now().isoformat()}
        self.store.add(ACCESS_LOGS, entry)
        return entry

    def get_access_logs(self, link_id: str, owner_id: str) -> Dict[str, Any]:
        """Owner-only access log, oldest first, with analytics."""
        link = self._load_link(link_id)
        self._require_owner(link, owner_id)

        logs = sorted(
            self.store.list(ACCESS_LOGS, where={"linkId": link_id}),
            key=lambda entry: parse_timestamp(entry["timestamp"]),
        )
        return {"logs": logs, "analytics": self.analytics(logs)}

    @staticmethod
    def analytics(logs: List[Document]) -> Dict[str, Any]:
        """Counts over ordered logs; lastAccessed is the final entry's timestamp."""
        view_count = sum(1 for entry in logs if entry.get("action") == "viewed")
        edit_count = sum(1 for entry in logs if entry.get("action") == "edited")
        return {
            "viewCount": view_count,
            "editCount": edit_count,
            "totalAccess": len(logs),
            "lastAccessed": logs[-1]["timestamp"] if logs else None,
        }

    @staticmethod
    def _public_link(link: Document) -> Dict[str, Any]:
        return {
            "linkId": link["linkId"],
            "ownerName": link.get("ownerName", ""),
            "createdAt": link.get("createdAt"),
            "expiresAt": link.get("expiresAt"),
        }
