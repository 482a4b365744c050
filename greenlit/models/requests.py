"""
Request Models

Bodies accepted by the generation, progress and sharing routes.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from greenlit.models.story_bible import CamelModel


class StageRequest(CamelModel):
    """Generate one pipeline stage for an episode or an arc."""
    story_bible_data: Optional[Dict[str, Any]] = None
    episode_data: Optional[Any] = None
    script_data: Optional[Dict[str, Any]] = None
    breakdown_data: Optional[Dict[str, Any]] = None
    storyboard_data: Optional[Dict[str, Any]] = None

    # Per-episode pre-production documents, keyed by episode number
    episode_pre_prod_data: Optional[Dict[int, Dict[str, Any]]] = None

    pre_production_id: Optional[str] = None
    arc_pre_production_id: Optional[str] = None
    story_bible_id: Optional[str] = None
    user_id: Optional[str] = None
    episode_number: Optional[int] = None
    episode_numbers: Optional[List[int]] = None
    arc_index: Optional[int] = None
    include_images: bool = False

    @property
    def is_arc(self) -> bool:
        return bool(self.episode_numbers)

    @property
    def scope(self) -> str:
        return "arc" if self.is_arc else "episode"


class StoryBibleRequest(CamelModel):
    """Generate a story bible from a premise."""
    premise: str = Field(min_length=1)
    genre: Optional[str] = None
    title: Optional[str] = None


class ArcRunRequest(CamelModel):
    """Run all eight stages for the episodes of an arc."""
    story_bible_data: Dict[str, Any]
    arc_episodes: List[Dict[str, Any]] = Field(min_length=1)
    arc_index: int = Field(default=0, ge=0)
    user_id: Optional[str] = None
    story_bible_id: Optional[str] = None
    run_id: Optional[str] = None
    include_images: bool = False


class ProgressUpdateRequest(CamelModel):
    """External update to a run's progress snapshot."""
    action: Literal["update", "reset"]
    run_id: str = "default"
    progress: Optional[Dict[str, Any]] = None


class ImageSearchRequest(CamelModel):
    type: str = Field(min_length=1)
    prompt: str = Field(min_length=1)


class ShareCreateRequest(CamelModel):
    story_bible: Dict[str, Any]
    owner_id: str = Field(min_length=1)
    owner_name: str = ""
    expires_at: Optional[datetime] = None


class ShareUpdateRequest(CamelModel):
    updates: Dict[str, Any]


class OwnerRequest(CamelModel):
    owner_id: str = Field(min_length=1)


class ExtendRequest(CamelModel):
    owner_id: str = Field(min_length=1)
    expires_at: datetime
