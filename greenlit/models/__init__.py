"""
Greenlit Models
"""

from .story_bible import CamelModel, Character, NarrativeArc, WorldBuilding, StoryBible, Scene, Episode
from .requests import (
    StageRequest,
    StoryBibleRequest,
    ArcRunRequest,
    ProgressUpdateRequest,
    ImageSearchRequest,
    ShareCreateRequest,
    ShareUpdateRequest,
    OwnerRequest,
    ExtendRequest,
)
