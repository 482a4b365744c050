"""
Story Bible Models
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")


class Character(CamelModel):
    """A main character."""
    name: str
    description: str = ""
    archetype: str = ""


class NarrativeArc(CamelModel):
    """An arc spanning a range of episodes, inclusive."""
    title: str
    summary: str = ""
    episodes: List[int] = Field(default_factory=list, max_length=2)


class WorldBuilding(CamelModel):
    setting: str = ""
    rules: List[str] = Field(default_factory=list)
    locations: List[Any] = Field(default_factory=list)


class StoryBible(CamelModel):
    """Series premise, characters, arcs and world."""
    series_title: str = Field(min_length=1)
    genre: str = ""
    premise: str = ""
    themes: List[str] = Field(default_factory=list)
    main_characters: List[Character] = Field(default_factory=list)
    narrative_arcs: List[NarrativeArc] = Field(default_factory=list)
    world_building: WorldBuilding = Field(default_factory=WorldBuilding)
    version: int = 0


class Scene(CamelModel):
    scene_number: int = 0
    heading: str = ""
    content: str = ""
    image_url: Optional[str] = None


class Episode(CamelModel):
    """One episode of a series."""
    episode_number: int = Field(ge=1)
    title: str = ""
    synopsis: str = ""
    scenes: List[Scene] = Field(default_factory=list)
    version: int = 0
