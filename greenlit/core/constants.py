"""
Greenlit Constants

Pipeline stage definitions: ordering, prerequisites, artifact shapes and the
remediation hints shown when a prerequisite is missing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from .exceptions import InvalidStageError


class Stage(str, Enum):
    """Pre-production stages, keyed by their document field name."""
    SCRIPTS = "scripts"
    SCRIPT_BREAKDOWN = "scriptBreakdown"
    STORYBOARDS = "storyboards"
    PROPS = "props"
    LOCATIONS = "locations"
    CASTING = "casting"
    MARKETING = "marketing"
    POST_PRODUCTION = "postProduction"


class Input(str, Enum):
    """Inputs a stage can depend on that are not themselves stages."""
    STORY_BIBLE = "storyBible"
    EPISODE = "episode"


class PreProductionState(str, Enum):
    """Derived state of a pre-production document."""
    NOT_STARTED = "NOT_STARTED"
    SCRIPT_READY = "SCRIPT_READY"
    BREAKDOWN_READY = "BREAKDOWN_READY"
    STORYBOARD_READY = "STORYBOARD_READY"
    PROPS_READY = "PROPS_READY"
    LOCATIONS_READY = "LOCATIONS_READY"
    CASTING_READY = "CASTING_READY"
    MARKETING_READY = "MARKETING_READY"
    COMPLETE = "COMPLETE"


STAGE_ORDER: Tuple[Stage, ...] = (
    Stage.SCRIPTS,
    Stage.SCRIPT_BREAKDOWN,
    Stage.STORYBOARDS,
    Stage.PROPS,
    Stage.LOCATIONS,
    Stage.CASTING,
    Stage.MARKETING,
    Stage.POST_PRODUCTION,
)

# State reached once every stage up to and including the key is present
STATE_AFTER: Dict[Stage, PreProductionState] = {
    Stage.SCRIPTS: PreProductionState.SCRIPT_READY,
    Stage.SCRIPT_BREAKDOWN: PreProductionState.BREAKDOWN_READY,
    Stage.STORYBOARDS: PreProductionState.STORYBOARD_READY,
    Stage.PROPS: PreProductionState.PROPS_READY,
    Stage.LOCATIONS: PreProductionState.LOCATIONS_READY,
    Stage.CASTING: PreProductionState.CASTING_READY,
    Stage.MARKETING: PreProductionState.MARKETING_READY,
    Stage.POST_PRODUCTION: PreProductionState.COMPLETE,
}


@dataclass(frozen=True)
class StageSpec:
    """Static description of one pipeline stage."""
    stage: Stage
    display_name: str
    route: str
    requires: Tuple[object, ...]
    required_keys: Tuple[str, ...]


STAGE_SPECS: Dict[Stage, StageSpec] = {
    Stage.SCRIPTS: StageSpec(
        Stage.SCRIPTS, "Scripts", "scripts",
        (Input.STORY_BIBLE, Input.EPISODE), ("fullScript",),
    ),
    Stage.SCRIPT_BREAKDOWN: StageSpec(
        Stage.SCRIPT_BREAKDOWN, "Script Breakdown", "script-breakdown",
        (Stage.SCRIPTS,), ("scenes",),
    ),
    Stage.STORYBOARDS: StageSpec(
        Stage.STORYBOARDS, "Storyboards", "storyboards",
        (Stage.SCRIPTS, Stage.SCRIPT_BREAKDOWN), ("scenes",),
    ),
    Stage.PROPS: StageSpec(
        Stage.PROPS, "Props & Wardrobe", "props",
        (Stage.SCRIPT_BREAKDOWN,), ("props", "wardrobe"),
    ),
    Stage.LOCATIONS: StageSpec(
        Stage.LOCATIONS, "Locations", "locations",
        (Stage.SCRIPT_BREAKDOWN,), ("locations",),
    ),
    Stage.CASTING: StageSpec(
        Stage.CASTING, "Casting", "casting",
        (Input.STORY_BIBLE, Stage.SCRIPT_BREAKDOWN), ("cast",),
    ),
    Stage.MARKETING: StageSpec(
        Stage.MARKETING, "Marketing", "marketing",
        (Input.STORY_BIBLE, Stage.SCRIPTS), ("taglines", "targetAudience"),
    ),
    Stage.POST_PRODUCTION: StageSpec(
        Stage.POST_PRODUCTION, "Post-Production", "post-production",
        (Stage.STORYBOARDS,), ("scenes",),
    ),
}

# Request field carrying each dependency, used in error messages
REQUEST_FIELDS: Dict[object, str] = {
    Input.STORY_BIBLE: "storyBibleData",
    Input.EPISODE: "episodeData",
    Stage.SCRIPTS: "scriptData",
    Stage.SCRIPT_BREAKDOWN: "breakdownData",
    Stage.STORYBOARDS: "storyboardData",
}

REMEDIATION_HINTS: Dict[object, str] = {
    Input.STORY_BIBLE: "Generate or load the story bible first",
    Input.EPISODE: "Generate the episode narrative first",
    Stage.SCRIPTS: "Generate the scripts first",
    Stage.SCRIPT_BREAKDOWN: "Generate the script breakdown first",
    Stage.STORYBOARDS: "Generate the storyboards first",
    Stage.PROPS: "Generate props and wardrobe first",
    Stage.LOCATIONS: "Generate locations first",
    Stage.CASTING: "Generate casting first",
    Stage.MARKETING: "Generate marketing first",
}

STORY_BIBLE_REQUIRED_KEYS: Tuple[str, ...] = ("seriesTitle", "mainCharacters", "narrativeArcs")


def parse_stage(name: str) -> Stage:
    """Resolve a stage from its field name ("scriptBreakdown") or route ("script-breakdown")."""
    for spec in STAGE_SPECS.values():
        if name in (spec.stage.value, spec.route):
            return spec.stage
    raise InvalidStageError(name)


def episode_document_id(episode_number: int) -> str:
    return f"episode_{episode_number}"


def arc_document_id(arc_index: int) -> str:
    return f"arc_{arc_index}"
