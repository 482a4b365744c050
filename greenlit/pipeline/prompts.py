"""
Prompt templates for each generation stage.

Every template asks for a single JSON object whose top-level keys include
the stage's required keys.
"""

import json
from typing import Any, Dict, Optional, Tuple

from greenlit.core.constants import Input, Stage
from greenlit.pipeline.context import StageContext

SYSTEM_PROMPT = (
    "You are a film and television pre-production assistant. "
    "Respond with one valid JSON object and nothing else."
)

STAGE_INSTRUCTIONS: Dict[Stage, str] = {
    Stage.SCRIPTS: (
        "Write the screenplay for the episode material below.\n"
        'Return {"title": str, "fullScript": str, "scenes": [{"sceneNumber": int, "heading": str, "content": str}]}'
    ),
    Stage.SCRIPT_BREAKDOWN: (
        "Break the script below into production scenes.\n"
        'Return {"scenes": [{"sceneNumber": int, "heading": str, "characters": [str], '
        '"props": [str], "location": str, "timeOfDay": str, "notes": str}]}'
    ),
    Stage.STORYBOARDS: (
        "Plan storyboard shots for every scene in the breakdown, using the script for dialogue.\n"
        'Return {"scenes": [{"sceneNumber": int, "shots": [{"shotNumber": int, "shotType": str, '
        '"cameraMovement": str, "description": str}]}]}'
    ),
    Stage.PROPS: (
        "List the props and wardrobe the breakdown requires.\n"
        'Return {"props": [{"name": str, "description": str, "scenes": [int]}], '
        '"wardrobe": [{"character": str, "description": str, "scenes": [int]}]}'
    ),
    Stage.LOCATIONS: (
        "Describe every shooting location the breakdown requires.\n"
        'Return {"locations": [{"name": str, "description": str, "type": str, "scenes": [int]}]}'
    ),
    Stage.CASTING: (
        "Write casting briefs for the characters that appear in the breakdown.\n"
        'Return {"cast": [{"characterName": str, "description": str, "ageRange": str, "notes": str}]}'
    ),
    Stage.MARKETING: (
        "Draft marketing material for the series and script below.\n"
        'Return {"taglines": [str], "targetAudience": {"primary": str, "secondary": str}, "logline": str}'
    ),
    Stage.POST_PRODUCTION: (
        "Write post-production notes (edit, sound, colour, VFX) for each storyboarded scene.\n"
        'Return {"scenes": [{"sceneNumber": int, "editing": str, "sound": str, "color": str, "vfx": str}]}'
    ),
}

STAGE_INPUTS: Dict[Stage, Tuple[Any, ...]] = {
    Stage.SCRIPTS: (Input.STORY_BIBLE, Input.EPISODE),
    Stage.SCRIPT_BREAKDOWN: (Stage.SCRIPTS,),
    Stage.STORYBOARDS: (Stage.SCRIPTS, Stage.SCRIPT_BREAKDOWN),
    Stage.PROPS: (Stage.SCRIPT_BREAKDOWN,),
    Stage.LOCATIONS: (Stage.SCRIPT_BREAKDOWN,),
    Stage.CASTING: (Input.STORY_BIBLE, Stage.SCRIPT_BREAKDOWN),
    Stage.MARKETING: (Input.STORY_BIBLE, Stage.SCRIPTS),
    Stage.POST_PRODUCTION: (Stage.STORYBOARDS,),
}

SECTION_TITLES = {
    Input.STORY_BIBLE: "STORY BIBLE",
    Input.EPISODE: "EPISODE",
    Stage.SCRIPTS: "SCRIPT",
    Stage.SCRIPT_BREAKDOWN: "SCRIPT BREAKDOWN",
    Stage.STORYBOARDS: "STORYBOARDS",
}


def _section(title: str, value: Any) -> str:
    body = value if isinstance(value, str) else json.dumps(value, indent=2, ensure_ascii=False)
    return f"=== {title} ===\n{body}"


def build_stage_prompt(stage: Stage, ctx: StageContext) -> Tuple[str, str]:
    """Build the (system prompt, prompt) pair for a stage."""
    parts = [STAGE_INSTRUCTIONS[stage]]
    if ctx.scope == "arc":
        episodes = ", ".join(str(n) for n in ctx.episode_numbers)
        parts.append(f"Scope: arc covering episodes {episodes}. Keep episodeNumber on each scene.")
    for key in STAGE_INPUTS[stage]:
        value = ctx.get(key)
        if value:
            parts.append(_section(SECTION_TITLES[key], value))
    return SYSTEM_PROMPT, "\n\n".join(parts)


def build_scene_storyboard_prompt(scene: Dict[str, Any], script: Optional[Dict[str, Any]]) -> Tuple[str, str]:
    """Prompt for the storyboard of a single breakdown scene."""
    parts = [
        "Plan storyboard shots for the scene below.\n"
        'Return {"sceneNumber": int, "shots": [{"shotNumber": int, "shotType": str, '
        '"cameraMovement": str, "description": str}]}',
        _section("SCENE", scene),
    ]
    if script and script.get("fullScript"):
        parts.append(_section("SCRIPT", script["fullScript"]))
    return SYSTEM_PROMPT, "\n\n".join(parts)


def build_story_bible_prompt(premise: str, genre: Optional[str] = None,
                             title: Optional[str] = None) -> Tuple[str, str]:
    parts = [
        "Develop a series story bible from the premise below.\n"
        'Return {"seriesTitle": str, "genre": str, "premise": str, "themes": [str], '
        '"mainCharacters": [{"name": str, "description": str, "archetype": str}], '
        '"narrativeArcs": [{"title": str, "summary": str, "episodes": [int, int]}], '
        '"worldBuilding": {"setting": str, "rules": [str], "locations": [str]}}',
        _section("PREMISE", premise),
    ]
    if genre:
        parts.append(_section("GENRE", genre))
    if title:
        parts.append(_section("WORKING TITLE", title))
    return SYSTEM_PROMPT, "\n\n".join(parts)
