"""
Context aggregation.

Collects the upstream artifacts a stage needs, for a single episode or
for every episode of an arc. Aggregation builds new containers and never
mutates the documents it reads from.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from greenlit.core.constants import Input, Stage, episode_document_id
from greenlit.core.logging_config import get_logger
from greenlit.models.requests import StageRequest
from greenlit.storage.repositories import PreProductionRepository, StoryBibleRepository

logger = get_logger("pipeline.context")

EpisodeDocs = Mapping[int, Mapping[str, Any]]


def _tag(item: Any, episode_number: int) -> Dict[str, Any]:
    if isinstance(item, dict):
        return {**item, "episodeNumber": episode_number}
    return {"content": item, "episodeNumber": episode_number}


def _concat_scenes(docs: EpisodeDocs, episode_numbers: Iterable[int],
                   artifact: str) -> Optional[Dict[str, Any]]:
    scenes: List[Dict[str, Any]] = []
    contributing: List[int] = []
    for number in sorted(set(episode_numbers)):
        value = (docs.get(number) or {}).get(artifact) or {}
        episode_scenes = (value.get("scenes") or []) if isinstance(value, dict) else []
        if not episode_scenes:
            continue
        contributing.append(number)
        scenes.extend(_tag(scene, number) for scene in episode_scenes)

    if not contributing:
        return None
    return {"scenes": scenes, "episodeNumbers": contributing, "totalScenes": len(scenes)}


def aggregate_breakdown(docs: EpisodeDocs, episode_numbers: Iterable[int]) -> Optional[Dict[str, Any]]:
    """Concatenate breakdown scenes in ascending episode order, tagged with their episode."""
    return _concat_scenes(docs, episode_numbers, Stage.SCRIPT_BREAKDOWN.value)


def aggregate_storyboards(docs: EpisodeDocs, episode_numbers: Iterable[int]) -> Optional[Dict[str, Any]]:
    return _concat_scenes(docs, episode_numbers, Stage.STORYBOARDS.value)


def aggregate_scripts(docs: EpisodeDocs, episode_numbers: Iterable[int]) -> Optional[Dict[str, Any]]:
    """
    Take the full script of the first episode that has one.

    Scripts from later episodes are not merged in.
    """
    for number in sorted(set(episode_numbers)):
        scripts = (docs.get(number) or {}).get(Stage.SCRIPTS.value) or {}
        if isinstance(scripts, dict) and scripts.get("fullScript"):
            return {"fullScript": scripts["fullScript"], "episodeNumber": number}
    return None


def aggregate_casting(docs: EpisodeDocs, episode_numbers: Iterable[int]) -> Optional[Dict[str, Any]]:
    """Merge cast lists, one entry per character name (case-insensitive), with episodesUsed."""
    merged: Dict[str, Dict[str, Any]] = {}
    for number in sorted(set(episode_numbers)):
        casting = (docs.get(number) or {}).get(Stage.CASTING.value) or {}
        for member in (casting.get("cast") or []) if isinstance(casting, dict) else []:
            if not isinstance(member, dict):
                continue
            name = str(member.get("characterName") or member.get("name") or "").strip()
            if not name:
                continue
            key = name.lower()
            if key not in merged:
                merged[key] = {**member, "episodesUsed": [number]}
            elif number not in merged[key]["episodesUsed"]:
                merged[key]["episodesUsed"] = merged[key]["episodesUsed"] + [number]

    if not merged:
        return None
    return {"cast": list(merged.values()), "totalCharacters": len(merged)}


ARC_AGGREGATORS: Dict[Stage, Callable[[EpisodeDocs, Iterable[int]], Optional[Dict[str, Any]]]] = {
    Stage.SCRIPTS: aggregate_scripts,
    Stage.SCRIPT_BREAKDOWN: aggregate_breakdown,
    Stage.STORYBOARDS: aggregate_storyboards,
    Stage.CASTING: aggregate_casting,
}

REQUEST_ATTRIBUTES = {
    Input.STORY_BIBLE: "story_bible_data",
    Input.EPISODE: "episode_data",
    Stage.SCRIPTS: "script_data",
    Stage.SCRIPT_BREAKDOWN: "breakdown_data",
    Stage.STORYBOARDS: "storyboard_data",
}


@dataclass
class StageContext:
    """Upstream artifacts resolved for one stage request."""
    scope: str
    episode_numbers: List[int] = field(default_factory=list)
    artifacts: Dict[Any, Any] = field(default_factory=dict)
    sources: Dict[str, str] = field(default_factory=dict)
    include_images: bool = False

    def get(self, key: Any) -> Any:
        return self.artifacts.get(key)

    def has(self, key: Any) -> bool:
        return bool(self.artifacts.get(key))

    @property
    def story_bible(self) -> Optional[Dict[str, Any]]:
        return self.get(Input.STORY_BIBLE)


class ContextAggregator:
    """
    Resolves stage inputs.

    Each artifact is taken from the first source that has it:
    1. the aggregate (or episode data) carried in the request
    2. the ``episodePreProdData`` map in the request (arc scope)
    3. stored episode documents, when userId and storyBibleId are given
    """

    def __init__(self, preproduction: Optional[PreProductionRepository] = None,
                 story_bibles: Optional[StoryBibleRepository] = None):
        self.preproduction = preproduction
        self.story_bibles = story_bibles

    def build(self, request: StageRequest) -> StageContext:
        if request.is_arc:
            return self._build_arc(request)
        return self._build_episode(request)

    def _from_request(self, request: StageRequest, ctx: StageContext) -> None:
        for key, attribute in REQUEST_ATTRIBUTES.items():
            value = getattr(request, attribute)
            if value:
                ctx.artifacts[key] = value
                ctx.sources[key.value] = "request"

        if not ctx.has(Input.STORY_BIBLE) and self.story_bibles and request.user_id and request.story_bible_id:
            stored = self.story_bibles.find(request.user_id, request.story_bible_id)
            if stored:
                ctx.artifacts[Input.STORY_BIBLE] = stored
                ctx.sources[Input.STORY_BIBLE.value] = "store"

    def _can_load(self, request: StageRequest) -> bool:
        return bool(self.preproduction and request.user_id and request.story_bible_id)

    def _build_episode(self, request: StageRequest) -> StageContext:
        ctx = StageContext(
            scope="episode",
            episode_numbers=[request.episode_number] if request.episode_number else [],
            include_images=request.include_images,
        )
        self._from_request(request, ctx)

        missing = [stage for stage in ARC_AGGREGATORS if stage in REQUEST_ATTRIBUTES and not ctx.has(stage)]
        if missing and request.episode_number and self._can_load(request):
            doc = self.preproduction.get(request.user_id, request.story_bible_id,
                                         episode_document_id(request.episode_number))
            for stage in missing:
                if doc and doc.get(stage.value):
                    ctx.artifacts[stage] = doc[stage.value]
                    ctx.sources[stage.value] = "store"
        return ctx

    def _build_arc(self, request: StageRequest) -> StageContext:
        numbers = sorted(set(request.episode_numbers))
        ctx = StageContext(scope="arc", episode_numbers=numbers, include_images=request.include_images)
        self._from_request(request, ctx)

        request_docs = dict(request.episode_pre_prod_data or {})
        stored_docs: Optional[Dict[int, Any]] = None

        for stage, aggregate in ARC_AGGREGATORS.items():
            if stage not in REQUEST_ATTRIBUTES or ctx.has(stage):
                continue
            value = aggregate(request_docs, numbers) if request_docs else None
            source = "episodePreProdData"
            if value is None and self._can_load(request):
                if stored_docs is None:
                    stored_docs = self.preproduction.load_episodes(
                        request.user_id, request.story_bible_id, numbers
                    )
                value = aggregate(stored_docs, numbers)
                source = "store"
            if value is not None:
                ctx.artifacts[stage] = value
                ctx.sources[stage.value] = source
                logger.debug(f"Aggregated {stage.value} for episodes {numbers} from {source}")
        return ctx

    def aggregate_arc(self, user_id: str, story_bible_id: str,
                      episode_numbers: Iterable[int]) -> Dict[str, Any]:
        """Aggregate every supported artifact from stored episode documents."""
        numbers = sorted(set(episode_numbers))
        docs = self.preproduction.load_episodes(user_id, story_bible_id, numbers)
        result: Dict[str, Any] = {"episodeNumbers": numbers}
        for stage, aggregate in ARC_AGGREGATORS.items():
            result[stage.value] = aggregate(docs, numbers)
        return result
