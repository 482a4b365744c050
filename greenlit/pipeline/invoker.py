"""
Generation invoker.

Calls the text provider with a built prompt and coerces the reply into a
JSON artifact of the expected shape.
"""

from typing import Any, Callable, Dict, Iterable, Optional

from greenlit.core.constants import STAGE_SPECS, STORY_BIBLE_REQUIRED_KEYS, Stage
from greenlit.core.exceptions import ResponseParseError, UpstreamError
from greenlit.core.logging_config import get_logger
from greenlit.core.retry import FORBIDDEN_RETRY_CONFIG, RetryConfig, retry_async_call
from greenlit.llm.api_clients import APIError
from greenlit.llm.response_coercion import ParseFailure, check_shape, coerce_json
from greenlit.pipeline.context import StageContext
from greenlit.pipeline.prompts import (
    build_scene_storyboard_prompt,
    build_stage_prompt,
    build_story_bible_prompt,
)

logger = get_logger("pipeline.invoker")


class GenerationInvoker:
    """
    Prompt → provider → parsed artifact.

    The text client is built on first use, so a missing provider key only
    fails the request that needs it.
    """

    def __init__(self, client_factory: Callable[[], Any],
                 retry_config: RetryConfig = FORBIDDEN_RETRY_CONFIG,
                 temperature: float = 0.7, max_tokens: int = 8192):
        self._client_factory = client_factory
        self._client = None
        self.retry_config = retry_config
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    @property
    def provider(self) -> str:
        return getattr(self.client, "PROVIDER", type(self.client).__name__)

    async def complete(self, system_prompt: str, prompt: str,
                       required_keys: Iterable[str], label: str) -> Dict[str, Any]:
        """
        Run one generation and return the parsed object.

        Raises:
            UpstreamError: the provider call failed (403s retried first)
            ResponseParseError: the reply was not JSON of the expected shape
        """
        client = self.client

        def on_retry(exc: Exception, attempt: int) -> None:
            logger.warning(f"{label}: provider returned 403, retrying (attempt {attempt + 2})")

        try:
            response = await retry_async_call(
                client.generate_text,
                prompt,
                system_prompt=system_prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                config=self.retry_config,
                on_retry=on_retry,
            )
        except APIError as e:
            logger.error(f"{label}: {self.provider} call failed - {e}")
            raise UpstreamError(self.provider, str(e), {"statusCode": e.status_code})

        parsed = coerce_json(response.text)
        if not isinstance(parsed, ParseFailure):
            parsed = check_shape(parsed, required_keys)
        if isinstance(parsed, ParseFailure):
            logger.error(f"{label}: {parsed.reason}")
            raise ResponseParseError(parsed.reason, label)

        logger.info(f"{label}: generated with {self.provider}")
        return parsed

    async def generate_stage(self, stage: Stage, ctx: StageContext) -> Dict[str, Any]:
        system_prompt, prompt = build_stage_prompt(stage, ctx)
        spec = STAGE_SPECS[stage]
        return await self.complete(system_prompt, prompt, spec.required_keys, spec.display_name.lower())

    async def generate_scene_storyboard(self, scene: Dict[str, Any],
                                        script: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        system_prompt, prompt = build_scene_storyboard_prompt(scene, script)
        label = f"storyboard for scene {scene.get('sceneNumber', '?')}"
        return await self.complete(system_prompt, prompt, ("shots",), label)

    async def generate_story_bible(self, premise: str, genre: Optional[str] = None,
                                   title: Optional[str] = None) -> Dict[str, Any]:
        system_prompt, prompt = build_story_bible_prompt(premise, genre, title)
        return await self.complete(system_prompt, prompt, STORY_BIBLE_REQUIRED_KEYS, "story bible")
