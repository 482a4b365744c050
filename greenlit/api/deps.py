"""
API Dependencies

The services container attached to the app, and the dependency that
hands it to route handlers.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Callable, Coroutine, Optional, Set

from fastapi import Request

from greenlit.core.config import Settings
from greenlit.core.logging_config import get_logger
from greenlit.llm.api_clients import create_image_client, create_text_client
from greenlit.llm.image_cache import ImageCache, ImageSearchService
from greenlit.pipeline.arc_runner import ArcRunner
from greenlit.pipeline.context import ContextAggregator
from greenlit.pipeline.gate import StageGate
from greenlit.pipeline.invoker import GenerationInvoker
from greenlit.pipeline.progress import ProgressHub
from greenlit.pipeline.stages import StageService
from greenlit.sharing.service import ShareLinkService, utc_now
from greenlit.storage.document_store import DocumentStore, create_document_store
from greenlit.storage.repositories import PreProductionRepository, StoryBibleRepository

logger = get_logger("api.deps")


@dataclass
class AppServices:
    """Everything with state that handlers share, built once per app."""
    settings: Settings
    store: DocumentStore
    story_bibles: StoryBibleRepository
    preproduction: PreProductionRepository
    image_cache: ImageCache
    images: ImageSearchService
    invoker: GenerationInvoker
    aggregator: ContextAggregator
    gate: StageGate
    stages: StageService
    hub: ProgressHub
    arc_runner: ArcRunner
    shares: ShareLinkService
    _tasks: Set[asyncio.Task] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: Optional[DocumentStore] = None,
        text_client_factory: Optional[Callable[[], Any]] = None,
        image_client_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "AppServices":
        """
        Wire the services. Provider clients are created on first use, so
        missing keys surface on the request that needs them.
        """
        store = store or create_document_store(settings)
        story_bibles = StoryBibleRepository(store)
        preproduction = PreProductionRepository(store)

        image_cache = ImageCache(settings.image_cache_size)
        images = ImageSearchService(image_cache, image_client_factory or partial(create_image_client, settings))
        invoker = GenerationInvoker(text_client_factory or partial(create_text_client, settings))

        aggregator = ContextAggregator(preproduction, story_bibles)
        gate = StageGate()
        stages = StageService(aggregator, gate, invoker, images)
        hub = ProgressHub(settings.progress_max_runs)

        return cls(
            settings=settings,
            store=store,
            story_bibles=story_bibles,
            preproduction=preproduction,
            image_cache=image_cache,
            images=images,
            invoker=invoker,
            aggregator=aggregator,
            gate=gate,
            stages=stages,
            hub=hub,
            arc_runner=ArcRunner(stages, hub, preproduction, settings.status_endpoint_url),
            shares=ShareLinkService(store, clock),
        )

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Run a coroutine in the background, holding a reference until it finishes."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def get_services(request: Request) -> AppServices:
    """Dependency returning the app's services container."""
    return request.app.state.services
