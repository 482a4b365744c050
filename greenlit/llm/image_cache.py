"""
Greenlit Image Search Cache

Bounded LRU cache for stock image lookups, keyed by ``(type, prompt)``,
and the search service that shares it between the image route and the
locations stage.
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from greenlit.core.exceptions import UpstreamError
from greenlit.core.logging_config import get_logger
from greenlit.llm.api_clients import APIError, ImageResult

logger = get_logger("llm.image_cache")

CacheKey = Tuple[str, str]


@dataclass
class CacheEntry:
    """A cached image search result."""
    images: List[ImageResult]
    timestamp: float = field(default_factory=time.time)
    hit_count: int = 0


@dataclass
class CacheStats:
    """Statistics for cache performance."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class ImageCache:
    """
    In-process LRU cache for image search results.

    Features:
    - Key is the (type, prompt) pair, prompt whitespace-normalized
    - Max size with least-recently-used eviction
    - Hit/miss statistics
    """

    def __init__(self, max_size: int = 256):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._cache: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._stats = CacheStats()

    @staticmethod
    def make_key(image_type: str, prompt: str) -> CacheKey:
        return (image_type.strip().lower(), " ".join(prompt.split()))

    def get(self, image_type: str, prompt: str) -> Optional[List[ImageResult]]:
        """Get cached images, refreshing the entry's recency."""
        key = self.make_key(image_type, prompt)
        entry = self._cache.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        self._cache.move_to_end(key)
        entry.hit_count += 1
        self._stats.hits += 1
        logger.debug(f"Image cache hit for {key[0]}:{key[1][:40]} (hits: {entry.hit_count})")
        return entry.images

    def set(self, image_type: str, prompt: str, images: List[ImageResult]) -> None:
        key = self.make_key(image_type, prompt)
        self._cache[key] = CacheEntry(images=list(images))
        self._cache.move_to_end(key)
        while len(self._cache) > self.max_size:
            evicted, _ = self._cache.popitem(last=False)
            self._stats.evictions += 1
            logger.debug(f"Evicted image cache entry {evicted[0]}:{evicted[1][:40]}")

    def __contains__(self, item: CacheKey) -> bool:
        return self.make_key(*item) in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    @property
    def stats(self) -> CacheStats:
        return self._stats


class ImageSearchService:
    """Cached image search over a lazily built client."""

    def __init__(self, cache: ImageCache, client_factory):
        self.cache = cache
        self._client_factory = client_factory
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    async def search(self, image_type: str, prompt: str) -> Tuple[List[ImageResult], bool]:
        """
        Search images for a prompt.

        Returns:
            (images, cached) where cached tells whether the cache answered
        """
        cached = self.cache.get(image_type, prompt)
        if cached is not None:
            return cached, True

        query = f"{prompt} {image_type}".strip()
        try:
            images = await self.client.search_photos(query)
        except APIError as e:
            raise UpstreamError("Unsplash", str(e))

        self.cache.set(image_type, prompt, images)
        return images, False

    async def attach_images(self, items: List[Dict[str, Any]], image_type: str,
                            prompt_field: str = "name") -> List[Dict[str, Any]]:
        """
        Return copies of ``items`` with an ``images`` list on each.

        All lookups run concurrently.
        """
        async def lookup(item: Any) -> Dict[str, Any]:
            if not isinstance(item, dict):
                item = {prompt_field: str(item)}
            prompt = str(item.get(prompt_field) or item.get("description") or "")
            if not prompt:
                return {**item, "images": []}
            images, _ = await self.search(image_type, prompt)
            return {**item, "images": [asdict(image) for image in images]}

        return list(await asyncio.gather(*(lookup(item) for item in items)))
