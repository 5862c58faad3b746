"""Byte-aware LRU cache for decoded rasters."""

import hashlib
import logging
from typing import Any, Callable, Optional

from cachetools import LRUCache

log = logging.getLogger(__name__)


class ByteLRUCache(LRUCache):
    """An LRU Cache that respects the size of its items in bytes."""

    def __init__(
        self,
        max_bytes: int,
        size_of: Callable[[Any], int] = len,
        on_evict: Optional[Callable[[], None]] = None,
    ):
        super().__init__(maxsize=max_bytes, getsizeof=size_of)
        self.on_evict = on_evict
        self.hits = 0
        self.misses = 0
        log.info(
            f"Initialized byte-aware LRU cache with {max_bytes / 1024**2:.2f} MB capacity."
        )

    def lookup(self, key):
        """Returns the cached value or None, counting hits and misses."""
        value = self.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def __setitem__(self, key, value):
        # Items larger than the whole cache are skipped rather than raising
        if self.getsizeof(value) > self.maxsize:
            log.debug(f"Not caching '{key}': larger than cache capacity")
            return
        super().__setitem__(key, value)
        log.debug(
            f"Cached item '{key}'. Cache size: {self.currsize / 1024**2:.2f} MB"
        )

    def popitem(self):
        """Extend popitem to log eviction."""
        key, value = super().popitem()
        log.debug(
            f"Evicted item '{key}' to free up space. Cache size: {self.currsize / 1024**2:.2f} MB"
        )

        if self.on_evict:
            self.on_evict()

        return key, value


def get_raster_size(item) -> int:
    """Approximate in-memory size of a decoded Pillow image."""
    width, height = getattr(item, "size", (0, 0))
    bands = len(item.getbands()) if hasattr(item, "getbands") else 4
    return max(1, width * height * bands)


def build_cache_key(data: bytes, variant: str = "") -> str:
    """Builds a stable cache key from the encoded bytes themselves."""
    digest = hashlib.blake2b(data, digest_size=16).hexdigest()
    return f"{digest}::{variant}" if variant else digest
