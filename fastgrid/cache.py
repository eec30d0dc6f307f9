# fastgrid/cache.py
"""
In-memory thumbnail cache keyed by grid index.

This is an approximate cache: entries can disappear at any time (soft byte
budget, system memory pressure, explicit purge). A miss only ever costs a
redundant render, so callers must never treat an earlier put() as durable.
"""
import logging
import threading

import psutil

import config
from .utils import estimate_image_bytes, format_size

logger = logging.getLogger(__name__)


def _check_key(index):
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError(f"cache key must be an int grid index, got {type(index).__name__}")
    if index < 0:
        raise ValueError(f"cache key must be >= 0, got {index}")


class ThumbnailCache:
    """Thread-safe index -> Thumbnail map with unspecified eviction time."""

    def __init__(self, max_bytes=None, pressure_percent=None, check_every=None):
        self._entries = {}
        self._sizes = {}
        self._lock = threading.Lock()
        self.max_bytes = config.CACHE_MAX_BYTES if max_bytes is None else max_bytes
        self.pressure_percent = (
            config.MEMORY_PRESSURE_PERCENT if pressure_percent is None else pressure_percent
        )
        self.check_every = config.PRESSURE_CHECK_EVERY if check_every is None else check_every
        self._bytes = 0
        self._puts_since_check = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, index):
        """Return the cached thumbnail for `index`, or None."""
        _check_key(index)
        with self._lock:
            thumb = self._entries.get(index)
            if thumb is None:
                self.misses += 1
            else:
                self.hits += 1
            return thumb

    def put(self, index, thumbnail):
        """Store `thumbnail` under `index`. Last write wins."""
        _check_key(index)
        size = estimate_image_bytes(thumbnail.image)
        with self._lock:
            old = self._sizes.pop(index, 0)
            self._bytes -= old
            self._entries[index] = thumbnail
            self._sizes[index] = size
            self._bytes += size
            self._evict_over_budget()
            self._puts_since_check += 1
            probe = self.check_every and self._puts_since_check >= self.check_every
            if probe:
                self._puts_since_check = 0

        if probe and self._under_memory_pressure():
            self.handle_memory_pressure()

    def _evict_over_budget(self):
        # Oldest insertions go first; caller holds the lock.
        while self._bytes > self.max_bytes and self._entries:
            index = next(iter(self._entries))
            del self._entries[index]
            self._bytes -= self._sizes.pop(index)
            self.evictions += 1

    def _under_memory_pressure(self):
        try:
            percent = psutil.virtual_memory().percent
        except (psutil.Error, OSError) as e:
            logger.debug("Memory probe failed: %s", e)
            return False
        return percent >= self.pressure_percent

    def handle_memory_pressure(self, fraction=0.5):
        """Drop roughly `fraction` of the entries. Returns how many were dropped."""
        with self._lock:
            count = int(len(self._entries) * fraction) or (1 if self._entries else 0)
            victims = list(self._entries)[:count]
            for index in victims:
                del self._entries[index]
                self._bytes -= self._sizes.pop(index)
            self.evictions += len(victims)
            remaining = self._bytes
        if victims:
            logger.info(
                "Memory pressure: dropped %d thumbnails, %s still cached",
                len(victims), format_size(remaining),
            )
        return len(victims)

    def clear(self):
        """Manually clears the thumbnail cache."""
        with self._lock:
            self._entries.clear()
            self._sizes.clear()
            self._bytes = 0

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, index):
        with self._lock:
            return index in self._entries

    def stats(self):
        with self._lock:
            return {
                "entries": len(self._entries),
                "bytes": self._bytes,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }
