"""In-process cache of analysis results keyed by text fingerprint.

Entries expire lazily: an entry older than the TTL is dropped when it is
read, never by a background sweep. The cache is not size-bounded and is
per-process, so separate workers do not share results.
"""
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config import settings

logger = logging.getLogger(__name__)


def fingerprint(text: str) -> str:
    """Stable cache key for a piece of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    value: Any
    computed_at: float


class ResultCache:
    def __init__(self, ttl_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds if ttl_seconds is not None else settings.ANALYSIS_CACHE_TTL_SECONDS
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        # Guards _entries across worker threads, each running its own event loop
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.computed_at >= self.ttl:
                del self._entries[key]
                logger.debug(f"Cache entry {key[:12]} expired")
                return None
            return entry.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, computed_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Shared by every orchestrator in this process.
analysis_cache = ResultCache()
