"""
Resident snapshot cache
Short-lived cache of the stored rows behind get_meals_snapshot (meals,
preferences, overrides, menu). Lives on app.state and is handed to
services explicitly; every write for a resident evicts that
resident's entries.
"""

import threading
from typing import Any, Dict, Hashable, Optional, Tuple

from cachetools import TTLCache

from ..config.settings import settings


class SnapshotCache:

    def __init__(self, ttl_seconds: Optional[int] = None, maxsize: Optional[int] = None):
        ttl = settings.snapshot_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        size = settings.snapshot_cache_size if maxsize is None else maxsize
        self.enabled = ttl > 0 and size > 0
        self._cache: TTLCache[Tuple[str, Hashable], Dict[str, Any]] = TTLCache(maxsize=max(size, 1), ttl=max(ttl, 1))
        self._lock = threading.Lock()

    def get(self, resident_id: str, hostel_id: Hashable) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        with self._lock:
            return self._cache.get((resident_id, hostel_id))

    def put(self, resident_id: str, hostel_id: Hashable, snapshot: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._cache[(resident_id, hostel_id)] = snapshot

    def invalidate(self, resident_id: str) -> None:
        with self._lock:
            for key in [key for key in self._cache.keys() if key[0] == resident_id]:
                self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
