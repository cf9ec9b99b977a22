from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)

VOUCHERS_VIEW = "vouchers"
POINTS_VIEW = "points"

DEFAULT_TTL_SECONDS = int(os.getenv("VIEW_CACHE_TTL_SECONDS", "60"))


class ViewCache:
    """Short-lived cache for summary reads; writers invalidate the views they touch."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self.ttl = ttl_seconds
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            stored_ts, payload = entry
            if (time.monotonic() - stored_ts) > self.ttl:
                self._store.pop(key, None)
                return None
            return payload

    def set(self, key: str, payload: Any) -> None:
        with self._lock:
            self._store[key] = (time.monotonic(), payload)

    def invalidate(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._store.pop(key, None)
        logger.debug("Invalidated cached views", extra={"views": list(keys)})

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


view_cache = ViewCache()
