#!/usr/bin/env python3
"""
Edge Response Cache
Short-lived, per-URL cache for upstream payloads (chain-TVL lookup only)
"""

import time
import threading
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from .utils import redact_url

logger = logging.getLogger(__name__)


class TTLCache:
    """
    In-process TTL cache keyed by upstream URL
    - Entries expire after their own time-to-live
    - Safe to share between request threads
    """

    def __init__(self, default_ttl: float = 120.0, clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache

        Args:
            default_ttl: Seconds an entry stays fresh when put() gets no ttl
            clock: Monotonic time source (overridable for tests)
        """
        self.default_ttl = default_ttl
        self.clock = clock
        self.entries: Dict[str, Tuple[float, Any]] = {}
        self.lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return a fresh entry or None; expired entries are evicted"""
        with self.lock:
            entry = self.entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self.clock() >= expires_at:
                del self.entries[key]
                logger.debug(f"Cache expired: {redact_url(key)}")
                return None
            logger.debug(f"Cache hit: {redact_url(key)}")
            return value

    def put(self, key: str, value: Any, ttl: Optional[float] = None):
        ttl = self.default_ttl if ttl is None else ttl
        with self.lock:
            self.entries[key] = (self.clock() + ttl, value)

    def clear(self):
        with self.lock:
            self.entries.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self.entries)

