"""
Source Data Cache
=================

Memoizes per-partner SourceData bundles for the calling layer.

The cache is an explicit object: construct it at startup with a loader,
inject it where memoized source data is needed, and drop entries with
invalidate() or clear(). The metrics engine itself never caches.
"""

import logging
import threading
from typing import Callable, Dict

from models import SourceData

logger = logging.getLogger(__name__)


class SourceDataCache:
    """
    Thread-safe, load-once-per-partner cache.

    Concurrent get() calls for the same partner run the loader at most once;
    calls for different partners load in parallel.
    """

    def __init__(self, loader: Callable[[str], SourceData]):
        """
        Args:
            loader: Callable returning the SourceData bundle for a partner id
        """
        self._loader = loader
        self._entries: Dict[str, SourceData] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _lock_for(self, partner_id: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(partner_id)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[partner_id] = lock
            return lock

    def get(self, partner_id: str) -> SourceData:
        """Return cached source data, loading it on first access."""
        cached = self._entries.get(partner_id)
        if cached is not None:
            return cached

        with self._lock_for(partner_id):
            cached = self._entries.get(partner_id)
            if cached is not None:
                return cached

            logger.debug(f"Source data cache miss for {partner_id}")
            source_data = self._loader(partner_id)
            with self._lock:
                self._entries[partner_id] = source_data
            return source_data

    def invalidate(self, partner_id: str) -> None:
        """Drop one partner's entry; the next get() reloads it."""
        with self._lock:
            self._entries.pop(partner_id, None)
        logger.debug(f"Invalidated source data for {partner_id}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
        logger.info("Source data cache cleared")

    def __contains__(self, partner_id: str) -> bool:
        return partner_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
