"""
defndr/preprocessing/cache.py
Shared embedding cache keyed by message fingerprint.

One lock guards the store, so get/set/clear are linearizable per key.
Two concurrent misses for the same key may both compute and both write;
the value is deterministic per key, so the last writer wins harmlessly.
"""

import logging
import threading
from collections import OrderedDict
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 2048


class EmbeddingCache:
    """
    Bounded in-memory store: fingerprint → fixed-length vector.
    Least recently used entries are evicted once max_entries is reached.
    Vectors are copied on the way in and out so callers cannot mutate
    cached state.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, List[float]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[float]]:
        with self._lock:
            vector = self._entries.get(key)
            if vector is None:
                return None
            self._entries.move_to_end(key)
            return list(vector)

    def set(self, key: str, vector: List[float]) -> None:
        with self._lock:
            self._entries[key] = list(vector)
            self._entries.move_to_end(key)
            evicted = 0
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                evicted += 1
        if evicted:
            logger.debug("Embedding cache evicted %d entries", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
