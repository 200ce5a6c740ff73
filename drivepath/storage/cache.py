import logging
import threading
import time
from collections import Counter
from typing import Callable, Optional, Tuple

from cachetools import TLRUCache

logger = logging.getLogger(__name__)

NUM_COUNTERS = 10_000_000  # number of keys to track frequency of
MAX_COST = 1 << 30  # maximum aggregate cost of the cache
DEFAULT_TTL = 100.0  # seconds
COST = 1


def _expires_at(_key, value: Tuple[str, float, Optional[bool]], _now) -> float:
    return value[1]


class NodeCache:
    """
    Bounded, TTL based mapping from absolute path to node id.

    Entries share a uniform cost, so `max_cost` bounds the number of entries.
    When the cache is full a new path is admitted only if it has been looked
    up at least as often as the entry it would evict, so paths that are
    resolved repeatedly survive one-off lookups. Frequency counters are halved
    every `num_counters` increments.
    """

    def __init__(self,
                 num_counters: int = NUM_COUNTERS,
                 max_cost: int = MAX_COST,
                 ttl: float = DEFAULT_TTL,
                 timer: Callable[[], float] = time.monotonic):
        if num_counters <= 0:
            raise ValueError("num_counters must be positive")
        if max_cost < COST:
            raise ValueError("max_cost must be at least the cost of one entry")
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        self.num_counters = num_counters
        self.max_cost = max_cost
        self.ttl = ttl
        self._timer = timer
        self._cache = TLRUCache(maxsize=max_cost // COST, ttu=_expires_at, timer=timer)
        self._frequency = Counter()
        self._increments = 0
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.rejected = 0

    def __len__(self):
        with self._lock:
            return len(self._cache)

    def get(self, path: str) -> Optional[str]:
        entry = self.get_entry(path)
        return entry[0] if entry is not None else None

    def get_entry(self, path: str) -> Optional[Tuple[str, Optional[bool]]]:
        """Returns (node_id, is_dir) for path; is_dir is None when the kind was not recorded."""
        with self._lock:
            self._touch(path)
            entry = self._cache.get(path)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry[0], entry[2]

    def set(self, path: str, node_id: str, is_dir: Optional[bool] = None) -> bool:
        """Stores the node id for path. Returns False if admission was refused."""
        with self._lock:
            self._touch(path)
            entry = (node_id, self._timer() + self.ttl, is_dir)
            if path not in self._cache and not self._admit(path):
                self.rejected += 1
                return False
            self._cache[path] = entry
            return True

    def delete(self, path: str, recursive: bool = False):
        """Drops path and, when recursive, every cached path below it."""
        with self._lock:
            self._cache.pop(path, None)
            if recursive:
                prefix = path.rstrip("/") + "/"
                for key in [k for k in self._cache if k.startswith(prefix)]:
                    self._cache.pop(key, None)

    def clear(self):
        with self._lock:
            self._cache.clear()
            self._frequency.clear()
            self._increments = 0

    def _admit(self, path: str) -> bool:
        self._cache.expire()
        if self._cache.currsize + COST <= self._cache.maxsize:
            return True

        victim, victim_entry = self._cache.popitem()
        if self._frequency[path] >= self._frequency[victim]:
            logger.debug(f"Evicted {victim} in favour of {path}")
            return True

        # Victim keeps its original expiry on reinsertion.
        self._cache[victim] = victim_entry
        return False

    def _touch(self, path: str):
        self._frequency[path] += 1
        self._increments += 1
        if self._increments >= self.num_counters:
            self._age()

    def _age(self):
        for key, count in list(self._frequency.items()):
            halved = count // 2
            if halved:
                self._frequency[key] = halved
            else:
                del self._frequency[key]
        self._increments = 0
