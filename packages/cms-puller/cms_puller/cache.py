import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


@dataclass
class CacheEntry:
    data: List[Any]
    stored_at: float


class ResponseCache:
    """
    In-memory page cache keyed by the fully built query URL.

    Entries expire lazily: a stale entry is dropped the next time it is read.
    There is no size bound, only the TTL.
    """

    DEFAULT_TTL = 30 * 60  # 30 minutes

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[List[Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < self.ttl:
            return entry.data
        self._entries.pop(key, None)
        return None

    def set(self, key: str, data: List[Any]) -> None:
        self._entries[key] = CacheEntry(data=data, stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
