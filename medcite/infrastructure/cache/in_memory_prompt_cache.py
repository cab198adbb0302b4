from __future__ import annotations

import threading

from medcite.application.ports.prompt_cache_port import PromptCachePort


class InMemoryPromptCache(PromptCachePort):
    """Append-only dict guarded by a lock; the first value stored for a key wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._entries.setdefault(key, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
