from typing import Protocol, runtime_checkable


@runtime_checkable
class PromptCachePort(Protocol):
    """Keyed store for composed specialty prompts.

    Why (SAM): The cache is injected so its lifetime is owned by the
    composition root, not by module state. Implementations must tolerate
    concurrent get/set of the same key.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...
