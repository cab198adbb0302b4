"""Counters and histograms emitted by the retrieval and answer use cases."""

from typing import Any, Protocol


class TelemetryPort(Protocol):
    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        """Add one to counter ``name`` (e.g. ``retrieval.requests``)."""
        ...

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        """Record ``value`` on histogram ``name`` (e.g. ``answer.citations``)."""
        ...
