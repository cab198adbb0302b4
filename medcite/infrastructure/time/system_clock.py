from __future__ import annotations

from datetime import UTC, datetime

from medcite.application.ports.clock_port import ClockPort


class SystemClock(ClockPort):
    """UTC wall clock.

    Feeds the ranker's recency window (current year) and the created_at /
    updated_at stamps of stored citations.
    """

    def now(self) -> datetime:  # pragma: no cover - trivial
        return datetime.now(UTC)
