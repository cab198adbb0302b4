from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """Time source for recency boosts, diagnostics and citation timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware UTC now."""
        ...
