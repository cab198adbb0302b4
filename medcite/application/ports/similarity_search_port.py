from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class SearchHit:
    """Raw store hit; the use case turns it into a RetrievedPassage."""

    id: str
    content: str
    similarity: float
    metadata: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class SimilaritySearchPort(Protocol):
    def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        specialty_filter: str | None = None,
    ) -> list[SearchHit]:
        """Hits with similarity >= threshold, best first, at most ``limit``.

        Raises VectorStoreError when the backend is unreachable or misconfigured.
        """
        ...

    def ping(self) -> bool:
        """Cheap reachability check; never raises."""
        ...
