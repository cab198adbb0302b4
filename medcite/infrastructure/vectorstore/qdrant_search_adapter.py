from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any

from medcite.application.ports.similarity_search_port import SearchHit, SimilaritySearchPort
from medcite.domain.errors import VectorStoreError

SPECIALTY_FIELD = "specialty_id"


@dataclass
class QdrantSimilaritySearchAdapter(SimilaritySearchPort):
    """Qdrant-backed passage search.

    Payload layout per point: the passage text under ``content_key`` (falling
    back to ``text``), ``specialty_id``, and citation metadata (title, authors,
    journal, year, doi, url) as top-level payload keys.
    """

    url: str | None = None
    host: str = "localhost"
    port: int = 6333
    api_key: str | None = None
    collection: str = "medical_passages"
    content_key: str = "content"
    _cli: Any | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        try:
            client_mod = import_module("qdrant_client")
            QdrantClient = client_mod.QdrantClient
        except Exception as ex:  # pragma: no cover
            raise VectorStoreError("qdrant-client not available; install runtime deps") from ex
        if self.url:
            self._cli = QdrantClient(url=self.url, api_key=self.api_key)
        else:
            self._cli = QdrantClient(host=self.host, port=self.port, api_key=self.api_key)

    def _specialty_filter(self, specialty_id: str | None) -> Any | None:
        if specialty_id is None:
            return None
        try:
            models_mod = import_module("qdrant_client.models")
        except Exception as ex:  # pragma: no cover
            raise VectorStoreError(
                "qdrant-client models not available; install runtime deps"
            ) from ex
        return models_mod.Filter(
            must=[
                models_mod.FieldCondition(
                    key=SPECIALTY_FIELD, match=models_mod.MatchValue(value=specialty_id)
                )
            ]
        )

    def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        specialty_filter: str | None = None,
    ) -> list[SearchHit]:
        if self._cli is None:
            raise VectorStoreError("Qdrant client not initialized")
        query_filter = self._specialty_filter(specialty_filter)
        try:
            resp: Any = self._cli.query_points(
                collection_name=self.collection,
                query=list(query_vector),
                query_filter=query_filter,
                score_threshold=threshold,
                limit=limit,
                with_payload=True,
            )
        except Exception as ex:  # noqa: BLE001
            raise VectorStoreError(f"Search failed: {ex}") from ex

        hits: list[SearchHit] = []
        for point in resp.points:
            payload = dict(point.payload or {})
            content = payload.pop(self.content_key, None)
            if content is None:
                content = payload.pop("text", "")
            hits.append(
                SearchHit(
                    id=str(point.id),
                    content=str(content),
                    similarity=float(point.score),
                    metadata=payload,
                )
            )
        return hits

    def ping(self) -> bool:
        if self._cli is None:
            return False
        try:
            self._cli.get_collection(collection_name=self.collection)
        except Exception:  # noqa: BLE001
            return False
        return True
