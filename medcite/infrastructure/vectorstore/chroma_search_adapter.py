from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, cast

from medcite.application.ports.similarity_search_port import SearchHit, SimilaritySearchPort
from medcite.domain.errors import VectorStoreError

try:  # pragma: no cover - exercised via tests with monkeypatch
    import chromadb
except Exception:  # noqa: BLE001
    chromadb = None

SPECIALTY_FIELD = "specialty_id"


@dataclass
class ChromaSimilaritySearchAdapter(SimilaritySearchPort):
    """Local Chroma collection as passage store (cosine space).

    Chroma has no score threshold of its own, so it is applied here after
    converting distances to similarities.
    """

    persist_dir: str = "var/chroma/medical_passages"
    collection: str = "medical_passages"
    _client: Any | None = None
    _coll: Any | None = None

    def __post_init__(self) -> None:
        if chromadb is None:
            raise VectorStoreError("chromadb not installed.")
        os.makedirs(self.persist_dir, exist_ok=True)
        try:
            self._client = chromadb.PersistentClient(path=self.persist_dir)
            self._coll = self._client.get_or_create_collection(
                name=self.collection,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as ex:  # noqa: BLE001
            raise VectorStoreError(f"Failed to init Chroma at '{self.persist_dir}': {ex}") from ex

    def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
        specialty_filter: str | None = None,
    ) -> list[SearchHit]:
        if self._coll is None:
            raise VectorStoreError("Chroma collection not initialized.")
        kwargs: dict[str, Any] = {
            "query_embeddings": [list(query_vector)],
            "n_results": limit,
            "include": ["documents", "metadatas", "distances"],
        }
        if specialty_filter is not None:
            kwargs["where"] = {SPECIALTY_FIELD: specialty_filter}
        try:
            result = cast(dict[str, list[list[Any]]], self._coll.query(**kwargs))
        except Exception as ex:  # noqa: BLE001
            raise VectorStoreError(f"Search failed: {ex}") from ex

        ids = (result.get("ids") or [[]])[0]
        documents = (result.get("documents") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        hits: list[SearchHit] = []
        for idx, passage_id in enumerate(ids):
            distance = float(distances[idx]) if idx < len(distances) else 1.0
            similarity = 1.0 - distance  # Chroma returns distance (smaller = closer)
            if similarity < threshold:
                continue
            text = documents[idx] if idx < len(documents) and documents[idx] is not None else ""
            metadata = metadatas[idx] if idx < len(metadatas) and metadatas[idx] is not None else {}
            hits.append(
                SearchHit(
                    id=str(passage_id),
                    content=str(text),
                    similarity=similarity,
                    metadata=dict(metadata),
                )
            )
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:limit]

    def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            self._client.heartbeat()
        except Exception:  # noqa: BLE001
            return False
        return True
