"""Local embeddings through sentence-transformers.

Used instead of the OpenAI API for offline or on-prem deployments. The
collection must have been indexed with the same model, so EMBEDDING_DIM has
to match the model's output size (768 for all-mpnet-base-v2).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.domain.errors import EmbeddingError

# Module attribute so tests can monkeypatch a fake model class.
SentenceTransformer: Any | None
try:  # pragma: no cover - depends on the optional extra
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None


@dataclass
class HFEmbeddingAdapter(EmbeddingPort):
    model_name: str = "sentence-transformers/all-mpnet-base-v2"
    device: str = "cpu"
    local_files_only: bool = False
    query_prefix: str = ""  # some retrieval models expect e.g. "query: "
    _model: Any | None = field(default=None, init=False, repr=False)

    def _load(self) -> Any:
        if self._model is None:
            if SentenceTransformer is None:
                raise EmbeddingError(
                    "sentence-transformers not installed; pip install medcite[local-embeddings]"
                )
            try:
                self._model = SentenceTransformer(
                    self.model_name,
                    device=self.device,
                    local_files_only=self.local_files_only,
                )
            except Exception as ex:  # noqa: BLE001
                raise EmbeddingError(f"cannot load model '{self.model_name}': {ex}") from ex
        return self._model

    def _encode(self, inputs: str | list[str]) -> Any:
        model = self._load()
        try:
            # Unit-length vectors, so the store's cosine score equals the dot product.
            return model.encode(
                inputs,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            )
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"encoding with '{self.model_name}' failed: {ex}") from ex

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        return [[float(x) for x in row] for row in self._encode(list(texts))]

    def embed_query(self, text: str) -> list[float]:
        return [float(x) for x in self._encode(f"{self.query_prefix}{text}")]
