from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any

from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.domain.errors import EmbeddingError


@dataclass
class OpenAIEmbeddingAdapter(EmbeddingPort):
    """OpenAI embeddings API adapter (default: text-embedding-3-small, 1536 dims)."""

    api_key: str | None = None
    model: str = "text-embedding-3-small"
    base_url: str | None = None
    dimensions: int | None = None  # only for models that support shortening
    _client: Any | None = field(default=None, init=False, repr=False)

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        try:
            module = import_module("openai")
            self._client = module.OpenAI(api_key=self.api_key, base_url=self.base_url)
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"OpenAI client not available: {ex}") from ex
        return self._client

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        client = self._ensure_client()
        # The API treats newlines as token noise for embeddings.
        inputs = [t.replace("\n", " ") for t in texts]
        kwargs: dict[str, Any] = {"model": self.model, "input": inputs}
        if self.dimensions is not None:
            kwargs["dimensions"] = self.dimensions
        try:
            resp: Any = client.embeddings.create(**kwargs)
            data = sorted(resp.data, key=lambda d: d.index)
            return [[float(x) for x in d.embedding] for d in data]
        except Exception as ex:  # noqa: BLE001
            raise EmbeddingError(f"Embedding request failed: {ex}") from ex

    def embed_query(self, text: str) -> list[float]:
        vectors = self.embed_texts([text])
        if not vectors:
            raise EmbeddingError("Embedding response was empty")
        return vectors[0]
