"""Application ports package.

Re-exports every port so use cases import from one place.
"""

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.ports.clock_port import ClockPort
from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.application.ports.llm_port import ChatMessage, LLMPort, LLMResponse
from medcite.application.ports.prompt_cache_port import PromptCachePort
from medcite.application.ports.similarity_search_port import SearchHit, SimilaritySearchPort
from medcite.application.ports.specialty_catalog_port import SpecialtyCatalogPort
from medcite.application.ports.telemetry_port import TelemetryPort

__all__ = [
    "CitationStorePort",
    "ChatMessage",
    "ClockPort",
    "EmbeddingPort",
    "LLMPort",
    "LLMResponse",
    "PromptCachePort",
    "SearchHit",
    "SimilaritySearchPort",
    "SpecialtyCatalogPort",
    "TelemetryPort",
]
