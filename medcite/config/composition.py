from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.ports.clock_port import ClockPort
from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.application.ports.llm_port import LLMPort
from medcite.application.ports.prompt_cache_port import PromptCachePort
from medcite.application.ports.similarity_search_port import SimilaritySearchPort
from medcite.application.ports.specialty_catalog_port import SpecialtyCatalogPort
from medcite.application.ports.telemetry_port import TelemetryPort
from medcite.config.settings import AppSettings
from medcite.infrastructure.cache.in_memory_prompt_cache import InMemoryPromptCache
from medcite.infrastructure.citations.in_memory_citation_store import InMemoryCitationStore
from medcite.infrastructure.citations.redis_citation_store import (
    RedisCitationStoreAdapter,
    RedisConfig,
)
from medcite.infrastructure.embeddings.hf_sentence_transformers import HFEmbeddingAdapter
from medcite.infrastructure.embeddings.openai_embedding_adapter import OpenAIEmbeddingAdapter
from medcite.infrastructure.llm.openai_chat_adapter import OpenAIChatAdapter
from medcite.infrastructure.specialties.static_specialty_catalog import StaticSpecialtyCatalog
from medcite.infrastructure.telemetry.otel_adapter import OpenTelemetryAdapter, OtelConfig
from medcite.infrastructure.time.system_clock import SystemClock
from medcite.infrastructure.vectorstore.chroma_search_adapter import ChromaSimilaritySearchAdapter
from medcite.infrastructure.vectorstore.qdrant_search_adapter import QdrantSimilaritySearchAdapter


def build_embedding(settings: AppSettings) -> EmbeddingPort:
    if settings.embedding_backend in ("sentence-transformers", "hf"):
        return HFEmbeddingAdapter(
            model_name=settings.embedding_model,
            device=settings.embedding_device,
        )
    return OpenAIEmbeddingAdapter(
        api_key=settings.openai_api_key or None,
        model=settings.embedding_model,
    )


def build_similarity_search(settings: AppSettings) -> SimilaritySearchPort:
    if settings.vector_backend == "chroma":
        return ChromaSimilaritySearchAdapter(
            persist_dir=settings.chroma_dir,
            collection=settings.collection,
        )
    return QdrantSimilaritySearchAdapter(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key or None,
        collection=settings.collection,
    )


def build_llm(settings: AppSettings) -> LLMPort:
    return OpenAIChatAdapter(
        api_key=settings.openai_api_key or None,
        model=settings.llm_model,
        base_url=settings.llm_base_url or None,
    )


def build_clock() -> ClockPort:
    """Tests inject a fixed clock instead."""
    return SystemClock()


def build_citation_store(settings: AppSettings, clock: ClockPort) -> CitationStorePort:
    if settings.citation_store_backend == "redis":
        cfg = RedisConfig(
            url=settings.redis_url or None,
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password or None,
        )
        return RedisCitationStoreAdapter(cfg, clock)
    return InMemoryCitationStore(clock)


def build_specialty_catalog() -> SpecialtyCatalogPort:
    return StaticSpecialtyCatalog()


def build_prompt_cache() -> PromptCachePort:
    return InMemoryPromptCache()


def build_telemetry(settings: AppSettings) -> TelemetryPort | None:
    """OpenTelemetryAdapter when enabled (no-op without the SDK), else None."""
    if not settings.telemetry_enabled:
        return None
    cfg = OtelConfig(
        service_name="medcite",
        otlp_endpoint=settings.otlp_endpoint or None,
        environment=settings.telemetry_environment,
    )
    return OpenTelemetryAdapter(cfg)
