"""Application settings with environment-driven configuration.

Why: Single place that reads the environment; every other layer receives
     settings via dependency injection.
"""

import os
from dataclasses import dataclass, field


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from environment variables.

    This is the ONLY place where environment variables are read.
    """

    # ===== Vector Store Configuration =====
    vector_backend: str = field(
        default_factory=lambda: os.getenv("VECTOR_BACKEND", "qdrant").lower()
    )
    # Supported: "qdrant" | "chroma"

    qdrant_url: str = field(
        default_factory=lambda: os.getenv("QDRANT_URL", "http://localhost:6333")
    )
    qdrant_api_key: str = field(default_factory=lambda: os.getenv("QDRANT_API_KEY", ""))
    chroma_dir: str = field(
        default_factory=lambda: os.getenv("CHROMA_DIR", "var/chroma/medical_passages")
    )
    collection: str = field(
        default_factory=lambda: os.getenv("VECTOR_COLLECTION", "medical_passages")
    )

    # ===== Embedding Configuration =====
    embedding_backend: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_BACKEND", "openai").lower()
    )
    # Supported: "openai" | "sentence-transformers"

    embedding_model: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    )
    embedding_dim: int = field(default_factory=lambda: int(os.getenv("EMBEDDING_DIM", "1536")))
    # Must match the collection; 0 disables the dimension check

    embedding_device: str = field(default_factory=lambda: os.getenv("EMBEDDING_DEVICE", "cpu"))

    # ===== LLM Configuration =====
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    llm_base_url: str = field(default_factory=lambda: os.getenv("LLM_BASE_URL", ""))
    # Empty = api.openai.com; set for OpenAI-compatible servers (vLLM, ...)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))

    # ===== Retrieval / Prompt Configuration =====
    rag_threshold: float = field(
        default_factory=lambda: float(os.getenv("RAG_THRESHOLD", "0.7"))
    )
    rag_limit: int = field(default_factory=lambda: int(os.getenv("RAG_LIMIT", "5")))
    rag_use_terms: bool = field(default_factory=lambda: _flag("RAG_USE_TERMS", "false"))
    max_prompt_length: int = field(
        default_factory=lambda: int(os.getenv("MAX_PROMPT_LENGTH", "4000"))
    )

    # ===== Citation Store Configuration =====
    citation_store_backend: str = field(
        default_factory=lambda: os.getenv("CITATION_STORE_BACKEND", "memory").lower()
    )
    # Supported: "memory" | "redis"

    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    redis_host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    redis_port: int = field(default_factory=lambda: int(os.getenv("REDIS_PORT", "6379")))
    redis_db: int = field(default_factory=lambda: int(os.getenv("REDIS_DB", "0")))
    redis_password: str = field(default_factory=lambda: os.getenv("REDIS_PASSWORD", ""))

    # ===== Logging =====
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # ===== Telemetry Configuration =====
    telemetry_enabled: bool = field(default_factory=lambda: _flag("TELEMETRY_ENABLED", "false"))
    otlp_endpoint: str = field(default_factory=lambda: os.getenv("OTLP_ENDPOINT", ""))
    telemetry_environment: str = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENVIRONMENT", "production")
    )
