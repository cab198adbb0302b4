"""Redis-backed citation store.

Why: Citations must survive restarts and be shared across API workers.
One hash per message (field = reference number, value = JSON record);
``HSETNX`` makes the insert atomic, so uniqueness of
(message_id, reference_number) is enforced by Redis itself.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from importlib import import_module
from typing import Any

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.ports.clock_port import ClockPort
from medcite.domain.errors import (
    CitationConflictError,
    CitationPersistenceError,
    CitationStoreError,
)
from medcite.domain.models import NewCitation, PersistedCitation


@dataclass
class RedisConfig:
    """Configuration for Redis connection."""

    url: str | None = None  # takes precedence over host/port when set
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str | None = None
    key_prefix: str = "medcite:citations:"


def _to_json(citation: PersistedCitation) -> str:
    data = asdict(citation)
    data["created_at"] = citation.created_at.isoformat()
    data["updated_at"] = citation.updated_at.isoformat()
    return json.dumps(data)


def _from_json(raw: str) -> PersistedCitation:
    data: dict[str, Any] = json.loads(raw)
    data["created_at"] = datetime.fromisoformat(data["created_at"])
    data["updated_at"] = datetime.fromisoformat(data["updated_at"])
    data["reference_number"] = int(data["reference_number"])
    return PersistedCitation(**data)


class RedisCitationStoreAdapter(CitationStorePort):
    def __init__(self, cfg: RedisConfig, clock: ClockPort, client: Any | None = None) -> None:
        """
        Args:
            cfg: connection parameters and key prefix
            clock: source of created_at/updated_at
            client: pre-built redis client (tests inject a fake here)

        Raises:
            CitationStoreError: if redis-py is not available or init fails
        """
        self._cfg = cfg
        self._clock = clock
        self._client = client if client is not None else self._init_client(cfg)

    @staticmethod
    def _init_client(cfg: RedisConfig) -> Any:
        try:
            redis = import_module("redis")
            if cfg.url:
                return redis.Redis.from_url(cfg.url, decode_responses=True)
            return redis.Redis(
                host=cfg.host,
                port=cfg.port,
                db=cfg.db,
                password=cfg.password,
                decode_responses=True,
            )
        except Exception as ex:  # noqa: BLE001
            raise CitationStoreError(f"Redis init failed: {ex}") from ex

    def _key(self, message_id: str) -> str:
        return f"{self._cfg.key_prefix}{message_id}"

    def find_by_message_and_reference(
        self, message_id: str, reference_number: int
    ) -> PersistedCitation | None:
        try:
            raw = self._client.hget(self._key(message_id), str(reference_number))
            return _from_json(raw) if raw else None
        except Exception as ex:  # noqa: BLE001
            raise CitationPersistenceError(
                message_id, reference_number, f"lookup failed: {ex}"
            ) from ex

    def insert(self, record: NewCitation) -> PersistedCitation:
        now = self._clock.now()
        persisted = PersistedCitation.from_new(str(uuid.uuid4()), record, now, now)
        try:
            created = self._client.hsetnx(
                self._key(record.message_id), str(record.reference_number), _to_json(persisted)
            )
        except Exception as ex:  # noqa: BLE001
            raise CitationPersistenceError(
                record.message_id, record.reference_number, f"insert failed: {ex}"
            ) from ex
        if not created:
            raise CitationConflictError(record.message_id, record.reference_number)
        return persisted

    def list_for_message(self, message_id: str) -> list[PersistedCitation]:
        try:
            raw_map = self._client.hgetall(self._key(message_id)) or {}
            citations = [_from_json(raw) for raw in raw_map.values()]
        except Exception as ex:  # noqa: BLE001
            raise CitationStoreError(f"listing citations of {message_id} failed: {ex}") from ex
        return sorted(citations, key=lambda c: c.reference_number)
