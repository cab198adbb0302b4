"""Tests for citation persistence use cases."""

import logging
from datetime import UTC, datetime

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.use_cases.save_citations import ExtractAndSaveCitations, SaveCitations
from medcite.domain.errors import CitationConflictError, ValidationError
from medcite.domain.models import (
    ExtractedCitation,
    NewCitation,
    ParsedCitation,
    PersistedCitation,
)
from medcite.domain.services.citation_parsing import CitationParser

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeStore(CitationStorePort):
    def __init__(self) -> None:
        self.rows: dict[tuple[str, int], PersistedCitation] = {}
        self.inserts: list[NewCitation] = []
        self.fail_on: set[int] = set()

    def find_by_message_and_reference(self, message_id, reference_number):  # type: ignore[no-untyped-def]
        return self.rows.get((message_id, reference_number))

    def insert(self, record: NewCitation) -> PersistedCitation:
        self.inserts.append(record)
        if record.reference_number in self.fail_on:
            raise RuntimeError("disk full")
        key = (record.message_id, record.reference_number)
        if key in self.rows:
            raise CitationConflictError(*key)
        row = PersistedCitation.from_new(f"id-{len(self.rows) + 1}", record, NOW, NOW)
        self.rows[key] = row
        return row

    def list_for_message(self, message_id: str) -> list[PersistedCitation]:
        return sorted(
            (r for (mid, _), r in self.rows.items() if mid == message_id),
            key=lambda r: r.reference_number,
        )


class RacingStore(FakeStore):
    """Another writer inserts the row between our lookup and our insert."""

    def insert(self, record: NewCitation) -> PersistedCitation:
        key = (record.message_id, record.reference_number)
        self.rows[key] = PersistedCitation.from_new("winner", record, NOW, NOW)
        raise CitationConflictError(*key)


def _citation(n: int, title: str = "Hypertension guidelines", **fields) -> ExtractedCitation:
    return ExtractedCitation(
        reference_number=n,
        citation=ParsedCitation(title=title, **fields),
        positions=(0,),
        raw_text=title,
    )


class TestSaveCitations:
    def test_rejects_empty_message_id(self):
        res = SaveCitations(FakeStore()).execute("  ", [_citation(1)])
        assert isinstance(res.error, ValidationError)

    def test_inserts_new_citations_with_metadata(self):
        store = FakeStore()
        res = SaveCitations(store).execute(
            "msg-1", [_citation(1, authors="Smith J", year="2023", doi="10.1000/x")]
        )
        assert res.ok
        (saved,) = res.value
        assert saved.title == "Hypertension guidelines"
        assert saved.authors == "Smith J"
        assert saved.doi == "10.1000/x"
        assert saved.journal is None
        assert dict(store.inserts[0].metadata) == {
            "authors": "Smith J",
            "year": "2023",
            "doi": "10.1000/x",
        }

    def test_second_run_reuses_existing_records(self):
        store = FakeStore()
        uc = SaveCitations(store)
        first = uc.execute("msg-1", [_citation(1), _citation(2, "Other")])
        second = uc.execute("msg-1", [_citation(1), _citation(2, "Other")])
        assert [c.id for c in second.value] == [c.id for c in first.value]
        assert len(store.inserts) == 2
        assert len(store.list_for_message("msg-1")) == 2

    def test_failed_citation_is_skipped_and_logged(self, caplog):
        store = FakeStore()
        store.fail_on = {2}
        with caplog.at_level(logging.WARNING):
            res = SaveCitations(store).execute("msg-1", [_citation(1), _citation(2), _citation(3)])
        assert res.ok
        assert [c.reference_number for c in res.value] == [1, 3]
        assert "skipping citation" in caplog.text
        assert "disk full" in caplog.text

    def test_conflict_reuses_the_concurrent_winner(self):
        res = SaveCitations(RacingStore()).execute("msg-1", [_citation(1)])
        assert res.ok
        assert [c.id for c in res.value] == ["winner"]

    def test_empty_batch(self):
        res = SaveCitations(FakeStore()).execute("msg-1", [])
        assert res.ok and res.value == []


class TestExtractAndSave:
    ANSWER = (
        "ACE inhibitors are first line [1]. Monitor potassium [2].\n\n"
        "References:\n"
        "[1] Smith J, ACE inhibitors in hypertension, Journal of Cardiology, 2023.\n"
        "[2] Lee K, Potassium monitoring, Kidney International, 2021."
    )

    def test_parses_and_persists(self):
        store = FakeStore()
        uc = ExtractAndSaveCitations(CitationParser(), SaveCitations(store))
        res = uc.execute("msg-9", self.ANSWER)
        assert res.ok
        assert [(c.reference_number, c.title) for c in res.value] == [
            (1, "ACE inhibitors in hypertension"),
            (2, "Potassium monitoring"),
        ]
        assert res.value[0].journal == "Journal of Cardiology"

    def test_text_without_markers_saves_nothing(self):
        store = FakeStore()
        res = ExtractAndSaveCitations(CitationParser(), SaveCitations(store)).execute(
            "msg-9", "No sources here."
        )
        assert res.ok and res.value == []
        assert store.inserts == []

    def test_rejects_empty_message_id(self):
        res = ExtractAndSaveCitations(CitationParser(), SaveCitations(FakeStore())).execute(
            "", self.ANSWER
        )
        assert isinstance(res.error, ValidationError)
