"""Turn a generated answer back into structured citations.

Why (SAM): Parsing is a pure function of the answer text, so it sits in the
domain with no I/O. It never raises for malformed input: the worst case is a
citation whose title is the raw entry text.

Stages:
- marker scan:     every ``[n]`` in the text with its offsets
- section lookup:  a "References:"-style header line, else a run of
                   ``[n] Capitalized ...`` entry lines
- segmentation:    one CitationEntry per ``[n]`` line in the section, or an
                   inline capture after each marker when no section exists
- field parsing:   ordered strategies, first success wins; DOI and URL are
                   attached independently of the structural match
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Protocol

from medcite.domain.models import (
    CitationEntry,
    CitationExtraction,
    CitationMarker,
    ExtractedCitation,
    ParsedCitation,
    PersistedCitation,
)

UNKNOWN_SOURCE = "Unknown source"
MIN_ENTRY_LENGTH = 4

_MARKER = re.compile(r"\[(\d+)\]")
_HEADER_LINE = re.compile(
    r"^[ \t>#*_]*(?:references?|citations?|sources?|bibliography)[ \t]*[*_]*:?[*_]*[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_ENTRY_LINE = re.compile(r"^[ \t]*\[\d+\][ \t]+[A-Z]", re.MULTILINE)
_ENTRY_SPLIT = re.compile(r"\n+(?=[ \t]*\[\d+\])")
_ENTRY_PREFIX = re.compile(r"^\[(\d+)\]\s*")

_DOI = re.compile(r"(?:doi:?\s*|doi\.org/)?(10\.\d{4,9}/[^\s,;\]\)]+)", re.IGNORECASE)
_URL = re.compile(r"https?://[^\s,\]\)>]+", re.IGNORECASE)
_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")

_STANDARD = re.compile(
    r"^(?!.*[\"“”])"
    r"(?P<authors>.+?)\s*[,.]\s+"
    r"(?P<title>[^,.]+?)\s*[,.]\s+"
    r"(?:(?:in|published in)\s+)?"
    r"(?P<journal>[^,.]+?)\s*[,.]?\s*"
    r"\(?(?P<year>(?:19|20)\d{2})\)?(?!\d)",
    re.IGNORECASE,
)
_ABBREVIATED = re.compile(
    r"^(?P<authors>[^\"“”]+?)\s*[,.]\s*[\"“](?P<title>[^\"“”]+?)[,.]?[\"”]\s*[,.]?\s*"
    r"(?P<journal>[A-Z][A-Za-z.]*(?:\s+[A-Z][A-Za-z.]*)*?)\s*[,.]?\s*"
    r"\(?(?P<year>(?:19|20)\d{2})\)?(?!\d)"
)
_TITLE_FIRST = re.compile(
    r"^[\"“](?P<title>[^\"“”]+?)[,.]?[\"”]\s*[,.]?\s*"
    r"(?P<authors>[^,]+?(?:,\s*[^,\s][^,]*?)*?)\s*,\s*"
    r"(?P<journal>[^,]+?)\s*[,.]?\s*"
    r"\(?(?P<year>(?:19|20)\d{2})\)?(?!\d)"
)
_PART_SPLIT = re.compile(r"[,.]\s+")


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip().strip(",;:").strip()
    return text or None


class CitationFormat(Protocol):
    name: str

    def try_parse(self, entry: str) -> ParsedCitation | None: ...


class _RegexFormat:
    name = "regex"
    pattern: re.Pattern[str]

    def try_parse(self, entry: str) -> ParsedCitation | None:
        match = self.pattern.match(entry)
        if match is None:
            return None
        title = _strip(match.group("title"))
        if not title:
            return None
        return ParsedCitation(
            title=title,
            authors=_strip(match.group("authors")),
            journal=_strip(match.group("journal")),
            year=match.group("year"),
        )


class StandardFormat(_RegexFormat):
    """``Authors, Title, Journal (Year)``; commas or periods as separators."""

    name = "standard"
    pattern = _STANDARD


class AbbreviatedFormat(_RegexFormat):
    """``Authors. "Title." J. Abbr. (Year)``"""

    name = "abbreviated"
    pattern = _ABBREVIATED


class TitleFirstFormat(_RegexFormat):
    """``"Title." Authors, Journal (Year)``"""

    name = "title_first"
    pattern = _TITLE_FIRST


class FallbackSplit:
    """Split on commas/periods; authors, title, then scan later parts for a year."""

    name = "fallback_split"

    def try_parse(self, entry: str) -> ParsedCitation | None:
        parts = [p.strip() for p in _PART_SPLIT.split(entry) if p.strip()]
        if len(parts) < 3:
            return None

        journal: str | None = None
        year: str | None = None
        for part in parts[2:]:
            if _DOI.search(part) or _URL.search(part) or part.lower().startswith("doi"):
                continue
            year_match = _YEAR.search(part)
            if year_match:
                year = year or year_match.group(0)
                leftover = part.replace(year_match.group(0), "").strip(" ().,;:")
                if journal is None and any(ch.isalpha() for ch in leftover):
                    journal = leftover
            elif journal is None:
                journal = part.rstrip(".")

        return ParsedCitation(
            title=parts[1].rstrip("."),
            authors=parts[0],
            journal=journal or None,
            year=year,
        )


DEFAULT_FORMATS: tuple[CitationFormat, ...] = (
    StandardFormat(),
    AbbreviatedFormat(),
    TitleFirstFormat(),
    FallbackSplit(),
)


def _find_doi(entry: str) -> str | None:
    match = _DOI.search(entry)
    return match.group(1).rstrip(".") if match else None


def _find_url(entry: str) -> str | None:
    match = _URL.search(entry)
    return match.group(0).rstrip(".") if match else None


def scan_markers(text: str) -> dict[int, list[int]]:
    """Offsets of every ``[n]`` occurrence, grouped by n."""
    positions: dict[int, list[int]] = {}
    for match in _MARKER.finditer(text):
        positions.setdefault(int(match.group(1)), []).append(match.start())
    return positions


def find_reference_section(text: str) -> int | None:
    """Start offset of the trailing reference section, or None."""
    headers = list(_HEADER_LINE.finditer(text))
    if headers:
        return headers[-1].start()

    first_entry = _ENTRY_LINE.search(text)
    if first_entry is None:
        return None
    paragraph = text.rfind("\n\n", 0, first_entry.start())
    return paragraph + 2 if paragraph != -1 else first_entry.start()


def segment_entries(section: str) -> list[CitationEntry]:
    entries: list[CitationEntry] = []
    seen: set[int] = set()
    for fragment in _ENTRY_SPLIT.split(section):
        fragment = fragment.strip()
        match = _ENTRY_PREFIX.match(fragment)
        if match is None or len(fragment) <= MIN_ENTRY_LENGTH:
            continue
        number = int(match.group(1))
        body = " ".join(fragment[match.end() :].split())
        if not body or number in seen:
            continue
        seen.add(number)
        entries.append(CitationEntry(reference_number=number, text=body))
    return entries


def inline_entries(text: str, reference_numbers: Iterable[int]) -> list[CitationEntry]:
    """Best effort: the text after the first ``[n]`` up to the next marker or the end."""
    entries: list[CitationEntry] = []
    for number in sorted(set(reference_numbers)):
        pattern = re.compile(rf"\[{number}\]\s*([^\[\]]+?)(?=\s*\[\d+\]|\s*\Z)")
        match = pattern.search(text)
        if match is None:
            continue
        captured = " ".join(match.group(1).split()).lstrip(".,;: ")
        if any(ch.isalnum() for ch in captured):
            entries.append(CitationEntry(reference_number=number, text=captured))
    return entries


class CitationParser:
    """Extracts ``[n]`` citations from generated text; pure and idempotent."""

    def __init__(self, formats: Sequence[CitationFormat] | None = None) -> None:
        self.formats = tuple(formats) if formats is not None else DEFAULT_FORMATS

    def markers(self, text: str) -> list[CitationMarker]:
        if not isinstance(text, str):
            return []
        return [
            CitationMarker(reference_number=n, positions=tuple(offsets))
            for n, offsets in sorted(scan_markers(text).items())
        ]

    def parse_entry(self, entry: str) -> ParsedCitation:
        normalized = " ".join(entry.split()) if isinstance(entry, str) else ""
        if not normalized:
            return ParsedCitation(title=UNKNOWN_SOURCE)

        parsed = next(
            (p for p in (fmt.try_parse(normalized) for fmt in self.formats) if p is not None),
            ParsedCitation(title=normalized),
        )
        return replace(parsed, doi=_find_doi(normalized), url=_find_url(normalized))

    def extract(self, text: str) -> CitationExtraction:
        """Markers, parsed entries and the answer text without its reference section.

        Non-text input yields an empty extraction with ``clean_text=""``.
        """
        if not isinstance(text, str):
            return CitationExtraction(clean_text="")
        positions = {m.reference_number: m.positions for m in self.markers(text)}
        if not positions:
            return CitationExtraction(clean_text=text)

        section_start = find_reference_section(text)
        if section_start is not None:
            entries = segment_entries(text[section_start:])
            clean_text = text[:section_start].strip()
        else:
            entries = inline_entries(text, positions)
            clean_text = text

        citations = [
            ExtractedCitation(
                reference_number=entry.reference_number,
                citation=self.parse_entry(entry.text),
                positions=positions.get(entry.reference_number, ()),
                raw_text=entry.text,
            )
            for entry in entries
        ]
        citations.sort(key=lambda c: c.reference_number)
        return CitationExtraction(clean_text=clean_text, citations=tuple(citations))


def format_citation_text(citation: ParsedCitation | PersistedCitation) -> str:
    """Authors. "Title". Journal. Year. doi: ... (URL only when there is no DOI)."""
    parts: list[str] = []
    if citation.authors:
        parts.append(citation.authors)
    if citation.title:
        parts.append(f'"{citation.title}"')
    if citation.journal:
        parts.append(citation.journal)
    if citation.year:
        parts.append(citation.year)
    if citation.doi:
        parts.append(f"doi: {citation.doi}")
    elif citation.url:
        parts.append(f"URL: {citation.url}")
    if not parts:
        return "Unknown citation"
    return ". ".join(parts)


def format_doi_link(doi: str | None) -> str | None:
    if not doi:
        return None
    cleaned = re.sub(r"^doi:", "", doi.strip(), flags=re.IGNORECASE).strip()
    return f"https://doi.org/{cleaned}"


def clean_citation_text(text: str | None) -> str:
    """Normalize whitespace, quotes, dashes and punctuation spacing."""
    if not text:
        return ""
    cleaned = re.sub(r"\s+", " ", text)
    cleaned = re.sub(r"[“”]", '"', cleaned)
    cleaned = re.sub(r"[–—]", "-", cleaned)
    cleaned = re.sub(r"\.{2,}", ".", cleaned)
    cleaned = re.sub(r"([.,;:])(?=[^\s\d])", r"\1 ", cleaned)
    return cleaned.strip()
