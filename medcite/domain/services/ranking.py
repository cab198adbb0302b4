# medcite/domain/services/ranking.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

import re
from collections.abc import Sequence

from medcite.domain.models import RankedPassage, RetrievedPassage

PHRASE_BOOST = 0.20
TERM_BOOST = 0.05
RECENCY_BOOST = 0.10
RECENCY_WINDOW_YEARS = 2
MIN_TERM_LENGTH = 3

_NON_WORD = re.compile(r"[^\w]")


def query_terms(query_text: str) -> list[str]:
    """Distinct lowercase query terms longer than MIN_TERM_LENGTH, punctuation stripped."""
    terms: list[str] = []
    for raw in query_text.lower().split():
        if len(raw) <= MIN_TERM_LENGTH:
            continue
        term = _NON_WORD.sub("", raw)
        if term and term not in terms:
            terms.append(term)
    return terms


def enhanced_score(passage: RetrievedPassage, query_text: str, current_year: int) -> float:
    """
    Similarity plus lexical/recency boosts, clamped to [0, 1].

    - +0.20 when the whole lowercase query occurs in the content
    - +0.05 per distinct query term (> 3 chars) found in the content
    - +0.10 when metadata.year is within the last two calendar years
    """
    content = passage.content.lower()
    lowered_query = query_text.lower()
    score = passage.similarity

    if lowered_query and lowered_query in content:
        score += PHRASE_BOOST

    for term in query_terms(query_text):
        if term in content:
            score += TERM_BOOST

    year = passage.metadata.year_as_int()
    if year is not None and year >= current_year - RECENCY_WINDOW_YEARS:
        score += RECENCY_BOOST

    return min(max(score, 0.0), 1.0)


def rank_passages(
    passages: Sequence[RetrievedPassage],
    query_text: str,
    current_year: int,
) -> list[RankedPassage]:
    """
    Re-score passages with lexical heuristics and order them.

    Ordering: enhanced score desc, then original similarity desc, then input
    position asc, so equal inputs always give the same order. The heuristic is
    monotonic in similarity: raising a passage's similarity never lowers it.
    """
    if not passages:
        return []

    scored = [
        (idx, RankedPassage(passage=p, enhanced_score=enhanced_score(p, query_text, current_year)))
        for idx, p in enumerate(passages)
    ]
    scored.sort(key=lambda pair: (-pair[1].enhanced_score, -pair[1].similarity, pair[0]))
    return [ranked for _, ranked in scored]


def merge_unique_by_id(*batches: Sequence[RetrievedPassage]) -> list[RetrievedPassage]:
    """Concatenate passage batches, keeping the first occurrence of each id."""
    seen: set[str] = set()
    merged: list[RetrievedPassage] = []
    for batch in batches:
        for passage in batch:
            if passage.id in seen:
                continue
            seen.add(passage.id)
            merged.append(passage)
    return merged
