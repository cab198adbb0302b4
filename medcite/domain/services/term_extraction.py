# medcite/domain/services/term_extraction.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

import re

CLINICAL_VOCABULARY: tuple[str, ...] = (
    "hypertension",
    "diabetes",
    "asthma",
    "copd",
    "cancer",
    "heart failure",
    "stroke",
    "arrhythmia",
    "pneumonia",
    "arthritis",
    "depression",
    "anxiety",
    "eczema",
    "hepatitis",
    "cirrhosis",
    "crohn",
    "colitis",
    "anemia",
    "hypothyroidism",
    "hyperthyroidism",
    "seizure",
    "epilepsy",
    "parkinson",
    "alzheimer",
    "migraine",
    "osteoporosis",
    "glaucoma",
    "cataract",
)

# Order matters only for readability; results are a set.
_MEASUREMENT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d+\s*mm?Hg"),  # blood pressure
    re.compile(r"\d+\.\d+\s*mg/d[lL]"),  # lab values with units
    re.compile(r"\d+\s*mg"),  # medication doses
    re.compile(r"\b[A-Z]{2,5}\b"),  # abbreviations
)

_INJECTION_PATTERN = re.compile(
    r"you are|you're an AI|ignore previous instructions|new instructions",
    re.IGNORECASE,
)
MAX_MESSAGE_LENGTH = 4000

_BULLET_TERM = re.compile(r"- ([^:\n]+?)(?=\n|$)")
_CAPITALIZED_WORD = re.compile(r"^[A-Z][a-z]+$")


def extract_terms(query: str | None) -> frozenset[str]:
    """Pull candidate clinical terms out of a free-text query.

    Vocabulary entries are matched case-insensitively and returned in their
    lowercase vocabulary form; measurement, dose and abbreviation tokens are
    returned as they appear in the query.

    Examples:
        >>> sorted(extract_terms("BP 150 mmHg with known hypertension"))
        ['150 mmHg', 'BP', 'hypertension']
        >>> extract_terms("")
        frozenset()
    """
    if not query or not isinstance(query, str):
        return frozenset()

    terms: set[str] = set()
    lowered = query.lower()
    for term in CLINICAL_VOCABULARY:
        if term in lowered:
            terms.add(term)

    for pattern in _MEASUREMENT_PATTERNS:
        for match in pattern.findall(query):
            token = match.strip()
            if token:
                terms.add(token)

    return frozenset(terms)


def sanitize_user_message(message: str | None, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Filter common prompt-injection phrases and bound the message length."""
    if not message:
        return ""
    sanitized = _INJECTION_PATTERN.sub("[filtered]", message).strip()
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [message truncated]"
    return sanitized


def extract_specialty_key_terms(specialty_text: str | None) -> list[str]:
    """Focus terms of a specialty text: bullet items and Capitalized words (> 3 chars)."""
    if not specialty_text:
        return []

    terms: list[str] = []
    for match in _BULLET_TERM.finditer(specialty_text):
        item = match.group(1).strip()
        if len(item) > 3:
            terms.append(item)

    for line in specialty_text.split("\n"):
        for word in line.split(" "):
            if len(word) > 3 and _CAPITALIZED_WORD.match(word):
                terms.append(word)

    # dict keeps first-seen order while dropping duplicates
    return list(dict.fromkeys(terms))


def is_specialty_relevant(query: str | None, specialty_text: str | None) -> bool:
    """True when any of the specialty's key terms occurs in the query."""
    if not query or not specialty_text:
        return False
    lowered = query.lower()
    return any(term.lower() in lowered for term in extract_specialty_key_terms(specialty_text))


def enhance_query_with_specialty_context(
    query: str, specialty_id: str | None, specialty_text: str | None
) -> str:
    """Append a specialty hint to the query unless it already speaks the specialty's terms."""
    if not specialty_id or not query.strip() or not specialty_text:
        return query
    if is_specialty_relevant(query, specialty_text):
        return query
    label = specialty_id.replace("_", " ")
    if not label.endswith("medicine"):
        label += " medicine"
    return f"{query}\n\nPlease consider this question in the context of {label}."
