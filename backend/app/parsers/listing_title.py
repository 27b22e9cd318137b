"""Structured attribute extraction from free-text marketplace listing titles."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from backend.app.parsers.units import contains_phrase, normalize_name
from backend.app.parsers.vocabulary import VOCABULARY

YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")

ENGINE_PATTERNS = (
    re.compile(r"\b\d+(?:\.\d+)?\s*l\b", re.IGNORECASE),
    re.compile(r"\b\d+\s*cyl\b", re.IGNORECASE),
    re.compile(r"\b[vihw]\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\bturbo\b", re.IGNORECASE),
    re.compile(r"\bsupercharged\b", re.IGNORECASE),
    re.compile(r"\bhybrid\b", re.IGNORECASE),
    re.compile(r"\belectric\b", re.IGNORECASE),
)

TRANSMISSION_ORDER = ("manual", "automatic")
BODY_ORDER = ("coupe", "convertible", "sedan", "hatchback")


@dataclass(frozen=True)
class ParsedListing:
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    engine: Optional[str] = None
    transmission: Optional[str] = None
    body: Optional[str] = None


def _first_phrase(normalized: str, vocabulary: Sequence[str]) -> Optional[str]:
    for phrase in vocabulary:
        if contains_phrase(normalized, phrase):
            return phrase
    return None


def extract_year(title: str) -> Optional[int]:
    match = YEAR_RE.search(title or "")
    return int(match.group(0)) if match else None


def extract_engine(title: str) -> Optional[str]:
    for pattern in ENGINE_PATTERNS:
        match = pattern.search(title or "")
        if match:
            return normalize_name(match.group(0)) or None
    return None


def parse_title(title: Optional[str]) -> ParsedListing:
    """Pull year/make/model/trim/engine/transmission/body out of a title.

    Single pass, first match wins for every vocabulary; unmatched fields stay None.
    """
    raw = title or ""
    normalized = normalize_name(raw)
    return ParsedListing(
        year=extract_year(raw),
        make=_first_phrase(normalized, VOCABULARY.listing_makes),
        model=_first_phrase(normalized, VOCABULARY.listing_models),
        trim=_first_phrase(normalized, VOCABULARY.listing_trims),
        engine=extract_engine(raw),
        transmission=_first_phrase(normalized, TRANSMISSION_ORDER),
        body=_first_phrase(normalized, BODY_ORDER),
    )
