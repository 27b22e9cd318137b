"""Weighted confidence scoring of parsed listings against catalog trims."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from backend.app.parsers.listing_title import ParsedListing
from backend.app.parsers.units import normalize_name

MATCH_THRESHOLD = 0.7

WEIGHTS = {
    "year": 0.30,
    "make": 0.20,
    "model": 0.20,
    "trim": 0.15,
    "body": 0.10,
    "engine": 0.05,
}


@dataclass(frozen=True)
class CandidateTrim:
    id: int
    year: int
    name: str
    body: Optional[str]
    engine: Optional[str]
    model_name: str
    make_name: str


@dataclass
class TrimMatch:
    trim_id: int
    confidence: float
    reasons: List[str] = field(default_factory=list)


def _contains(haystack: Optional[str], needle: Optional[str]) -> bool:
    if not haystack or not needle:
        return False
    normalized_needle = normalize_name(needle)
    return bool(normalized_needle) and normalized_needle in normalize_name(haystack)


def score(parsed: ParsedListing, trim: CandidateTrim) -> TrimMatch:
    confidence = 0.0
    reasons: List[str] = []

    if parsed.year is not None:
        if abs(parsed.year - trim.year) <= 1:
            confidence += WEIGHTS["year"]
            reasons.append(f"Year match: {parsed.year} vs {trim.year}")
        else:
            reasons.append(f"Year mismatch: {parsed.year} vs {trim.year}")

    if parsed.make:
        if _contains(trim.make_name, parsed.make):
            confidence += WEIGHTS["make"]
            reasons.append(f"Make match: {parsed.make}")
        else:
            reasons.append(f"Make mismatch: {parsed.make} vs {trim.make_name}")

    if parsed.model:
        if _contains(trim.model_name, parsed.model):
            confidence += WEIGHTS["model"]
            reasons.append(f"Model match: {parsed.model}")
        else:
            reasons.append(f"Model mismatch: {parsed.model} vs {trim.model_name}")

    if _contains(trim.name, parsed.trim):
        confidence += WEIGHTS["trim"]
        reasons.append(f"Trim match: {parsed.trim}")

    if _contains(trim.body, parsed.body):
        confidence += WEIGHTS["body"]
        reasons.append(f"Body match: {parsed.body}")

    if _contains(trim.engine, parsed.engine):
        confidence += WEIGHTS["engine"]
        reasons.append(f"Engine match: {parsed.engine}")

    # Rounded so that summed weights land on exact boundaries (0.3 + 0.2 + 0.2 == 0.7).
    confidence = round(min(max(confidence, 0.0), 1.0), 4)
    return TrimMatch(trim_id=trim.id, confidence=confidence, reasons=reasons)


def rank_candidates(parsed: ParsedListing, candidates: Iterable[CandidateTrim]) -> List[TrimMatch]:
    """All candidates scored, best first; equal confidence falls back to the lowest trim id."""
    matches = [score(parsed, trim) for trim in candidates]
    matches.sort(key=lambda match: (-match.confidence, match.trim_id))
    return matches


def find_best_match(
    parsed: ParsedListing,
    candidates: Iterable[CandidateTrim],
    threshold: float = MATCH_THRESHOLD,
) -> Optional[TrimMatch]:
    ranked = rank_candidates(parsed, candidates)
    if not ranked:
        return None
    best = ranked[0]
    return best if best.confidence >= threshold else None
