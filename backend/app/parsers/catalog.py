from __future__ import annotations

from typing import Optional, Sequence

from backend.app.parsers.units import contains_phrase, normalize_name
from backend.app.parsers.vocabulary import VOCABULARY

HERO_MAKES = VOCABULARY.hero_makes


def is_sporty_model(model_name: Optional[str], keywords: Sequence[str] = VOCABULARY.sporty_keywords) -> bool:
    """Heuristic sports-car filter over taxonomy model names."""
    normalized = normalize_name(model_name)
    return any(contains_phrase(normalized, keyword) for keyword in keywords)

