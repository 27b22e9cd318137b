from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from backend.app.parsers.units import normalize_name

VOCABULARY_PATH = Path(__file__).resolve().parents[3] / "data" / "vocabulary.yaml"


@dataclass(frozen=True)
class Vocabulary:
    hero_makes: Tuple[str, ...]
    sporty_keywords: Tuple[str, ...]
    valid_car_bodies: Tuple[str, ...]
    excluded_vehicle_keywords: Tuple[str, ...]
    listing_makes: Tuple[str, ...]
    listing_models: Tuple[str, ...]
    listing_trims: Tuple[str, ...]
    search_keywords: Tuple[str, ...]


def _normalized_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    entries: List[str] = []
    for raw in data.get(key) or []:
        value = normalize_name(str(raw))
        if value and value not in entries:
            entries.append(value)
    return tuple(entries)


def load_vocabulary(path: Path = VOCABULARY_PATH) -> Vocabulary:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return Vocabulary(
        # Hero makes keep their display spelling; they become Make.name rows.
        hero_makes=tuple(str(name).strip() for name in data.get("hero_makes") or [] if str(name).strip()),
        sporty_keywords=_normalized_list(data, "sporty_keywords"),
        valid_car_bodies=_normalized_list(data, "valid_car_bodies"),
        excluded_vehicle_keywords=_normalized_list(data, "excluded_vehicle_keywords"),
        listing_makes=_normalized_list(data, "listing_makes"),
        listing_models=_normalized_list(data, "listing_models"),
        listing_trims=_normalized_list(data, "listing_trims"),
        search_keywords=tuple(str(word).strip() for word in data.get("search_keywords") or [] if str(word).strip()),
    )


VOCABULARY = load_vocabulary()
