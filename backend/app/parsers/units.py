"""Unit conversions and text normalization for provider data.

Every helper here is total: bad or missing input yields ``None`` instead of an
exception, so callers can pipe raw provider fields straight through.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

PS_TO_HP = 0.9863
NM_TO_LB_FT = 0.7376
KPH_0_100_DIVISOR = 3.6
L_PER_100KM_MPG_FACTOR = 235.214

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def safe_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def safe_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def ps_to_hp(ps: Any) -> Optional[int]:
    number = safe_number(ps)
    if number is None:
        return None
    return _round_half_up(number * PS_TO_HP)


def nm_to_lb_ft(nm: Any) -> Optional[int]:
    number = safe_number(nm)
    if number is None:
        return None
    return _round_half_up(number * NM_TO_LB_FT)


def kph_to_60mph_seconds(kph_0_to_100: Any) -> Optional[float]:
    # 0-100 km/h is taken as a stand-in for 0-60 mph.
    number = safe_number(kph_0_to_100)
    if number is None:
        return None
    return number / KPH_0_100_DIVISOR


def l_per_100km_to_mpg(litres: Any) -> Optional[int]:
    number = safe_number(litres)
    if number is None or number <= 0:
        return None
    return _round_half_up(L_PER_100KM_MPG_FACTOR / number)


def normalize_name(text: Optional[str]) -> str:
    """Canonical key used for every containment check during matching."""
    if not text:
        return ""
    lowered = _NON_WORD_RE.sub("", str(text).lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def contains_phrase(haystack: str, phrase: str) -> bool:
    """Substring containment of an already-normalized phrase.

    Not word-bounded: "slk" matches "slk350" and "bike" matches "ebike".
    """
    if not haystack or not phrase:
        return False
    return phrase in haystack
