"""CarQuery trim/spec adapter plus the mapping of its records onto the Trim schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from backend.app.core.logging import get_logger
from backend.app.parsers.units import (
    contains_phrase,
    kph_to_60mph_seconds,
    l_per_100km_to_mpg,
    nm_to_lb_ft,
    normalize_name,
    ps_to_hp,
    safe_number,
    safe_string,
)
from backend.app.parsers.vocabulary import VOCABULARY
from backend.app.services.provider_client import AsyncTransport, ProviderClient

logger = get_logger(__name__)

CARQUERY_BASE_URL = "https://www.carqueryapi.com/api/0.3"
DEFAULT_TRIM_NAME = "Base"


@dataclass(frozen=True)
class RawSpecTrim:
    year: Optional[int]
    make_display: Optional[str]
    model_name: Optional[str]
    trim_name: Optional[str]
    body: Optional[str]
    engine_cyl: Optional[float]
    engine_type: Optional[str]
    power_ps: Optional[float]
    torque_nm: Optional[float]
    zero_to_100_kph: Optional[float]
    lkm_city: Optional[float]
    lkm_hwy: Optional[float]
    doors: Optional[float]
    seats: Optional[float]
    transmission_type: Optional[str]


@dataclass(frozen=True)
class TrimSpec:
    year: int
    name: str
    body: Optional[str]
    engine: Optional[str]
    horsepower: Optional[int]
    torque: Optional[int]
    zero_to_sixty: Optional[float]
    mpg_city: Optional[int]
    mpg_hwy: Optional[int]


def parse_spec_trim(item: Dict[str, Any]) -> RawSpecTrim:
    year = safe_number(item.get("model_year"))
    return RawSpecTrim(
        year=int(year) if year is not None else None,
        make_display=safe_string(item.get("model_make_display")) or safe_string(item.get("model_make_id")),
        model_name=safe_string(item.get("model_name")),
        trim_name=safe_string(item.get("model_trim")),
        body=safe_string(item.get("model_body")),
        engine_cyl=safe_number(item.get("model_engine_cyl")),
        engine_type=safe_string(item.get("model_engine_type")),
        power_ps=safe_number(item.get("model_engine_power_ps")),
        torque_nm=safe_number(item.get("model_engine_torque_nm")),
        zero_to_100_kph=safe_number(item.get("model_0_to_100_kph")),
        lkm_city=safe_number(item.get("model_lkm_city")),
        lkm_hwy=safe_number(item.get("model_lkm_hwy")),
        doors=safe_number(item.get("model_doors")),
        seats=safe_number(item.get("model_seats")),
        transmission_type=safe_string(item.get("model_transmission_type")),
    )


def is_valid_car_trim(raw: RawSpecTrim) -> bool:
    body = normalize_name(raw.body)
    if not body or body not in VOCABULARY.valid_car_bodies:
        return False

    searchable = " ".join(normalize_name(value) for value in (raw.model_name, raw.trim_name, raw.engine_type))
    if any(contains_phrase(searchable, keyword) for keyword in VOCABULARY.excluded_vehicle_keywords):
        return False

    doors = raw.doors or 0
    seats = raw.seats or 0
    return doors >= 2 or seats >= 2


def _present(value: Optional[float]) -> Optional[float]:
    # CarQuery reports unknown figures as 0 or blank.
    return value if value else None


def _engine_description(raw: RawSpecTrim) -> Optional[str]:
    if not raw.engine_type:
        return None
    if raw.engine_cyl:
        return f"{int(raw.engine_cyl)} cyl {raw.engine_type}"
    return raw.engine_type


def map_spec_trim(raw: RawSpecTrim) -> TrimSpec:
    if raw.year is None:
        raise ValueError(f"Spec record for {raw.make_display} {raw.model_name} has no model year")
    return TrimSpec(
        year=raw.year,
        name=raw.trim_name or DEFAULT_TRIM_NAME,
        body=raw.body,
        engine=_engine_description(raw),
        horsepower=ps_to_hp(_present(raw.power_ps)),
        torque=nm_to_lb_ft(_present(raw.torque_nm)),
        zero_to_sixty=kph_to_60mph_seconds(_present(raw.zero_to_100_kph)),
        mpg_city=l_per_100km_to_mpg(raw.lkm_city),
        mpg_hwy=l_per_100km_to_mpg(raw.lkm_hwy),
    )


class CarQueryClient(ProviderClient):
    name = "carquery"
    default_interval = 0.2

    def __init__(self, *, base_url: str = CARQUERY_BASE_URL, transport: Optional[AsyncTransport] = None, **kwargs: Any):
        super().__init__(base_url=base_url, transport=transport, **kwargs)

    async def fetch_trims(self, make_name: str, model_name: str) -> List[RawSpecTrim]:
        body = await self._get_json(
            "/",
            params={"cmd": "getTrims", "make": make_name, "model": model_name},
            headers={"Accept": "application/json", "User-Agent": "Mozilla/5.0 (compatible; SportsCarCatalog/1.0)"},
        )
        records = None
        if isinstance(body, dict):
            records = body.get("Trims") or body.get("Models")
        if not records:
            logger.warning("No trims found on CarQuery for %s %s", make_name, model_name)
            return []
        return [parse_spec_trim(item) for item in records if isinstance(item, dict)]
