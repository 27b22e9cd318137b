"""fueleconomy.gov adapter used to backfill MPG figures missing from CarQuery."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from backend.app.core.logging import get_logger
from backend.app.core.retry import retry_async
from backend.app.parsers.units import safe_number, safe_string
from backend.app.services.provider_client import AsyncTransport, ProviderClient, ProviderError

logger = get_logger(__name__)

FUELECONOMY_BASE_URL = "https://www.fueleconomy.gov/ws/rest/vehicle"
JSON_HEADERS = {"Accept": "application/json"}
CYLINDERS_RE = re.compile(r"(\d+)\s*cyl", re.IGNORECASE)


@dataclass(frozen=True)
class RawFuelEconomyVehicle:
    id: str
    make: Optional[str]
    model: Optional[str]
    year: Optional[int]
    fuel_type: Optional[str]
    city_mpg: Optional[int]
    highway_mpg: Optional[int]
    transmission: Optional[str]
    cylinders: Optional[int]
    turbo: bool
    supercharged: bool


@dataclass(frozen=True)
class MpgFigures:
    city: int
    highway: int


def _as_int(value: Any) -> Optional[int]:
    number = safe_number(value)
    return int(number) if number is not None else None


def parse_vehicle(vehicle_id: str, data: Dict[str, Any]) -> RawFuelEconomyVehicle:
    return RawFuelEconomyVehicle(
        id=str(data.get("id") or vehicle_id),
        make=safe_string(data.get("make")),
        model=safe_string(data.get("model")),
        year=_as_int(data.get("year")),
        fuel_type=safe_string(data.get("fuelType")) or safe_string(data.get("fuelType1")),
        city_mpg=_as_int(data.get("city08")),
        highway_mpg=_as_int(data.get("highway08")),
        transmission=safe_string(data.get("trany")),
        cylinders=_as_int(data.get("cylinders")),
        turbo=bool(safe_string(data.get("tCharger"))),
        supercharged=bool(safe_string(data.get("sCharger"))),
    )


def _menu_values(body: Any) -> List[str]:
    if not isinstance(body, dict):
        return []
    items = body.get("menuItem")
    # A single option comes back as a bare object rather than a one-element list.
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, list):
        return []
    return [str(item["value"]) for item in items if isinstance(item, dict) and item.get("value") is not None]


def score_vehicle(vehicle: RawFuelEconomyVehicle, engine: Optional[str], transmission: Optional[str]) -> int:
    score = 0
    if vehicle.fuel_type and "gasoline" in vehicle.fuel_type.lower():
        score += 10

    if engine:
        engine_lower = engine.lower()
        cyl_match = CYLINDERS_RE.search(engine_lower)
        if cyl_match and vehicle.cylinders == int(cyl_match.group(1)):
            score += 5
        if "turbo" in engine_lower and vehicle.turbo:
            score += 3
        if "supercharg" in engine_lower and vehicle.supercharged:
            score += 3

    if transmission and vehicle.transmission:
        wanted = transmission.lower()
        offered = vehicle.transmission.lower()
        for kind in ("manual", "auto"):
            if kind in wanted and kind in offered:
                score += 2
                break
    return score


class FuelEconomyClient(ProviderClient):
    name = "fueleconomy"
    default_interval = 0.3

    def __init__(
        self,
        *,
        base_url: str = FUELECONOMY_BASE_URL,
        transport: Optional[AsyncTransport] = None,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        max_candidates: int = 5,
        **kwargs: Any,
    ):
        super().__init__(base_url=base_url, transport=transport, **kwargs)
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.max_candidates = max(1, max_candidates)

    async def list_vehicle_ids(self, year: int, make: str, model: str) -> List[str]:
        body = await self._get_json(
            "/menu/options",
            params={"year": year, "make": make, "model": model},
            headers=JSON_HEADERS,
            allow_empty=True,
        )
        return _menu_values(body)

    async def get_vehicle(self, vehicle_id: str) -> Optional[RawFuelEconomyVehicle]:
        body = await self._get_json(f"/{vehicle_id}", headers=JSON_HEADERS, allow_empty=True)
        if not isinstance(body, dict):
            return None
        return parse_vehicle(vehicle_id, body)

    async def find_best_mpg(
        self,
        year: int,
        make: str,
        model: str,
        *,
        engine: Optional[str] = None,
        transmission: Optional[str] = None,
    ) -> Optional[MpgFigures]:
        """Best-effort MPG lookup, retried with exponential backoff on provider errors."""

        async def _lookup() -> Optional[MpgFigures]:
            return await self._lookup_mpg(year, make, model, engine, transmission)

        return await retry_async(
            _lookup,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            retry_on=(ProviderError,),
            description=f"fueleconomy lookup for {year} {make} {model}",
        )

    async def _lookup_mpg(
        self,
        year: int,
        make: str,
        model: str,
        engine: Optional[str],
        transmission: Optional[str],
    ) -> Optional[MpgFigures]:
        vehicle_ids = await self.list_vehicle_ids(year, make, model)
        if not vehicle_ids:
            logger.warning("No fuel economy data found for %s %s %s", year, make, model)
            return None

        best: Optional[RawFuelEconomyVehicle] = None
        best_score = -1
        for vehicle_id in vehicle_ids[: self.max_candidates]:
            try:
                vehicle = await self.get_vehicle(vehicle_id)
            except ProviderError as exc:
                logger.warning("Skipping fuel economy vehicle %s: %s", vehicle_id, exc)
                continue
            if vehicle is None or vehicle.city_mpg is None or vehicle.highway_mpg is None:
                continue
            score = score_vehicle(vehicle, engine, transmission)
            if score > best_score:
                best, best_score = vehicle, score

        if best is None:
            return None
        return MpgFigures(city=best.city_mpg, highway=best.highway_mpg)
