"""NHTSA vPIC taxonomy adapter: make name -> candidate model names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from backend.app.core.logging import get_logger
from backend.app.parsers.units import safe_number, safe_string
from backend.app.services.provider_client import AsyncTransport, ProviderClient

logger = get_logger(__name__)

VPIC_BASE_URL = "https://vpic.nhtsa.dot.gov/api/vehicles"


@dataclass(frozen=True)
class RawTaxonomyModel:
    make_id: Optional[int]
    make_name: str
    model_id: Optional[int]
    model_name: str


def parse_taxonomy_model(item: Dict[str, Any]) -> Optional[RawTaxonomyModel]:
    model_name = safe_string(item.get("Model_Name"))
    if not model_name:
        return None
    make_id = safe_number(item.get("Make_ID"))
    model_id = safe_number(item.get("Model_ID"))
    return RawTaxonomyModel(
        make_id=int(make_id) if make_id is not None else None,
        make_name=safe_string(item.get("Make_Name")) or "",
        model_id=int(model_id) if model_id is not None else None,
        model_name=model_name,
    )


class VpicClient(ProviderClient):
    name = "vpic"
    default_interval = 0.1

    def __init__(self, *, base_url: str = VPIC_BASE_URL, transport: Optional[AsyncTransport] = None, **kwargs: Any):
        super().__init__(base_url=base_url, transport=transport, **kwargs)

    async def fetch_models(self, make_name: str) -> List[RawTaxonomyModel]:
        body = await self._get_json(f"/getmodelsformake/{quote(make_name)}", params={"format": "json"})
        results = body.get("Results") if isinstance(body, dict) else None
        if not results:
            logger.warning("No models returned from vPIC for make %s", make_name)
            return []
        models: List[RawTaxonomyModel] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            parsed = parse_taxonomy_model(item)
            if parsed is not None:
                models.append(parsed)
        return models
