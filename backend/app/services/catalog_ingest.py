from __future__ import annotations

from typing import List, Optional, Sequence

from backend.app.core.logging import get_logger
from backend.app.parsers.catalog import HERO_MAKES, is_sporty_model
from backend.app.services import ingest
from backend.app.services.carquery_client import CarQueryClient, RawSpecTrim, is_valid_car_trim, map_spec_trim
from backend.app.services.fueleconomy_client import FuelEconomyClient
from backend.app.services.stats import IngestStats
from backend.app.services.vpic_client import VpicClient

logger = get_logger(__name__)


class CatalogIngestor:
    """Builds the make -> model -> trim hierarchy for the hero makes.

    Runs strictly in order, one provider call at a time. A failing make, model
    or trim is recorded on the stats and skipped; its siblings still run.
    """

    def __init__(
        self,
        taxonomy: Optional[VpicClient] = None,
        specs: Optional[CarQueryClient] = None,
        fuel_economy: Optional[FuelEconomyClient] = None,
        *,
        hero_makes: Optional[Sequence[str]] = None,
    ):
        self.taxonomy = taxonomy or VpicClient()
        self.specs = specs or CarQueryClient()
        self.fuel_economy = fuel_economy or FuelEconomyClient()
        self.hero_makes = list(hero_makes) if hero_makes is not None else list(HERO_MAKES)

    async def aclose(self) -> None:
        await self.taxonomy.aclose()
        await self.specs.aclose()
        await self.fuel_economy.aclose()

    async def run(self, stats: IngestStats) -> IngestStats:
        logger.info("Processing %d hero makes", len(self.hero_makes))
        for make_name in self.hero_makes:
            try:
                await self._process_make(make_name, stats)
            except Exception as exc:
                message = f"Failed to process make {make_name}: {exc}"
                logger.error(message)
                stats.record_error(message)
        logger.info(
            "Catalog ingestion complete: %d makes, %d models, %d trims, %d MPG enriched, %d errors",
            stats.makes_processed,
            stats.models_processed,
            stats.trims_processed,
            stats.mpg_enriched,
            len(stats.errors),
        )
        return stats

    async def _process_make(self, make_name: str, stats: IngestStats) -> None:
        make_id = ingest.upsert_make(make_name)
        stats.makes_processed += 1
        logger.info("Upserted make %s (id=%s)", make_name, make_id)

        taxonomy_models = await self.taxonomy.fetch_models(make_name)
        model_names: List[str] = []
        for candidate in taxonomy_models:
            if candidate.model_name not in model_names and is_sporty_model(candidate.model_name):
                model_names.append(candidate.model_name)
        logger.info("Found %d models for %s, %d pass the sports filter", len(taxonomy_models), make_name, len(model_names))

        for model_name in model_names:
            try:
                await self._process_model(make_id, make_name, model_name, stats)
            except Exception as exc:
                message = f"Failed to process model {make_name} {model_name}: {exc}"
                logger.error(message)
                stats.record_error(message)

    async def _process_model(self, make_id: int, make_name: str, model_name: str, stats: IngestStats) -> None:
        model_id = ingest.upsert_model(make_id, model_name)
        stats.models_processed += 1

        raw_trims = await self.specs.fetch_trims(make_name, model_name)
        valid_trims = [raw for raw in raw_trims if is_valid_car_trim(raw)]
        logger.info(
            "Found %d trims for %s %s, %d are valid cars", len(raw_trims), make_name, model_name, len(valid_trims)
        )

        for raw in valid_trims:
            try:
                await self._process_trim(model_id, make_name, model_name, raw, stats)
            except Exception as exc:
                message = f"Failed to process trim {make_name} {model_name} {raw.trim_name or ''}: {exc}".rstrip()
                logger.error(message)
                stats.record_error(message)

    async def _process_trim(
        self,
        model_id: int,
        make_name: str,
        model_name: str,
        raw: RawSpecTrim,
        stats: IngestStats,
    ) -> None:
        spec = map_spec_trim(raw)
        result = ingest.upsert_trim(model_id, spec)
        stats.trims_processed += 1
        logger.debug("Upserted trim %s %s %s %s (id=%s)", spec.year, make_name, model_name, spec.name, result.trim_id)

        if result.needs_mpg:
            await self._enrich_mpg(
                result.trim_id,
                spec.year,
                raw.make_display or make_name,
                raw.model_name or model_name,
                engine=spec.engine,
                transmission=raw.transmission_type,
                stats=stats,
            )

    async def _enrich_mpg(
        self,
        trim_id: int,
        year: int,
        make: str,
        model: str,
        *,
        engine: Optional[str],
        transmission: Optional[str],
        stats: IngestStats,
    ) -> None:
        try:
            figures = await self.fuel_economy.find_best_mpg(
                year,
                make,
                model,
                engine=engine,
                transmission=transmission,
            )
        except Exception as exc:
            # Enrichment is best-effort; the trim itself is already stored.
            logger.warning("Failed to enrich MPG for trim %s: %s", trim_id, exc)
            return
        if figures is None:
            return
        if ingest.fill_trim_mpg(trim_id, figures.city, figures.highway):
            stats.mpg_enriched += 1
            logger.info("Enriched MPG %s/%s for %s %s %s", figures.city, figures.highway, year, make, model)
