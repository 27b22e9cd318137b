import pytest
from sqlalchemy import select

from backend.app.db import models
from backend.app.db.session import session_scope
from backend.app.services.carquery_client import parse_spec_trim
from backend.app.services.catalog_ingest import CatalogIngestor
from backend.app.services.fueleconomy_client import MpgFigures
from backend.app.services.provider_client import ProviderError
from backend.app.services.stats import IngestStats
from backend.app.services.vpic_client import RawTaxonomyModel


def _taxonomy(make, *names):
    return [RawTaxonomyModel(make_id=1, make_name=make.upper(), model_id=i, model_name=name) for i, name in enumerate(names)]


def _spec_record(make, model, trim, **overrides):
    item = {
        "model_year": "2021",
        "model_make_display": make,
        "model_name": model,
        "model_trim": trim,
        "model_body": "Coupe",
        "model_engine_cyl": "6",
        "model_engine_type": "Gasoline",
        "model_engine_power_ps": "340",
        "model_doors": "2",
        "model_seats": "2",
        "model_transmission_type": "Automatic",
    }
    item.update(overrides)
    return parse_spec_trim(item)


class FakeTaxonomy:
    def __init__(self, by_make):
        self.by_make = by_make
        self.closed = False

    async def fetch_models(self, make_name):
        result = self.by_make.get(make_name)
        if isinstance(result, Exception):
            raise result
        return result or []

    async def aclose(self):
        self.closed = True


class FakeSpecs:
    def __init__(self, by_model):
        self.by_model = by_model
        self.requested = []

    async def fetch_trims(self, make_name, model_name):
        self.requested.append((make_name, model_name))
        result = self.by_model.get((make_name, model_name))
        if isinstance(result, Exception):
            raise result
        return result or []

    async def aclose(self):
        return None


class FakeFuelEconomy:
    def __init__(self, figures=None, error=None):
        self.figures = figures
        self.error = error
        self.calls = []

    async def find_best_mpg(self, year, make, model, *, engine=None, transmission=None):
        self.calls.append((year, make, model))
        if self.error:
            raise self.error
        return self.figures

    async def aclose(self):
        return None


def _trims():
    with session_scope() as session:
        rows = session.execute(
            select(models.Make.name, models.Model.name, models.Trim.name, models.Trim.mpg_city)
            .join(models.Model, models.Model.make_id == models.Make.id)
            .join(models.Trim, models.Trim.model_id == models.Model.id)
            .order_by(models.Trim.id)
        ).all()
        return [tuple(row) for row in rows]


@pytest.mark.asyncio
async def test_catalog_run_builds_hierarchy_for_sporty_models():
    taxonomy = FakeTaxonomy({"Toyota": _taxonomy("Toyota", "Camry", "GR Supra", "GR Supra")})
    specs = FakeSpecs(
        {
            ("Toyota", "GR Supra"): [
                _spec_record("Toyota", "GR Supra", "3.0 Premium"),
                _spec_record("Toyota", "GR Supra", "Quad", model_body="Motorcycle"),
            ]
        }
    )
    fuel = FakeFuelEconomy(MpgFigures(city=22, highway=30))
    stats = IngestStats()

    await CatalogIngestor(taxonomy, specs, fuel, hero_makes=["Toyota"]).run(stats)

    assert specs.requested == [("Toyota", "GR Supra")]
    assert _trims() == [("Toyota", "GR Supra", "3.0 Premium", 22)]
    assert stats.makes_processed == 1
    assert stats.models_processed == 1
    assert stats.trims_processed == 1
    assert stats.mpg_enriched == 1
    assert stats.errors == []


@pytest.mark.asyncio
async def test_catalog_run_is_idempotent():
    taxonomy = FakeTaxonomy({"Porsche": _taxonomy("Porsche", "Cayman")})
    specs = FakeSpecs({("Porsche", "Cayman"): [_spec_record("Porsche", "Cayman", "S", model_lkm_city="9.8", model_lkm_hwy="7.8")]})
    fuel = FakeFuelEconomy(MpgFigures(city=1, highway=1))

    for _ in range(2):
        await CatalogIngestor(taxonomy, specs, fuel, hero_makes=["Porsche"]).run(IngestStats())

    assert _trims() == [("Porsche", "Cayman", "S", 24)]
    # MPG came from the spec provider, so no enrichment call was needed.
    assert fuel.calls == []


@pytest.mark.asyncio
async def test_catalog_failures_are_isolated_per_make_and_model():
    taxonomy = FakeTaxonomy(
        {
            "Audi": ProviderError("vpic down", provider="vpic"),
            "BMW": _taxonomy("BMW", "M2", "M3"),
        }
    )
    specs = FakeSpecs(
        {
            ("BMW", "M2"): ProviderError("carquery down", provider="carquery"),
            ("BMW", "M3"): [_spec_record("BMW", "M3", "Competition"), _spec_record("BMW", "M3", "CS", model_year=None)],
        }
    )
    stats = IngestStats()

    await CatalogIngestor(taxonomy, specs, FakeFuelEconomy(), hero_makes=["Audi", "BMW"]).run(stats)

    assert _trims() == [("BMW", "M3", "Competition", None)]
    assert stats.makes_processed == 2
    assert stats.models_processed == 2
    assert stats.trims_processed == 1
    assert len(stats.errors) == 3
    assert "Audi" in stats.errors[0]
    assert "M2" in stats.errors[1]
    assert "CS" in stats.errors[2]


@pytest.mark.asyncio
async def test_mpg_enrichment_failure_is_not_fatal():
    taxonomy = FakeTaxonomy({"Nissan": _taxonomy("Nissan", "370Z")})
    specs = FakeSpecs({("Nissan", "370Z"): [_spec_record("Nissan", "370Z", "Nismo")]})
    fuel = FakeFuelEconomy(error=ProviderError("fueleconomy down", provider="fueleconomy"))
    stats = IngestStats()

    await CatalogIngestor(taxonomy, specs, fuel, hero_makes=["Nissan"]).run(stats)

    assert _trims() == [("Nissan", "370Z", "Nismo", None)]
    assert stats.trims_processed == 1
    assert stats.mpg_enriched == 0
    assert stats.errors == []
    assert fuel.calls == [(2021, "Nissan", "370Z")]


@pytest.mark.asyncio
async def test_aclose_closes_every_client():
    taxonomy = FakeTaxonomy({})
    ingestor = CatalogIngestor(taxonomy, FakeSpecs({}), FakeFuelEconomy(), hero_makes=[])
    await ingestor.aclose()
    assert taxonomy.closed is True
