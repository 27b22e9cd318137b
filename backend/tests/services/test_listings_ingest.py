import pytest
from sqlalchemy import select

from backend.app.db import models
from backend.app.db.session import session_scope
from backend.app.services import ingest
from backend.app.services.carquery_client import TrimSpec
from backend.app.services.ebay_client import ListingPage, RawListing
from backend.app.services.listings_ingest import ListingsIngestor, compute_price_stats
from backend.app.services.provider_client import ProviderAuthError, ProviderError
from backend.app.services.stats import IngestStats


def _raw(item_id, title, price, currency="USD", url="https://www.ebay.com/itm/{id}"):
    return RawListing(
        item_id=item_id,
        title=title,
        price_value=price,
        currency=currency,
        url=url.format(id=item_id) if url else None,
        image_url=None,
        city="Denver",
        state="CO",
        created_at="2026-10-02T08:30:00Z",
        end_date=None,
    )


class FakeEbay:
    def __init__(self, pages=None, token_error=None):
        self.pages = pages or {}
        self.token_error = token_error
        self.queries = []
        self.closed = False

    async def get_token(self):
        if self.token_error:
            raise self.token_error
        return "token"

    async def search(self, query, token, limit=50, offset=0):
        self.queries.append(query)
        result = self.pages.get(query)
        if isinstance(result, Exception):
            raise result
        return ListingPage(items=list(result or []), total=len(result or []), limit=limit, offset=offset)

    async def aclose(self):
        self.closed = True


def _seed_catalog():
    toyota = ingest.upsert_make("Toyota")
    bmw = ingest.upsert_make("BMW")
    supra = ingest.upsert_trim(
        ingest.upsert_model(toyota, "GR Supra"),
        TrimSpec(2021, "3.0 Premium", "Coupe", "6 cyl Gasoline", 335, 369, None, None, None),
    ).trim_id
    m2 = ingest.upsert_trim(
        ingest.upsert_model(bmw, "M2"),
        TrimSpec(2020, "Competition", "Coupe", "6 cyl Gasoline", 400, 406, None, None, None),
    ).trim_id
    return supra, m2


def _listings():
    with session_scope() as session:
        rows = session.execute(select(models.Listing).order_by(models.Listing.id)).scalars().all()
        return {row.id: (row.trim_id, row.confidence, row.price) for row in rows}


@pytest.mark.asyncio
async def test_listings_run_links_matching_listings():
    supra, m2 = _seed_catalog()
    ebay = FakeEbay(
        {
            "2020 2021 2022 Toyota GR Supra": [
                _raw("1", "2021 Toyota GR Supra 3.0 Premium Coupe", 52000),
                _raw("2", "Toyota Supra parts lot", 900),
            ],
            "2019 2020 2021 BMW M2": [_raw("3", "2020 BMW M2 Competition Coupe 6-Speed Manual", 41000, currency="CAD")],
        }
    )
    stats = IngestStats()

    price_stats = await ListingsIngestor(ebay, trim_limit=10).run(stats)

    stored = _listings()
    assert stored["ebay:1"][0] == supra
    assert stored["ebay:1"][1] >= 0.85
    assert stored["ebay:2"] == (None, 0.0, 900)
    assert stored["ebay:3"][0] == m2
    assert stored["ebay:3"][2] == 30750
    assert stats.listings_fetched == 3
    assert stats.listings_linked == 2
    assert stats.listings_unlinked == 1
    assert stats.errors == []
    # Most recent trim is searched first.
    assert ebay.queries[0] == "2020 2021 2022 Toyota GR Supra"
    assert len(ebay.queries) == 6
    assert {entry.trim_id for entry in price_stats} == {supra, m2}


@pytest.mark.asyncio
async def test_listings_run_is_idempotent():
    _seed_catalog()
    pages = {"2020 2021 2022 Toyota GR Supra": [_raw("1", "2021 Toyota GR Supra 3.0 Premium Coupe", 52000)]}
    for _ in range(2):
        await ListingsIngestor(FakeEbay(pages)).run(IngestStats())
    assert len(_listings()) == 1


@pytest.mark.asyncio
async def test_token_failure_aborts_run():
    _seed_catalog()
    ebay = FakeEbay(token_error=ProviderAuthError("no credentials", provider="ebay"))
    stats = IngestStats()
    with pytest.raises(ProviderAuthError):
        await ListingsIngestor(ebay).run(stats)
    assert ebay.queries == []
    assert stats.listings_fetched == 0


@pytest.mark.asyncio
async def test_query_and_listing_failures_are_recorded():
    _seed_catalog()
    ebay = FakeEbay(
        {
            "2020 2021 2022 Toyota GR Supra": ProviderError("ebay 500", provider="ebay"),
            "2020 2021 2022 Toyota GR Supra 3.0 Premium": [
                _raw("9", "2021 Toyota GR Supra 3.0 Premium", None),
                _raw("10", "2021 Toyota GR Supra 3.0 Premium", 55000),
            ],
        }
    )
    stats = IngestStats()

    await ListingsIngestor(ebay, trim_limit=1).run(stats)

    assert list(_listings()) == ["ebay:10"]
    assert stats.listings_fetched == 2
    assert stats.listings_linked == 1
    assert len(stats.errors) == 2
    assert "ebay 500" in stats.errors[0]
    assert "Listing 9" not in stats.errors[0]
    assert "9" in stats.errors[1]


def test_compute_price_stats_uses_true_median():
    rows = [(1, 30000), (1, 50000), (1, 40000), (1, 60000), (2, 12000), (2, 0)]
    result = {entry.trim_id: entry for entry in compute_price_stats(rows)}
    assert result[1].listings == 4
    assert result[1].min_price == 30000
    assert result[1].max_price == 60000
    assert result[1].median_price == 45000.0
    assert result[2].listings == 1
    assert compute_price_stats([]) == []


@pytest.mark.asyncio
async def test_aclose_closes_marketplace_client():
    ebay = FakeEbay()
    await ListingsIngestor(ebay).aclose()
    assert ebay.closed is True
