from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from backend.app.core.logging import get_logger
from backend.app.core.settings import settings
from backend.app.parsers.listing_title import parse_title
from backend.app.services import ingest
from backend.app.services.ebay_client import EbayClient, RawListing, generate_search_queries, map_listing
from backend.app.services.matcher import CandidateTrim, find_best_match
from backend.app.services.stats import IngestStats

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrimPriceStats:
    trim_id: int
    listings: int
    min_price: int
    median_price: float
    max_price: int


def compute_price_stats(rows: Iterable[Tuple[int, int]]) -> List[TrimPriceStats]:
    """Per-trim count/min/median/max over positive linked listing prices."""
    frame = pd.DataFrame(list(rows), columns=["trim_id", "price"])
    frame = frame[frame["price"] > 0]
    if frame.empty:
        return []
    grouped = frame.groupby("trim_id")["price"].agg(["count", "min", "median", "max"]).sort_index()
    return [
        TrimPriceStats(
            trim_id=int(trim_id),
            listings=int(row["count"]),
            min_price=int(row["min"]),
            median_price=float(row["median"]),
            max_price=int(row["max"]),
        )
        for trim_id, row in grouped.iterrows()
    ]


def _describe(trim: CandidateTrim) -> str:
    return f"{trim.make_name} {trim.model_name} {trim.year} {trim.name}"


class ListingsIngestor:
    """Pulls marketplace listings for catalog trims and links each to its best trim.

    The access token is a hard prerequisite: if it cannot be obtained the run
    raises. Everything after that is isolated per trim, per query and per
    listing.
    """

    def __init__(
        self,
        ebay: Optional[EbayClient] = None,
        *,
        trim_limit: Optional[int] = None,
        page_size: Optional[int] = None,
    ):
        self.ebay = ebay or EbayClient()
        self.trim_limit = trim_limit if trim_limit is not None else settings.listings_trim_limit
        self.page_size = page_size if page_size is not None else settings.listings_page_size

    async def aclose(self) -> None:
        await self.ebay.aclose()

    async def run(self, stats: IngestStats) -> List[TrimPriceStats]:
        token = await self.ebay.get_token()
        logger.info("Obtained marketplace access token")

        search_trims = ingest.select_search_trims(self.trim_limit)
        candidates = ingest.load_candidate_trims()
        logger.info("Searching listings for %d trims against %d candidates", len(search_trims), len(candidates))

        for trim in search_trims:
            try:
                await self._process_trim(trim, token, candidates, stats)
            except Exception as exc:
                message = f"Failed to process listings for {_describe(trim)}: {exc}"
                logger.error(message)
                stats.record_error(message)

        price_stats = compute_price_stats(ingest.linked_listing_prices())
        for entry in price_stats:
            logger.info(
                "Trim %s: %d listings, price range $%d - $%d, median $%.0f",
                entry.trim_id,
                entry.listings,
                entry.min_price,
                entry.max_price,
                entry.median_price,
            )
        logger.info(
            "Listings ingestion complete: %d fetched, %d linked, %d unlinked, %d errors",
            stats.listings_fetched,
            stats.listings_linked,
            stats.listings_unlinked,
            len(stats.errors),
        )
        return price_stats

    async def _process_trim(
        self,
        trim: CandidateTrim,
        token: str,
        candidates: List[CandidateTrim],
        stats: IngestStats,
    ) -> None:
        queries = generate_search_queries(trim.make_name, trim.model_name, trim.year, trim.name)
        logger.info("Searching for %s", _describe(trim))
        for query in queries:
            try:
                page = await self.ebay.search(query, token, limit=self.page_size, offset=0)
            except Exception as exc:
                message = f"Listing search failed for query '{query}': {exc}"
                logger.warning(message)
                stats.record_error(message)
                continue

            if not page.items:
                logger.info("No listings for query '%s'", query)
                continue

            stats.listings_fetched += len(page.items)
            for raw in page.items:
                try:
                    self._process_listing(raw, candidates, stats)
                except Exception as exc:
                    message = f"Failed to process listing {raw.item_id}: {exc}"
                    logger.warning(message)
                    stats.record_error(message)

    def _process_listing(self, raw: RawListing, candidates: List[CandidateTrim], stats: IngestStats) -> None:
        record = map_listing(raw)
        parsed = parse_title(record.title)
        match = find_best_match(parsed, candidates)
        ingest.upsert_listing(record, match)
        if match is not None:
            stats.listings_linked += 1
        else:
            stats.listings_unlinked += 1
