"""eBay Browse API adapter for used sports-car listings (Motors category)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from backend.app.core.logging import get_logger
from backend.app.core.settings import settings
from backend.app.parsers.units import safe_number, safe_string
from backend.app.parsers.vocabulary import VOCABULARY
from backend.app.services.provider_client import AsyncTransport, ProviderAuthError, ProviderClient

logger = get_logger(__name__)

EBAY_BASE_URL = "https://api.ebay.com"
EBAY_OAUTH_URL = "https://api.ebay.com/identity/v1/oauth2/token"
EBAY_SCOPE = "https://api.ebay.com/oauth/api_scope"
EBAY_MOTORS_CATEGORY = "6001"
# Used, Very Good, Excellent.
EBAY_CONDITION_FILTER = "conditionIds:{3000|4000|5000}"
LISTING_SOURCE = "ebay"
MAX_QUERIES_PER_TRIM = 3

# Fixed approximations, not a live FX feed.
USD_RATES = {
    "USD": 1.0,
    "CAD": 0.75,
    "EUR": 1.1,
    "GBP": 1.27,
}


@dataclass(frozen=True)
class RawListing:
    item_id: str
    title: str
    price_value: Optional[float]
    currency: Optional[str]
    url: Optional[str]
    image_url: Optional[str]
    city: Optional[str]
    state: Optional[str]
    created_at: Optional[str]
    end_date: Optional[str]


@dataclass
class ListingPage:
    items: List[RawListing] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


@dataclass(frozen=True)
class ListingRecord:
    id: str
    source: str
    title: str
    price: int
    url: str
    image: Optional[str]
    location: Optional[str]
    posted_at: Optional[datetime]


def parse_listing(item: Dict[str, Any]) -> Optional[RawListing]:
    item_id = safe_string(item.get("itemId"))
    if not item_id:
        return None
    price = item.get("price") if isinstance(item.get("price"), dict) else {}
    image = item.get("image") if isinstance(item.get("image"), dict) else {}
    location = item.get("itemLocation") if isinstance(item.get("itemLocation"), dict) else {}
    return RawListing(
        item_id=item_id,
        title=safe_string(item.get("title")) or "",
        price_value=safe_number(price.get("value")),
        currency=safe_string(price.get("currency")),
        url=safe_string(item.get("itemWebUrl")),
        image_url=safe_string(image.get("imageUrl")),
        city=safe_string(location.get("city")),
        state=safe_string(location.get("stateOrProvince")),
        created_at=safe_string(item.get("itemCreationDate")),
        end_date=safe_string(item.get("itemEndDate")),
    )


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_usd(amount: Optional[float], currency: Optional[str]) -> Optional[int]:
    if amount is None:
        return None
    code = (currency or "USD").upper()
    rate = USD_RATES.get(code)
    if rate is None:
        logger.debug("No fixed rate for currency %s; storing amount unconverted", code)
        rate = 1.0
    return int(math.floor(amount * rate + 0.5))


def map_listing(raw: RawListing) -> ListingRecord:
    price = to_usd(raw.price_value, raw.currency)
    if price is None:
        raise ValueError(f"Listing {raw.item_id} has no price")
    if not raw.url:
        raise ValueError(f"Listing {raw.item_id} has no URL")
    location_parts = [part for part in (raw.city, raw.state) if part]
    return ListingRecord(
        id=f"{LISTING_SOURCE}:{raw.item_id}",
        source=LISTING_SOURCE,
        title=raw.title,
        price=price,
        url=raw.url,
        image=raw.image_url,
        location=", ".join(location_parts) or None,
        posted_at=_parse_timestamp(raw.created_at) or _parse_timestamp(raw.end_date),
    )


def generate_search_queries(
    make: str,
    model: str,
    year: Optional[int] = None,
    trim: Optional[str] = None,
    keywords: Sequence[str] = VOCABULARY.search_keywords,
) -> List[str]:
    """Build at most three marketplace queries for one catalog trim."""
    queries: List[str] = []
    prefix = f"{year - 1} {year} {year + 1} " if year else ""
    queries.append(f"{prefix}{make} {model}")
    if trim and trim != "Base":
        queries.append(f"{prefix}{make} {model} {trim}")

    lead = f"{year} " if year else ""
    for keyword in keywords:
        queries.append(f"{lead}{make} {model} {keyword}")
    return queries[:MAX_QUERIES_PER_TRIM]


class EbayClient(ProviderClient):
    name = "ebay"
    default_interval = 0.5

    def __init__(
        self,
        *,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        base_url: str = EBAY_BASE_URL,
        oauth_url: str = EBAY_OAUTH_URL,
        transport: Optional[AsyncTransport] = None,
        **kwargs: Any,
    ):
        super().__init__(base_url=base_url, transport=transport, **kwargs)
        self.app_id = app_id or settings.ebay_app_id
        self.app_secret = app_secret or settings.ebay_app_secret
        self.oauth_url = oauth_url

    async def get_token(self) -> str:
        """Client-credentials token; fetched once per ingestion run, never cached."""
        if not self.app_id or not self.app_secret:
            raise ProviderAuthError("EBAY_APP_ID and EBAY_APP_SECRET must be set", provider=self.name)
        body = await self._request_json(
            "POST",
            self.oauth_url,
            data={"grant_type": "client_credentials", "scope": EBAY_SCOPE},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=(self.app_id, self.app_secret),
            error_cls=ProviderAuthError,
        )
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise ProviderAuthError("eBay token response did not include an access_token", provider=self.name)
        return token

    async def search(self, query: str, token: str, limit: int = 50, offset: int = 0) -> ListingPage:
        body = await self._get_json(
            "/buy/browse/v1/item_summary/search",
            params={
                "q": query,
                "category_ids": EBAY_MOTORS_CATEGORY,
                "limit": str(limit),
                "offset": str(offset),
                "sort": "price",
                "filter": EBAY_CONDITION_FILTER,
            },
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )
        if not isinstance(body, dict):
            return ListingPage(limit=limit, offset=offset)
        items: List[RawListing] = []
        for item in body.get("itemSummaries") or []:
            if not isinstance(item, dict):
                continue
            parsed = parse_listing(item)
            if parsed is not None:
                items.append(parsed)
        total = safe_number(body.get("total"))
        return ListingPage(
            items=items,
            total=int(total) if total is not None else len(items),
            limit=limit,
            offset=offset,
        )
