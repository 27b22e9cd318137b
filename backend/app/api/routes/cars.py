from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from backend.app.db import models
from backend.app.db.session import get_session

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_PRICE = 200000

router = APIRouter()


def _cheapest_listing(db: Session, trim_id: int, max_price: int) -> Optional[models.Listing]:
    stmt = (
        select(models.Listing)
        .where(models.Listing.trim_id == trim_id, models.Listing.price <= max_price)
        .order_by(models.Listing.price.asc(), models.Listing.id.asc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def _car_card(
    trim: models.Trim,
    model_name: str,
    make_name: str,
    min_price: Optional[int],
    listing: Optional[models.Listing],
) -> Dict[str, Any]:
    return {
        "trim_id": trim.id,
        "year": trim.year,
        "make": make_name,
        "model": model_name,
        "trim": trim.name,
        "min_price": min_price,
        "msrp": trim.msrp,
        "image": trim.image_url or (listing.image if listing else None),
        "url": listing.url if listing else None,
        "horsepower": trim.horsepower,
        "mpg_city": trim.mpg_city,
        "mpg_hwy": trim.mpg_hwy,
    }


@router.get("")
async def list_cars(
    make: Optional[str] = None,
    q: Optional[str] = None,
    max_price: int = DEFAULT_MAX_PRICE,
    page: int = 1,
    per_page: int = DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_session),
):
    if page < 1 or per_page < 1:
        raise HTTPException(status_code=400, detail="page and per_page must be >= 1")
    per_page = min(per_page, MAX_PAGE_SIZE)

    stmt = (
        select(models.Trim, models.Model.name, models.Make.name)
        .join(models.Model, models.Model.id == models.Trim.model_id)
        .join(models.Make, models.Make.id == models.Model.make_id)
    )
    if make:
        stmt = stmt.where(models.Make.name.ilike(f"{make}%"))
    if q:
        stmt = stmt.where(or_(models.Trim.name.ilike(f"%{q}%"), models.Model.name.ilike(f"%{q}%")))

    min_prices = (
        select(models.Listing.trim_id.label("trim_id"), func.min(models.Listing.price).label("min_price"))
        .where(models.Listing.trim_id.is_not(None), models.Listing.price <= max_price)
        .group_by(models.Listing.trim_id)
        .subquery()
    )
    priced_stmt = stmt.join(min_prices, min_prices.c.trim_id == models.Trim.id).add_columns(min_prices.c.min_price)
    total = db.execute(select(func.count()).select_from(priced_stmt.subquery())).scalar_one()

    if total:
        ordered = priced_stmt.order_by(
            min_prices.c.min_price.asc(),
            models.Make.name.asc(),
            models.Model.name.asc(),
            models.Trim.id.asc(),
        )
        rows = db.execute(ordered.offset((page - 1) * per_page).limit(per_page)).all()
        cars = [
            _car_card(trim, model_name, make_name, min_price, _cheapest_listing(db, trim.id, max_price))
            for trim, model_name, make_name, min_price in rows
        ]
    else:
        # No linked listing under the ceiling: fall back to MSRP, unknown MSRP last.
        fallback_stmt = stmt.where(or_(models.Trim.msrp <= max_price, models.Trim.msrp.is_(None)))
        total = db.execute(select(func.count()).select_from(fallback_stmt.subquery())).scalar_one()
        ordered = fallback_stmt.order_by(
            models.Trim.msrp.is_(None),
            models.Trim.msrp.asc(),
            models.Make.name.asc(),
            models.Model.name.asc(),
            models.Trim.id.asc(),
        )
        rows = db.execute(ordered.offset((page - 1) * per_page).limit(per_page)).all()
        cars = [_car_card(trim, model_name, make_name, None, None) for trim, model_name, make_name in rows]

    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": math.ceil(total / per_page),
        "cars": cars,
    }


@router.get("/{trim_id}")
async def get_car(trim_id: int, db: Session = Depends(get_session)):
    row = db.execute(
        select(models.Trim, models.Model.name, models.Make.name)
        .join(models.Model, models.Model.id == models.Trim.model_id)
        .join(models.Make, models.Make.id == models.Model.make_id)
        .where(models.Trim.id == trim_id)
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Trim not found")
    trim, model_name, make_name = row

    listings = db.execute(
        select(models.Listing)
        .where(models.Listing.trim_id == trim_id)
        .order_by(models.Listing.price.asc(), models.Listing.id.asc())
    ).scalars().all()

    return {
        "trim_id": trim.id,
        "year": trim.year,
        "make": make_name,
        "model": model_name,
        "trim": trim.name,
        "body": trim.body,
        "engine": trim.engine,
        "horsepower": trim.horsepower,
        "torque": trim.torque,
        "zero_to_sixty": trim.zero_to_sixty,
        "mpg_city": trim.mpg_city,
        "mpg_hwy": trim.mpg_hwy,
        "msrp": trim.msrp,
        "image_url": trim.image_url,
        "listings": [
            {
                "id": listing.id,
                "source": listing.source,
                "title": listing.title,
                "price": listing.price,
                "url": listing.url,
                "image": listing.image,
                "location": listing.location,
                "posted_at": listing.posted_at.isoformat() if listing.posted_at else None,
                "confidence": listing.confidence,
            }
            for listing in listings
        ],
    }
