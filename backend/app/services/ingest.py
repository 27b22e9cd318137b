from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select

from backend.app.db import models
from backend.app.db.session import session_scope
from backend.app.services.carquery_client import TrimSpec
from backend.app.services.ebay_client import ListingRecord
from backend.app.services.matcher import CandidateTrim, TrimMatch

SPEC_FIELDS = ("body", "engine", "horsepower", "torque", "zero_to_sixty")
MPG_FIELDS = ("mpg_city", "mpg_hwy")


@dataclass(frozen=True)
class TrimUpsertResult:
    trim_id: int
    created: bool
    needs_mpg: bool


def upsert_make(name: str) -> int:
    with session_scope() as session:
        make = session.execute(select(models.Make).where(models.Make.name == name)).scalar_one_or_none()
        if make is None:
            make = models.Make(name=name)
            session.add(make)
            session.flush()
        return make.id


def upsert_model(make_id: int, name: str) -> int:
    with session_scope() as session:
        model = session.execute(
            select(models.Model).where(models.Model.make_id == make_id, models.Model.name == name)
        ).scalar_one_or_none()
        if model is None:
            model = models.Model(name=name, make_id=make_id)
            session.add(model)
            session.flush()
        return model.id


def upsert_trim(model_id: int, spec: TrimSpec) -> TrimUpsertResult:
    """Create or refresh a trim keyed on (year, name, model_id).

    Spec fields are last-write-wins. MPG is only written when the refresh
    carries a value, so figures filled by enrichment survive a refresh that
    has none.
    """
    with session_scope() as session:
        trim = session.execute(
            select(models.Trim).where(
                models.Trim.model_id == model_id,
                models.Trim.year == spec.year,
                models.Trim.name == spec.name,
            )
        ).scalar_one_or_none()
        created = trim is None
        if trim is None:
            trim = models.Trim(model_id=model_id, year=spec.year, name=spec.name)
            session.add(trim)

        for field in SPEC_FIELDS:
            setattr(trim, field, getattr(spec, field))
        for field in MPG_FIELDS:
            value = getattr(spec, field)
            if value is not None:
                setattr(trim, field, value)
        if not created:
            trim.updated_at = datetime.now(timezone.utc)
        session.flush()
        return TrimUpsertResult(
            trim_id=trim.id,
            created=created,
            needs_mpg=trim.mpg_city is None or trim.mpg_hwy is None,
        )


def fill_trim_mpg(trim_id: int, city: Optional[int], highway: Optional[int]) -> bool:
    """Fill MPG columns that are still empty. Returns True when anything changed."""
    with session_scope() as session:
        trim = session.get(models.Trim, trim_id)
        if trim is None:
            return False
        changed = False
        if trim.mpg_city is None and city is not None:
            trim.mpg_city = city
            changed = True
        if trim.mpg_hwy is None and highway is not None:
            trim.mpg_hwy = highway
            changed = True
        return changed


def _candidate_query():
    return (
        select(models.Trim, models.Model.name, models.Make.name)
        .join(models.Model, models.Model.id == models.Trim.model_id)
        .join(models.Make, models.Make.id == models.Model.make_id)
    )


def _to_candidate(trim: models.Trim, model_name: str, make_name: str) -> CandidateTrim:
    return CandidateTrim(
        id=trim.id,
        year=trim.year,
        name=trim.name,
        body=trim.body,
        engine=trim.engine,
        model_name=model_name,
        make_name=make_name,
    )


def select_search_trims(limit: int) -> List[CandidateTrim]:
    """Most recent model years first; the id keeps the order stable between runs."""
    with session_scope() as session:
        stmt = _candidate_query().order_by(models.Trim.year.desc(), models.Trim.id.asc()).limit(limit)
        return [_to_candidate(*row) for row in session.execute(stmt).all()]


def load_candidate_trims() -> List[CandidateTrim]:
    with session_scope() as session:
        stmt = _candidate_query().order_by(models.Trim.id.asc())
        return [_to_candidate(*row) for row in session.execute(stmt).all()]


def upsert_listing(record: ListingRecord, match: Optional[TrimMatch]) -> bool:
    """Insert or refresh a listing by its source-qualified id. Returns True on insert.

    The trim link is recomputed on every run, so a listing can move between
    trims or lose its link.
    """
    trim_id = match.trim_id if match else None
    confidence = match.confidence if match else 0.0
    with session_scope() as session:
        listing = session.get(models.Listing, record.id)
        created = listing is None
        if listing is None:
            listing = models.Listing(id=record.id, source=record.source)
            session.add(listing)
        else:
            listing.updated_at = datetime.now(timezone.utc)
        listing.title = record.title
        listing.price = record.price
        listing.url = record.url
        listing.image = record.image
        listing.location = record.location
        listing.posted_at = record.posted_at
        listing.trim_id = trim_id
        listing.confidence = confidence
        return created


def linked_listing_prices() -> List[Tuple[int, int]]:
    with session_scope() as session:
        rows = session.execute(
            select(models.Listing.trim_id, models.Listing.price).where(
                models.Listing.trim_id.is_not(None),
                models.Listing.price > 0,
            )
        ).all()
        return [(trim_id, price) for trim_id, price in rows]
