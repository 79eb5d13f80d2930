"""
Wayfarer Backend — Tour Service
=================================

What:  Create, read, update and delete tours.
Why:   Keeps the document hooks in one explicit sequence, independent of
       which route invoked the operation.
How:   Every write runs the hooks from app/models/tour_hooks.py by hand;
       every read builds its statement through tour_read_query().

Write sequence (create):
    body → TourCreate (shape/types) → validate_tour_fields(creating=True)
         → derive_slug → resolve guide references → INSERT

Write sequence (partial update):
    body → TourUpdate → validate_tour_fields(creating=False) → UPDATE
    The discount rule is skipped and the slug is left as it was.

Errors:
    Malformed ids raise CastError; duplicate names surface as IntegrityError
    at flush. Both are translated by the error layer, not here.
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import parse_identifier
from app.exceptions import FieldError, NotFoundError, ValidationError
from app.models.review import Review
from app.models.tour import Tour, tour_read_query
from app.models.tour_hooks import derive_slug, snapshot, validate_tour_fields
from app.models.user import User
from app.schemas.tour import TourCreate, TourDetailResponse, TourResponse, TourUpdate
from app.services.query_features import QueryFeatures

logger = logging.getLogger(__name__)

# API field name → column; the filterable and sortable surface of /tours
TOUR_COLUMNS = {
    "name": Tour.name,
    "slug": Tour.slug,
    "duration": Tour.duration,
    "maxGroupSize": Tour.max_group_size,
    "difficulty": Tour.difficulty,
    "ratingsAverage": Tour.ratings_average,
    "ratingsQuantity": Tour.ratings_quantity,
    "price": Tour.price,
    "priceDiscount": Tour.price_discount,
    "createdAt": Tour.created_at,
}

# Excluded from the default read projection
HIDDEN_FIELDS = ("createdAt",)


def serialize_tour(tour: Tour, detail: bool = False) -> Dict[str, Any]:
    """ORM tour → camelCase JSON-ready dict."""
    schema = TourDetailResponse if detail else TourResponse
    return schema.model_validate(tour).model_dump(by_alias=True, mode="json")


def _hide_default_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}


class TourService:
    """
    Business logic for tours.

    Stateless: receives the session per call, like the other services.
    """

    async def list_tours(
        self, db: AsyncSession, query: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        """
        List tours matching the cleaned query parameters.

        The caller's filters, sort and pagination are applied first; the
        read scope (secret tours hidden, guides joined) is applied last.
        """
        features = QueryFeatures(query, TOUR_COLUMNS, hidden_fields=HIDDEN_FIELDS)
        stmt = tour_read_query(features.apply(select(Tour)))
        result = await db.execute(stmt)
        return [features.project(serialize_tour(t)) for t in result.scalars().all()]

    async def get_tour(self, db: AsyncSession, tour_id: str) -> Dict[str, Any]:
        """Single tour with its guides and the computed join of its reviews."""
        stmt = tour_read_query(
            select(Tour).where(Tour.id == parse_identifier(tour_id))
        ).options(selectinload(Tour.reviews).selectinload(Review.user))
        tour = (await db.execute(stmt)).scalar_one_or_none()
        if tour is None:
            raise NotFoundError(resource="tour", resource_id=tour_id)
        return _hide_default_fields(serialize_tour(tour, detail=True))

    async def create_tour(self, db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = TourCreate.model_validate(payload)
        values = data.model_dump(exclude={"guides"}, exclude_none=True, mode="json")

        errors = validate_tour_fields(snapshot(values), creating=True)
        if errors:
            raise ValidationError(errors)

        values["slug"] = derive_slug(values["name"])
        tour = Tour(**values)
        tour.guides = await self._load_guides(db, data.guides)

        db.add(tour)
        await db.flush()
        logger.info("Tour created: %s (slug=%s)", tour.id, tour.slug)
        return _hide_default_fields(serialize_tour(tour))

    async def update_tour(
        self, db: AsyncSession, tour_id: str, payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        tour = await self._get_scoped(db, tour_id)
        data = TourUpdate.model_validate(payload)
        values = data.model_dump(exclude_unset=True, exclude={"guides"}, mode="json")

        errors = validate_tour_fields(snapshot(values), creating=False)
        if errors:
            raise ValidationError(errors)

        for key, value in values.items():
            setattr(tour, key, value)
        if "guides" in data.model_fields_set:
            tour.guides = await self._load_guides(db, data.guides or [])

        await db.flush()
        logger.info("Tour updated: %s (fields=%s)", tour.id, sorted(values))
        return _hide_default_fields(serialize_tour(tour))

    async def delete_tour(self, db: AsyncSession, tour_id: str) -> None:
        """Delete a tour together with its reviews and guide links."""
        tour = await self._get_scoped(db, tour_id)
        await db.execute(delete(Review).where(Review.tour_id == tour.id))
        await db.delete(tour)
        await db.flush()
        logger.info("Tour deleted: %s", tour.id)

    async def get_tour_by_slug(self, db: AsyncSession, slug: str) -> Tour:
        """Tour page lookup for the view routes; reviews loaded for display."""
        stmt = tour_read_query(select(Tour).where(Tour.slug == slug)).options(
            selectinload(Tour.reviews).selectinload(Review.user)
        )
        tour = (await db.execute(stmt)).scalars().first()
        if tour is None:
            raise NotFoundError(resource="tour")
        return tour

    async def list_visible_tours(self, db: AsyncSession) -> Sequence[Tour]:
        """All tours in the default read scope, newest first (overview page)."""
        stmt = tour_read_query(select(Tour).order_by(Tour.created_at.desc()))
        return (await db.execute(stmt)).scalars().all()

    # ── Helpers ───────────────────────────────────────────────────────────
    async def _get_scoped(self, db: AsyncSession, tour_id: str) -> Tour:
        """Find-by-id through the read scope (update and delete use it too)."""
        stmt = tour_read_query(select(Tour).where(Tour.id == parse_identifier(tour_id)))
        tour = (await db.execute(stmt)).scalar_one_or_none()
        if tour is None:
            raise NotFoundError(resource="tour", resource_id=tour_id)
        return tour

    async def _load_guides(self, db: AsyncSession, ids: Sequence[uuid.UUID]) -> List[User]:
        """Resolve guide ids to users, keeping the order they were given in."""
        if not ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(ids)))
        by_id = {user.id: user for user in result.scalars().all()}
        missing = [str(i) for i in ids if i not in by_id]
        if missing:
            raise ValidationError(
                [FieldError("guides", f"No user found with id {m}.") for m in missing]
            )
        return [by_id[i] for i in dict.fromkeys(ids)]


tour_service = TourService()
