"""
Wayfarer Backend — Review Service
===================================

What:  CRUD for reviews plus the tour rating aggregate.
Why:   A tour's ratingsQuantity and ratingsAverage are derived from its
       reviews; every review write must leave them consistent.
How:   After each create/update/delete the aggregate is recomputed with one
       COUNT/AVG query and written back to the tour. With no reviews left
       the tour falls back to the default average.

Nested routes:
    /api/v1/tours/{tour_id}/reviews passes the tour id through `tour_id`,
    which scopes list reads and fills in the review's tour on create.
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import parse_identifier
from app.exceptions import FieldError, NotFoundError, ValidationError
from app.models.review import Review
from app.models.tour import DEFAULT_RATINGS_AVERAGE, Tour, tour_read_query
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewResponse, ReviewUpdate
from app.services.query_features import QueryFeatures

logger = logging.getLogger(__name__)

REVIEW_COLUMNS = {
    "rating": Review.rating,
    "createdAt": Review.created_at,
    "tourId": Review.tour_id,
}


def serialize_review(review: Review) -> Dict[str, Any]:
    return ReviewResponse.model_validate(review).model_dump(by_alias=True, mode="json")


class ReviewService:
    """Business logic for reviews. Stateless; the session is passed per call."""

    async def list_reviews(
        self,
        db: AsyncSession,
        query: Mapping[str, Any],
        tour_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        features = QueryFeatures(query, REVIEW_COLUMNS)
        stmt = select(Review).options(selectinload(Review.user))
        if tour_id is not None:
            stmt = stmt.where(Review.tour_id == parse_identifier(tour_id))
        result = await db.execute(features.apply(stmt))
        return [features.project(serialize_review(r)) for r in result.scalars().all()]

    async def get_review(self, db: AsyncSession, review_id: str) -> Dict[str, Any]:
        return serialize_review(await self._get(db, review_id))

    async def create_review(
        self,
        db: AsyncSession,
        payload: Mapping[str, Any],
        tour_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        data = ReviewCreate.model_validate(payload)
        target = parse_identifier(tour_id) if tour_id is not None else data.tour
        if target is None:
            raise ValidationError([FieldError("tour", "Review must belong to a tour.")])

        tour = (
            await db.execute(tour_read_query(select(Tour).where(Tour.id == target)))
        ).scalar_one_or_none()
        if tour is None:
            raise NotFoundError(resource="tour", resource_id=str(target))
        user = await db.get(User, data.user)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(data.user))

        review = Review(review=data.review, rating=data.rating, tour_id=tour.id)
        review.user = user
        db.add(review)
        await db.flush()
        await self.refresh_tour_ratings(db, tour.id)
        logger.info("Review created: %s (tour=%s, user=%s)", review.id, tour.id, user.id)
        return serialize_review(review)

    async def update_review(
        self, db: AsyncSession, review_id: str, payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        review = await self._get(db, review_id)
        data = ReviewUpdate.model_validate(payload)
        for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(review, key, value)
        await db.flush()
        await self.refresh_tour_ratings(db, review.tour_id)
        return serialize_review(review)

    async def delete_review(self, db: AsyncSession, review_id: str) -> None:
        review = await self._get(db, review_id)
        tour_id = review.tour_id
        await db.delete(review)
        await db.flush()
        await self.refresh_tour_ratings(db, tour_id)
        logger.info("Review deleted: %s", review_id)

    async def refresh_tour_ratings(self, db: AsyncSession, tour_id: uuid.UUID) -> None:
        """Recompute ratingsQuantity/ratingsAverage of one tour from its reviews."""
        count, average = (
            await db.execute(
                select(func.count(Review.id), func.avg(Review.rating)).where(
                    Review.tour_id == tour_id
                )
            )
        ).one()
        tour = await db.get(Tour, tour_id)
        if tour is None:
            return
        tour.ratings_quantity = count
        tour.ratings_average = average if count else DEFAULT_RATINGS_AVERAGE
        await db.flush()

    async def _get(self, db: AsyncSession, review_id: str) -> Review:
        stmt = (
            select(Review)
            .where(Review.id == parse_identifier(review_id))
            .options(selectinload(Review.user))
        )
        review = (await db.execute(stmt)).scalar_one_or_none()
        if review is None:
            raise NotFoundError(resource="review", resource_id=review_id)
        return review


review_service = ReviewService()
