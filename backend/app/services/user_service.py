"""
Wayfarer Backend — User Service
=================================

What:  CRUD for users.
Why:   Users are joined into tours (guides) and reviews (authors); deleting
       one has to clean up both links.
"""

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import parse_identifier
from app.exceptions import NotFoundError
from app.models.review import Review
from app.models.tour import tour_guides
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.query_features import QueryFeatures
from app.services.review_service import review_service

logger = logging.getLogger(__name__)

USER_COLUMNS = {
    "name": User.name,
    "email": User.email,
    "role": User.role,
    "active": User.active,
    "createdAt": User.created_at,
}


def serialize_user(user: User) -> Dict[str, Any]:
    return UserResponse.model_validate(user).model_dump(by_alias=True, mode="json")


class UserService:
    """Business logic for users."""

    async def list_users(
        self, db: AsyncSession, query: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        features = QueryFeatures(query, USER_COLUMNS)
        result = await db.execute(features.apply(select(User)))
        return [features.project(serialize_user(u)) for u in result.scalars().all()]

    async def get_user(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        return serialize_user(await self._get(db, user_id))

    async def create_user(self, db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = UserCreate.model_validate(payload)
        user = User(**data.model_dump(exclude_none=True))
        db.add(user)
        await db.flush()
        logger.info("User created: %s (role=%s)", user.id, user.role)
        return serialize_user(user)

    async def update_user(
        self, db: AsyncSession, user_id: str, payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        user = await self._get(db, user_id)
        data = UserUpdate.model_validate(payload)
        for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, key, value.lower() if key == "email" else value)
        await db.flush()
        return serialize_user(user)

    async def delete_user(self, db: AsyncSession, user_id: str) -> None:
        """
        Delete a user, their reviews and their guide assignments.

        Ratings of every tour the user had reviewed are recomputed afterwards.
        """
        user = await self._get(db, user_id)
        reviewed = (
            await db.execute(select(Review.tour_id).where(Review.user_id == user.id).distinct())
        ).scalars().all()

        await db.execute(delete(Review).where(Review.user_id == user.id))
        await db.execute(delete(tour_guides).where(tour_guides.c.user_id == user.id))
        await db.delete(user)
        await db.flush()

        for tour_id in reviewed:
            await review_service.refresh_tour_ratings(db, tour_id)
        logger.info("User deleted: %s (reviews on %d tours)", user_id, len(reviewed))

    async def _get(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, parse_identifier(user_id))
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user


user_service = UserService()
