"""
Wayfarer Backend — Review Schemas
===================================

What:  Request/response models for /api/v1/reviews and nested tour reviews.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import APIModel
from app.schemas.user import ReviewAuthor


class ReviewCreate(APIModel):
    review: str = Field(min_length=1, description="Review can not be empty!")
    rating: float = Field(ge=1, le=5)
    # Optional in the body when the route already names the tour
    tour: Optional[uuid.UUID] = None
    user: uuid.UUID


class ReviewUpdate(APIModel):
    review: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[float] = Field(default=None, ge=1, le=5)


class ReviewResponse(APIModel):
    id: uuid.UUID
    review: str
    rating: float
    created_at: datetime
    tour_id: uuid.UUID
    user: ReviewAuthor
