"""
Wayfarer Backend — Tour Schemas
=================================

What:  Request/response models for /api/v1/tours.
Why:   Pydantic handles shape and type coercion of incoming documents; the
       business rules (name length, difficulty, rating range, discount) live
       in app/models/tour_hooks.py and run explicitly from TourService.
How:   Request models ignore unknown keys, so a client-supplied `slug` is
       silently dropped: the slug is derived, never set directly.

Default projection:
    createdAt is part of TourResponse but is removed by serialize_tour()
    unless the client asks for it with ?fields=.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import APIModel
from app.schemas.review import ReviewResponse
from app.schemas.user import GuideSummary


class GeoPoint(APIModel):
    """GeoJSON point: coordinates are [longitude, latitude]."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)
    address: Optional[str] = None
    description: Optional[str] = None


class TourLocation(GeoPoint):
    """A stop on the tour, tagged with the tour day it happens on."""
    day: Optional[int] = None


class _TourTextMixin(APIModel):
    @field_validator("name", "summary", "description", check_fields=False)
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class TourCreate(_TourTextMixin):
    name: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: Optional[float] = None
    ratings_quantity: Optional[int] = None
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    images: List[str] = Field(default_factory=list)
    start_dates: List[datetime] = Field(default_factory=list)
    secret_tour: bool = False
    start_location: Optional[GeoPoint] = None
    locations: List[TourLocation] = Field(default_factory=list)
    guides: List[uuid.UUID] = Field(default_factory=list)


class TourUpdate(_TourTextMixin):
    """Partial update: only keys present in the body are applied."""
    name: Optional[str] = None
    duration: Optional[int] = None
    max_group_size: Optional[int] = None
    difficulty: Optional[str] = None
    ratings_average: Optional[float] = None
    ratings_quantity: Optional[int] = None
    price: Optional[float] = None
    price_discount: Optional[float] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    image_cover: Optional[str] = None
    images: Optional[List[str]] = None
    start_dates: Optional[List[datetime]] = None
    secret_tour: Optional[bool] = None
    start_location: Optional[GeoPoint] = None
    locations: Optional[List[TourLocation]] = None
    guides: Optional[List[uuid.UUID]] = None


class TourResponse(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    duration: int
    duration_weeks: float
    max_group_size: int
    difficulty: str
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    images: List[str] = Field(default_factory=list)
    created_at: datetime
    start_dates: List[datetime] = Field(default_factory=list)
    secret_tour: bool
    start_location: Optional[GeoPoint] = None
    locations: List[TourLocation] = Field(default_factory=list)
    guides: List[GuideSummary] = Field(default_factory=list)


class TourDetailResponse(TourResponse):
    """Single-tour read: adds the computed join of the tour's reviews."""
    reviews: List[ReviewResponse] = Field(default_factory=list)
