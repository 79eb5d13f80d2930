"""
Wayfarer Backend — Tour SQLAlchemy Model
==========================================

What:  ORM model for the `tours` table plus the `tour_guides` association.
Why:   Tour is the primary bookable product; everything else hangs off it.
How:   Plain columns for scalar attributes, JSON columns for the embedded
       lists (images, start dates, geospatial points), a many-to-many link
       to users for guides.
Who:   Used by TourService, the view routes and Alembic.

Relationship loading:
    `guides` and `reviews` use lazy="raise". A Tour read that did not go
    through tour_read_query() (which eager-loads guides) fails loudly
    instead of silently issuing a second query or skipping the join.

Field normalization:
    ratings_average is rounded to one decimal on every assignment through
    the @validates hook below, whichever code path performs the write.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import Select, select
from sqlalchemy.orm import Mapped, mapped_column, relationship, selectinload, validates

from app.database import Base
from app.models.tour_hooks import round_rating

if TYPE_CHECKING:
    from app.models.review import Review
    from app.models.user import User

# JSONB on PostgreSQL, generic JSON elsewhere (SQLite in tests)
DocumentJSON = JSON().with_variant(JSONB(), "postgresql")

DEFAULT_RATINGS_AVERAGE = 4.5

tour_guides = Table(
    "tour_guides",
    Base.metadata,
    Column("tour_id", Uuid, ForeignKey("tours.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Tour(Base):
    """
    A bookable tour.

    Lifecycle:
        1. Created through TourService.create_tour (slug derived, full validation)
        2. Read through tour_read_query (secret tours hidden, guides joined)
        3. Partially updated (discount rule not re-checked, slug kept)
        4. Deleted together with its reviews and guide links
    """

    __tablename__ = "tours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False)
    ratings_average: Mapped[float] = mapped_column(
        Float, nullable=False, default=DEFAULT_RATINGS_AVERAGE
    )
    ratings_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_discount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_cover: Mapped[str] = mapped_column(String(255), nullable=False)
    images: Mapped[List[str]] = mapped_column(DocumentJSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    # ISO-8601 strings; the response schema parses them back into datetimes
    start_dates: Mapped[List[str]] = mapped_column(DocumentJSON, nullable=False, default=list)
    secret_tour: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_location: Mapped[Optional[Dict[str, Any]]] = mapped_column(DocumentJSON, nullable=True)
    locations: Mapped[List[Dict[str, Any]]] = mapped_column(
        DocumentJSON, nullable=False, default=list
    )

    guides: Mapped[List["User"]] = relationship(secondary=tour_guides, lazy="raise")
    reviews: Mapped[List["Review"]] = relationship(lazy="raise", viewonly=True)

    __table_args__ = (
        Index("idx_tours_price_ratings", "price", "ratings_average"),
        Index("idx_tours_slug", "slug"),
    )

    @validates("ratings_average")
    def _normalize_ratings_average(self, key: str, value: Optional[float]) -> Optional[float]:
        return round_rating(value)

    @property
    def duration_weeks(self) -> float:
        return self.duration / 7

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}', slug='{self.slug}')>"


# ── Read Scope ────────────────────────────────────────────────────────────
def tour_read_query(stmt: Optional[Select] = None) -> Select:
    """
    Wrap a Tour select with the default read scope.

    Every read-family call site (list, get, update-by-id, delete-by-id, view
    pages) builds its statement through this function:
        - secret tours are excluded; the predicate is appended last, so a
          client constraint on secret_tour can never re-include them
        - guides are joined in the same round of queries

    Args:
        stmt: A select over Tour with the caller's own filters, or None for
              an unfiltered select.
    """
    if stmt is None:
        stmt = select(Tour)
    return stmt.where(Tour.secret_tour.is_not(True)).options(selectinload(Tour.guides))
