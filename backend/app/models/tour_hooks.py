"""
Wayfarer Backend — Tour Document Hooks
========================================

What:  Pure functions that run around Tour persistence.
Why:   Derived fields and validation rules must hold no matter which handler
       writes the tour, yet stay visible at the call site. They are plain
       functions invoked explicitly by TourService instead of callbacks
       dispatched implicitly by the ORM.
How:   Each function takes plain values or an immutable snapshot of the
       candidate document and returns a value or a list of field errors.

Hooks:
    derive_slug            before-create: name → URL-safe slug
    round_rating           every write:   ratingsAverage → one decimal
    validate_tour_fields   before-write:  snapshot → [FieldError, ...]

Known limitation (kept on purpose):
    The "priceDiscount below price" rule is evaluated only when a full
    document is being created. A partial update can store a discount that is
    greater than or equal to the price; the rule only ever looked at the
    sibling price of a brand new document.
"""

import math
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from slugify import slugify

from app.exceptions import FieldError

DIFFICULTIES = ("easy", "medium", "difficult")
NAME_MIN_LENGTH = 10
NAME_MAX_LENGTH = 40
RATING_MIN = 1.0
RATING_MAX = 5.0

# Fields that may be omitted from a partial update but never cleared.
# Attribute → (API field name, message); errors are keyed by the API name.
REQUIRED_FIELDS = {
    "name": ("name", "Tour must have a name."),
    "duration": ("duration", "Tour must have duration."),
    "max_group_size": ("maxGroupSize", "Tour must have group size."),
    "difficulty": ("difficulty", "Tour must have difficulty level."),
    "price": ("price", "Tour must have a price."),
    "summary": ("summary", "Tour must have a description."),
    "image_cover": ("imageCover", "Tour must have a cover image."),
}


def derive_slug(name: str) -> str:
    """
    Lower-case the name and join its words with '-'.

    Total for any non-empty name; schema validation guarantees one exists.

        >>> derive_slug("The Forest Hiker")
        'the-forest-hiker'
    """
    return slugify(name, lowercase=True, separator="-")


def round_rating(value: Optional[float]) -> Optional[float]:
    """Round a rating to one decimal place, halves upward (4.666 → 4.7, 4.25 → 4.3)."""
    if value is None:
        return None
    return math.floor(float(value) * 10 + 0.5) / 10


def snapshot(values: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only view of a candidate document for the validators."""
    return MappingProxyType(dict(values))


def validate_tour_fields(doc: Mapping[str, Any], creating: bool) -> List[FieldError]:
    """
    Check business rules on a candidate Tour.

    Args:
        doc:       Snapshot keyed by model attribute names. For updates it
                   holds only the fields being changed.
        creating:  True for a full-document insert. Enables the rules that
                   need sibling fields (price discount).

    Returns:
        An empty list when the document is acceptable, otherwise one
        FieldError per failed rule, keyed by the API (camelCase) field name.
    """
    errors: List[FieldError] = []

    for attr, (field, message) in REQUIRED_FIELDS.items():
        if attr in doc and doc[attr] is None:
            errors.append(FieldError(field, message))

    name = doc.get("name")
    if name is not None:
        if len(name) > NAME_MAX_LENGTH:
            errors.append(FieldError("name", "Tour name must have <= 40 characters."))
        if len(name) < NAME_MIN_LENGTH:
            errors.append(FieldError("name", "Tour name must have >= 10 characters."))

    difficulty = doc.get("difficulty")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        errors.append(
            FieldError("difficulty", "Difficulty can only be: easy, medium, difficult.")
        )

    rating = round_rating(doc.get("ratings_average"))
    if rating is not None:
        if rating < RATING_MIN:
            errors.append(FieldError("ratingsAverage", "Rating must be above 1.0."))
        if rating > RATING_MAX:
            errors.append(FieldError("ratingsAverage", "Rating must be below 5.0."))

    discount = doc.get("price_discount")
    if creating and discount is not None:
        price = doc.get("price")
        if price is None or not discount < price:
            errors.append(
                FieldError(
                    "priceDiscount",
                    f"Discount price ({discount}) must be below regular price.",
                )
            )

    return errors
