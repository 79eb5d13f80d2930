"""
Wayfarer Backend — /api/v1/reviews route handlers.

Creating a review here needs `tour` in the body; the nested route under
/api/v1/tours/{tour_id}/reviews fills it in from the path instead.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.common import no_content, request_body, request_query, success
from app.services.review_service import review_service

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"])


@router.get("")
async def list_reviews(
    query: Dict[str, Any] = Depends(request_query),
    db: AsyncSession = Depends(get_db_session),
):
    return success("reviews", await review_service.list_reviews(db, query))


@router.post("", status_code=201)
async def create_review(
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    return success("review", await review_service.create_review(db, body), status_code=201)


@router.get("/{review_id}")
async def get_review(review_id: str, db: AsyncSession = Depends(get_db_session)):
    return success("review", await review_service.get_review(db, review_id))


@router.patch("/{review_id}")
async def update_review(
    review_id: str,
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    return success("review", await review_service.update_review(db, review_id, body))


@router.delete("/{review_id}", status_code=204)
async def delete_review(review_id: str, db: AsyncSession = Depends(get_db_session)):
    await review_service.delete_review(db, review_id)
    return no_content()
