"""
Wayfarer Backend — Tour Route Handlers
========================================

What:  /api/v1/tours collection and item routes, plus the nested
       /api/v1/tours/{tour_id}/reviews routes.
How:   Thin: pull the cleaned body/query from the pipeline, call the
       service, wrap the result in the success envelope.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.common import no_content, request_body, request_query, success
from app.services.review_service import review_service
from app.services.tour_service import tour_service

router = APIRouter(prefix="/api/v1/tours", tags=["Tours"])


@router.get("", summary="List tours (filter, sort, fields, page/limit)")
async def list_tours(
    query: Dict[str, Any] = Depends(request_query),
    db: AsyncSession = Depends(get_db_session),
):
    tours = await tour_service.list_tours(db, query)
    return success("tours", tours)


@router.post("", status_code=201, summary="Create a tour")
async def create_tour(
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    tour = await tour_service.create_tour(db, body)
    return success("tour", tour, status_code=201)


@router.get("/{tour_id}", summary="Get one tour with guides and reviews")
async def get_tour(tour_id: str, db: AsyncSession = Depends(get_db_session)):
    return success("tour", await tour_service.get_tour(db, tour_id))


@router.patch("/{tour_id}", summary="Partially update a tour")
async def update_tour(
    tour_id: str,
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    return success("tour", await tour_service.update_tour(db, tour_id, body))


@router.delete("/{tour_id}", status_code=204, summary="Delete a tour and its reviews")
async def delete_tour(tour_id: str, db: AsyncSession = Depends(get_db_session)):
    await tour_service.delete_tour(db, tour_id)
    return no_content()


# ── Nested reviews ────────────────────────────────────────────────────────
@router.get("/{tour_id}/reviews", summary="List the reviews of one tour")
async def list_tour_reviews(
    tour_id: str,
    query: Dict[str, Any] = Depends(request_query),
    db: AsyncSession = Depends(get_db_session),
):
    reviews = await review_service.list_reviews(db, query, tour_id=tour_id)
    return success("reviews", reviews)


@router.post("/{tour_id}/reviews", status_code=201, summary="Review one tour")
async def create_tour_review(
    tour_id: str,
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    review = await review_service.create_review(db, body, tour_id=tour_id)
    return success("review", review, status_code=201)
