"""Wayfarer Backend — /api/v1/users route handlers."""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.common import no_content, request_body, request_query, success
from app.services.user_service import user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("")
async def list_users(
    query: Dict[str, Any] = Depends(request_query),
    db: AsyncSession = Depends(get_db_session),
):
    return success("users", await user_service.list_users(db, query))


@router.post("", status_code=201)
async def create_user(
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    return success("user", await user_service.create_user(db, body), status_code=201)


@router.get("/{user_id}")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db_session)):
    return success("user", await user_service.get_user(db, user_id))


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: Dict[str, Any] = Depends(request_body),
    db: AsyncSession = Depends(get_db_session),
):
    return success("user", await user_service.update_user(db, user_id, body))


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db_session)):
    await user_service.delete_user(db, user_id)
    return no_content()
