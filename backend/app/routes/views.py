"""
Wayfarer Backend — Server-Rendered Pages
==========================================

What:  HTML pages: tour overview, single tour, login form.
How:   Same services and read scope as the API; Jinja2 templates from
       app/templates. Failures here (unknown slug, secret tour) render the
       error page through the error translation layer.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.rendering import templates
from app.services.tour_service import tour_service

router = APIRouter(tags=["Views"], include_in_schema=False)


@router.get("/")
async def overview(request: Request, db: AsyncSession = Depends(get_db_session)):
    tours = await tour_service.list_visible_tours(db)
    return templates.TemplateResponse(
        request, "overview.html", {"title": "All Tours", "tours": tours}
    )


@router.get("/tour/{slug}")
async def tour_page(slug: str, request: Request, db: AsyncSession = Depends(get_db_session)):
    tour = await tour_service.get_tour_by_slug(db, slug)
    return templates.TemplateResponse(
        request, "tour.html", {"title": f"{tour.name} Tour", "tour": tour}
    )


@router.get("/login")
async def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"title": "Log into your account"})
