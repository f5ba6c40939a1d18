"""
Public API routes - plan reads, shopping list and export
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.models import User
from app.schemas.plan import PlanData, PlanResponse
from app.services.plan_cache import plan_cache
from app.services.repositories import EventRepo
from app.services.shopping import ShoppingExportService, build_shopping_list, group_by_category
from app.utils.security import build_permission_context, get_optional_user
from app.utils.responses import error_response, not_found_error, success_response

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _load_plan(db: Session, slug: str, key: Optional[str], user: Optional[User]) -> PlanResponse:
    plan = plan_cache.get(db, slug)
    if plan.event is None:
        raise not_found_error("Event")

    event = EventRepo.get_by_slug(db, slug)
    if event is None:
        plan_cache.revalidate(slug)
        raise not_found_error("Event")
    permissions = build_permission_context(db, event, key, None, user)
    write_enabled = permissions.is_owner or permissions.has_valid_key
    if not write_enabled:
        plan = plan.model_copy(update={"event": plan.event.model_copy(update={"admin_key": None})})
    return PlanResponse(plan=plan, write_enabled=write_enabled)


def _person_filter(person: str):
    if person == "all":
        return "all"
    try:
        return int(person)
    except ValueError:
        return "all"


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}


@router.get("/event/{slug}")
def get_event_plan(
    slug: str,
    key: Optional[str] = None,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Full plan of one event; write_enabled tells the client whether to allow edits"""
    return success_response(message="Plan retrieved", data=_load_plan(db, slug, key, user))


@router.get("/event/{slug}/shopping")
def get_shopping_list(
    slug: str,
    person: str = "all",
    db: Session = Depends(get_db),
):
    """Aggregated shopping list, bucketed by category"""
    plan = plan_cache.get(db, slug)
    if plan.event is None:
        raise not_found_error("Event")

    rows = build_shopping_list(plan, _person_filter(person))
    return success_response(
        message="Shopping list retrieved",
        data={
            "rows": rows,
            "by_category": group_by_category(rows),
        }
    )


@router.get("/event/{slug}/shopping.xlsx")
def export_shopping_list(
    slug: str,
    person: str = "all",
    db: Session = Depends(get_db),
):
    """Download the shopping list as an Excel workbook"""
    plan: PlanData = plan_cache.get(db, slug)
    if plan.event is None:
        raise not_found_error("Event")

    rows = build_shopping_list(plan, _person_filter(person))
    people = {p.id: p.name for p in plan.people}
    content = ShoppingExportService.export_shopping_list(rows, people)
    logger.info(f"Exported {len(rows)} shopping rows for {slug}")

    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=courses_{slug}.xlsx"}
    )


@router.get("/{locale}/event/{slug}")
def get_localized_event_plan(
    locale: str,
    slug: str,
    key: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Same as /event/{slug}, for one of the supported locales"""
    if locale not in settings.SUPPORTED_LOCALES:
        return error_response(message=f"Unsupported locale: {locale}", error_code="not_found", status_code=404)

    response = _load_plan(db, slug, key, user)
    return success_response(message="Plan retrieved", data={**response.model_dump(), "locale": locale})
