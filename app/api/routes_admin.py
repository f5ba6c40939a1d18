"""
Admin API routes - requires authentication
"""

import json
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.models import AIFeedback, Event, IngredientCache, Meal, Person
from app.schemas.actions import AdminUpdateEventInput, AuditLogFilter, DeleteAuditLogsInput, UpdateCacheEntryInput
from app.schemas.plan import ChangeLogRead, EventRead
from app.services.change_log import list_change_logs, log_change, purge_change_logs, row_to_dict
from app.services.event_actions import find_unique_slug
from app.services.plan_cache import plan_cache
from app.services.repositories import EventRepo
from app.utils.security import verify_admin_token
from app.utils.responses import error_response, not_found_error, success_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/events")
def list_events(
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """All events with meal and people counts"""
    meal_counts = dict(db.query(Meal.event_id, func.count(Meal.id)).group_by(Meal.event_id).all())
    people_counts = dict(db.query(Person.event_id, func.count(Person.id)).group_by(Person.event_id).all())

    events = db.query(Event).order_by(Event.created_at.desc()).all()
    return success_response(
        message="Events retrieved",
        data=[
            {
                **EventRead.model_validate(event).model_dump(),
                "meals_count": meal_counts.get(event.id, 0),
                "people_count": people_counts.get(event.id, 0),
            }
            for event in events
        ]
    )


@router.put("/events/{event_id}")
def update_event(
    event_id: int,
    event_data: AdminUpdateEventInput,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Edit any event, including its slug and admin key"""
    event = EventRepo.get_by_id(db, event_id)
    if not event:
        raise not_found_error("Event")

    old_slug = event.slug
    old_data = row_to_dict(event)

    if event_data.slug and event_data.slug != event.slug:
        event.slug = find_unique_slug(db, event_data.slug)

    updates = event_data.model_dump(exclude_unset=True, exclude={"slug"})
    for field, value in updates.items():
        setattr(event, field, value)

    log_change(db, "update", "events", event.id, old_data, event)
    db.commit()
    db.refresh(event)
    plan_cache.revalidate(old_slug)
    plan_cache.revalidate(event.slug)

    return success_response(message="Event updated successfully", data=EventRead.model_validate(event))


@router.delete("/events/{event_id}")
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Delete an event and everything under it"""
    event = EventRepo.get_by_id(db, event_id)
    if not event:
        raise not_found_error("Event")

    slug = event.slug
    log_change(db, "delete", "events", event.id, event)
    db.delete(event)
    db.commit()
    plan_cache.revalidate(slug)
    logger.info(f"Admin deleted event {slug}")

    return success_response(message="Event deleted successfully", data={"id": event_id})


@router.get("/audit-logs")
def get_audit_logs(
    filters: AuditLogFilter = Depends(),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Most recent change log entries, optionally filtered"""
    logs = list_change_logs(db, filters.table_name, filters.action, filters.user_id, limit)
    return success_response(
        message="Change logs retrieved",
        data=[ChangeLogRead.model_validate(log) for log in logs]
    )


@router.post("/audit-logs/purge")
def delete_audit_logs(
    scope: DeleteAuditLogsInput,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    deleted = purge_change_logs(db, scope.older_than_days, bool(scope.delete_all))
    return success_response(message=f"{deleted} log entries deleted", data={"deleted": deleted})


@router.get("/ingredient-cache")
def list_cache_entries(
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    entries = db.query(IngredientCache).order_by(IngredientCache.dish_name, IngredientCache.people_count).all()
    return success_response(
        message="Cache entries retrieved",
        data=[
            {
                "id": entry.id,
                "dish_name": entry.dish_name,
                "people_count": entry.people_count,
                "ingredients": json.loads(entry.ingredients),
                "confirmations": entry.confirmations,
                "updated_at": entry.updated_at,
            }
            for entry in entries
        ]
    )


@router.put("/ingredient-cache/{entry_id}")
def update_cache_entry(
    entry_id: int,
    entry_data: UpdateCacheEntryInput,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Replace a cached ingredient list by hand"""
    entry = db.query(IngredientCache).filter(IngredientCache.id == entry_id).first()
    if not entry:
        raise not_found_error("Cache entry")

    try:
        ingredients = json.loads(entry_data.ingredients)
    except ValueError:
        return error_response(message="Ingredients must be valid JSON", error_code="validation_error", status_code=422)
    if not isinstance(ingredients, list):
        return error_response(message="Ingredients must be a JSON list", error_code="validation_error", status_code=422)

    entry.ingredients = json.dumps(ingredients, ensure_ascii=False)
    db.commit()
    return success_response(message="Cache entry updated", data={"id": entry.id, "ingredients": ingredients})


@router.delete("/ingredient-cache/{entry_id}")
def delete_cache_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    entry = db.query(IngredientCache).filter(IngredientCache.id == entry_id).first()
    if not entry:
        raise not_found_error("Cache entry")

    db.delete(entry)
    db.commit()
    return success_response(message="Cache entry deleted", data={"id": entry_id})


@router.get("/ai-feedback")
def list_ai_feedback(
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    feedback = db.query(AIFeedback).order_by(AIFeedback.created_at.desc()).all()
    return success_response(
        message="Feedback retrieved",
        data=[
            {
                "id": entry.id,
                "item_id": entry.item_id,
                "cache_id": entry.cache_id,
                "rating": entry.rating,
                "comment": entry.comment,
                "created_at": entry.created_at,
            }
            for entry in feedback
        ]
    )
