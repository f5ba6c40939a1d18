"""
Server action endpoint: one POST route dispatching to the registered actions
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.models import User
from app.schemas.plan import EventRead
from app.services import event_actions, ingredient_actions, item_actions, meal_actions, person_actions, service_actions
from app.services.action_utils import ActionContext
from app.utils.security import get_client_ip, get_optional_user, rate_limit_check
from app.utils.responses import error_response, rate_limit_error, success_response, unauthorized_error

logger = logging.getLogger(__name__)

router = APIRouter()

ACTIONS = {
    # Events
    "create_event": event_actions.create_event_action,
    "update_event": event_actions.update_event_action,
    "delete_event": event_actions.delete_event_action,
    "validate_write_key": event_actions.validate_write_key_action,
    # Meals
    "create_meal": meal_actions.create_meal_action,
    "create_meal_with_services": meal_actions.create_meal_with_services_action,
    "update_meal": meal_actions.update_meal_action,
    "delete_meal": meal_actions.delete_meal_action,
    # Services
    "create_service": service_actions.create_service_action,
    "update_service": service_actions.update_service_action,
    "delete_service": service_actions.delete_service_action,
    # Items
    "create_item": item_actions.create_item_action,
    "update_item": item_actions.update_item_action,
    "delete_item": item_actions.delete_item_action,
    "assign_item": item_actions.assign_item_action,
    "move_item": item_actions.move_item_action,
    "reorder_items": item_actions.reorder_items_action,
    "toggle_item_checked": item_actions.toggle_item_checked_action,
    # People
    "create_person": person_actions.create_person_action,
    "update_person": person_actions.update_person_action,
    "delete_person": person_actions.delete_person_action,
    "claim_person": person_actions.claim_person_action,
    "unclaim_person": person_actions.unclaim_person_action,
    "update_person_status": person_actions.update_person_status_action,
    "update_person_guest_count": person_actions.update_person_guest_count_action,
    # Ingredients
    "generate_ingredients": ingredient_actions.generate_ingredients_action,
    "generate_all_ingredients": ingredient_actions.generate_all_ingredients_action,
    "create_ingredient": ingredient_actions.create_ingredient_action,
    "update_ingredient": ingredient_actions.update_ingredient_action,
    "delete_ingredient": ingredient_actions.delete_ingredient_action,
    "delete_all_ingredients": ingredient_actions.delete_all_ingredients_action,
    "save_ai_feedback": ingredient_actions.save_ai_feedback_action,
}

AI_ACTIONS = ("generate_ingredients", "generate_all_ingredients")


def build_action_context(
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
) -> ActionContext:
    return ActionContext(
        db=db,
        user=user,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )


@router.post("/actions/{name}")
def run_action(
    name: str,
    payload: Dict[str, Any] = Body(default_factory=dict),
    ctx: ActionContext = Depends(build_action_context),
):
    """Run one server action; errors are turned into envelopes by the app's exception handlers"""
    action = ACTIONS.get(name)
    if action is None:
        return error_response(message=f"Unknown action: {name}", error_code="not_found", status_code=404)

    # LLM calls are the expensive ones
    if name in AI_ACTIONS and not rate_limit_check(f"ai:{ctx.client_ip}", settings.AI_RATE_LIMIT_PER_MINUTE):
        raise rate_limit_error()

    data = action(ctx, **payload)
    logger.info(f"Action {name} completed for {ctx.client_ip}")
    return success_response(message="OK", data=data)


@router.get("/me/events")
def my_events(ctx: ActionContext = Depends(build_action_context)):
    """Events owned by, or shared with, the signed-in user"""
    if ctx.user is None:
        raise unauthorized_error("Sign in to list your events")

    events = [
        EventRead.model_validate(event).model_copy(
            update={"admin_key": event.admin_key if event.owner_id == ctx.user.id else None}
        )
        for event in event_actions.get_my_events(ctx)
    ]
    return success_response(message="Events retrieved", data=events)
