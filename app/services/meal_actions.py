"""
Meal (day) actions
"""

from typing import List, Optional

from app.models import Event, Meal, Service
from app.schemas.actions import CreateMealInput, CreateMealWithServicesInput, DeleteByIdInput, UpdateMealInput
from app.schemas.plan import MealRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.repositories import PlanRepo, verify_access


def add_meal_with_services(
    ctx: ActionContext,
    event: Event,
    meal_date: str,
    title: Optional[str],
    services: List[str],
    adults: int = 0,
    children: int = 0,
    time: Optional[str] = None,
    address: Optional[str] = None,
) -> Meal:
    """Insert a meal plus one service per title; services inherit the meal headcount"""
    db = ctx.db
    meal = Meal(
        event_id=event.id,
        date=meal_date,
        title=title or None,
        adults=adults,
        children=children,
        time=time,
        address=address,
    )
    db.add(meal)
    db.flush()
    log_change(db, "create", "meals", meal.id, None, meal, ctx)

    for index, service_title in enumerate(services):
        service = Service(
            meal_id=meal.id,
            title=service_title,
            order_index=index,
            adults=adults,
            children=children,
            people_count=adults + children,
        )
        db.add(service)
        db.flush()
        log_change(db, "create", "services", service.id, None, service, ctx)

    return meal


@create_safe_action(CreateMealInput)
def create_meal_action(ctx: ActionContext, data: CreateMealInput) -> MealRead:
    event, _ = verify_access(ctx, data.slug, "meal:create", data.key, data.token)
    meal = add_meal_with_services(
        ctx,
        event,
        meal_date=data.date,
        title=data.title,
        services=[],
        adults=data.adults if data.adults is not None else event.adults,
        children=data.children if data.children is not None else event.children,
        time=data.time,
        address=data.address,
    )
    commit_and_revalidate(ctx, data.slug)
    ctx.db.refresh(meal)
    return MealRead.model_validate(meal)


@create_safe_action(CreateMealWithServicesInput)
def create_meal_with_services_action(ctx: ActionContext, data: CreateMealWithServicesInput) -> MealRead:
    event, _ = verify_access(ctx, data.slug, "meal:create", data.key, data.token)
    meal = add_meal_with_services(
        ctx,
        event,
        meal_date=data.date,
        title=data.title,
        services=data.services,
        adults=data.adults if data.adults is not None else event.adults,
        children=data.children if data.children is not None else event.children,
        time=data.time,
        address=data.address,
    )
    commit_and_revalidate(ctx, data.slug)
    ctx.db.refresh(meal)
    return MealRead.model_validate(meal)


@create_safe_action(UpdateMealInput)
def update_meal_action(ctx: ActionContext, data: UpdateMealInput) -> MealRead:
    event, _ = verify_access(ctx, data.slug, "meal:update", data.key, data.token)
    meal = PlanRepo.get_meal(ctx.db, event, data.id)
    old_data = row_to_dict(meal)

    # Headcount changes stay on the meal; services keep what they were seeded with
    for field in ("date", "title", "adults", "children", "time", "address"):
        value = getattr(data, field)
        if value is not None:
            setattr(meal, field, value)

    log_change(ctx.db, "update", "meals", meal.id, old_data, meal, ctx)
    commit_and_revalidate(ctx, data.slug)
    return MealRead.model_validate(meal)


@create_safe_action(DeleteByIdInput)
def delete_meal_action(ctx: ActionContext, data: DeleteByIdInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "meal:delete", data.key, data.token)
    meal = PlanRepo.get_meal(ctx.db, event, data.id)

    log_change(ctx.db, "delete", "meals", meal.id, meal, None, ctx)
    ctx.db.delete(meal)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True}
