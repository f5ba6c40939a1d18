"""
Service (course) actions
"""

from app.models import Service
from app.schemas.actions import CreateServiceInput, DeleteByIdInput, UpdateServiceInput
from app.schemas.plan import ServiceRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.repositories import PlanRepo, verify_access


@create_safe_action(CreateServiceInput)
def create_service_action(ctx: ActionContext, data: CreateServiceInput) -> ServiceRead:
    event, _ = verify_access(ctx, data.slug, "service:create", data.key, data.token)
    db = ctx.db
    meal = PlanRepo.get_meal(db, event, data.meal_id)

    adults = data.adults if data.adults is not None else meal.adults
    children = data.children if data.children is not None else meal.children
    people_count = data.people_count if data.people_count is not None else adults + children

    service = Service(
        meal_id=meal.id,
        title=data.title,
        description=data.description,
        order_index=PlanRepo.next_service_order(db, meal.id),
        adults=adults,
        children=children,
        people_count=people_count,
    )
    db.add(service)
    db.flush()
    log_change(db, "create", "services", service.id, None, service, ctx)
    commit_and_revalidate(ctx, data.slug)
    db.refresh(service)
    return ServiceRead.model_validate(service)


@create_safe_action(UpdateServiceInput)
def update_service_action(ctx: ActionContext, data: UpdateServiceInput) -> ServiceRead:
    event, _ = verify_access(ctx, data.slug, "service:update", data.key, data.token)
    service = PlanRepo.get_service(ctx.db, event, data.id)
    old_data = row_to_dict(service)

    for field in ("title", "description", "adults", "children", "people_count"):
        value = getattr(data, field)
        if value is not None:
            setattr(service, field, value)

    log_change(ctx.db, "update", "services", service.id, old_data, service, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ServiceRead.model_validate(service)


@create_safe_action(DeleteByIdInput)
def delete_service_action(ctx: ActionContext, data: DeleteByIdInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "service:delete", data.key, data.token)
    service = PlanRepo.get_service(ctx.db, event, data.id)

    log_change(ctx.db, "delete", "services", service.id, service, None, ctx)
    ctx.db.delete(service)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True}
