"""
Item (dish/product) actions
"""

from typing import Optional

from app.models import Event, Item
from app.schemas.actions import (
    AssignItemInput,
    CreateItemInput,
    DeleteByIdInput,
    MoveItemInput,
    ReorderItemsInput,
    ToggleItemCheckedInput,
    UpdateItemInput,
)
from app.schemas.plan import ItemRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.repositories import PlanRepo, verify_access


def _checked_person_id(ctx: ActionContext, event: Event, person_id: Optional[int]) -> Optional[int]:
    # Only people of the same event may be assigned
    if person_id is None:
        return None
    return PlanRepo.get_person(ctx.db, event, person_id).id


@create_safe_action(CreateItemInput)
def create_item_action(ctx: ActionContext, data: CreateItemInput) -> ItemRead:
    event, _ = verify_access(ctx, data.slug, "item:create", data.key, data.token)
    db = ctx.db
    service = PlanRepo.get_service(db, event, data.service_id)

    item = Item(
        service_id=service.id,
        name=data.name,
        quantity=data.quantity or None,
        note=data.note or None,
        price=data.price,
        person_id=_checked_person_id(ctx, event, data.person_id),
        order_index=PlanRepo.next_item_order(db, service.id),
    )
    db.add(item)
    db.flush()
    log_change(db, "create", "items", item.id, None, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    db.refresh(item)
    return ItemRead.model_validate(item)


@create_safe_action(UpdateItemInput)
def update_item_action(ctx: ActionContext, data: UpdateItemInput) -> ItemRead:
    event, _ = verify_access(ctx, data.slug, "item:update", data.key, data.token)
    item = PlanRepo.get_item(ctx.db, event, data.id)
    old_data = row_to_dict(item)

    item.name = data.name
    item.quantity = data.quantity or None
    item.note = data.note or None
    item.price = data.price
    item.person_id = _checked_person_id(ctx, event, data.person_id)

    log_change(ctx.db, "update", "items", item.id, old_data, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ItemRead.model_validate(item)


@create_safe_action(DeleteByIdInput)
def delete_item_action(ctx: ActionContext, data: DeleteByIdInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "item:delete", data.key, data.token)
    item = PlanRepo.get_item(ctx.db, event, data.id)

    log_change(ctx.db, "delete", "items", item.id, item, None, ctx)
    ctx.db.delete(item)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True}


@create_safe_action(AssignItemInput)
def assign_item_action(ctx: ActionContext, data: AssignItemInput) -> ItemRead:
    event, _ = verify_access(ctx, data.slug, "item:assign", data.key, data.token)
    item = PlanRepo.get_item(ctx.db, event, data.id)
    old_data = row_to_dict(item)

    item.person_id = _checked_person_id(ctx, event, data.person_id)

    log_change(ctx.db, "update", "items", item.id, old_data, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ItemRead.model_validate(item)


@create_safe_action(MoveItemInput)
def move_item_action(ctx: ActionContext, data: MoveItemInput) -> ItemRead:
    """Move an item into a service at ``target_order`` (appended when absent or out of range).

    Both the source and the target service are renumbered from 0 afterwards,
    so a move within one service is a plain reorder.
    """
    event, _ = verify_access(ctx, data.slug, "item:update", data.key, data.token)
    db = ctx.db
    item = PlanRepo.get_item(db, event, data.item_id)
    target = PlanRepo.get_service(db, event, data.target_service_id)
    old_data = row_to_dict(item)
    source_id = item.service_id

    siblings = (
        db.query(Item)
        .filter(Item.service_id == target.id, Item.id != item.id)
        .order_by(Item.order_index, Item.id)
        .all()
    )
    position = data.target_order
    if position is None or position > len(siblings):
        position = len(siblings)
    siblings.insert(position, item)

    item.service_id = target.id
    for index, sibling in enumerate(siblings):
        sibling.order_index = index

    if source_id != target.id:
        remaining = (
            db.query(Item)
            .filter(Item.service_id == source_id, Item.id != item.id)
            .order_by(Item.order_index, Item.id)
            .all()
        )
        for index, sibling in enumerate(remaining):
            sibling.order_index = index

    log_change(db, "update", "items", item.id, old_data, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ItemRead.model_validate(item)


@create_safe_action(ReorderItemsInput)
def reorder_items_action(ctx: ActionContext, data: ReorderItemsInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "item:update", data.key, data.token)
    db = ctx.db
    service = PlanRepo.get_service(db, event, data.service_id)

    items = {item.id: item for item in db.query(Item).filter(Item.service_id == service.id).all()}
    for index, item_id in enumerate(data.item_ids):
        if item_id in items:
            items[item_id].order_index = index

    commit_and_revalidate(ctx, data.slug)
    return {"success": True}


@create_safe_action(ToggleItemCheckedInput)
def toggle_item_checked_action(ctx: ActionContext, data: ToggleItemCheckedInput) -> ItemRead:
    event, _ = verify_access(ctx, data.slug, "item:check", data.key, data.token)
    item = PlanRepo.get_item(ctx.db, event, data.id)
    old_data = row_to_dict(item)

    item.checked = data.checked

    log_change(ctx.db, "update", "items", item.id, old_data, item, ctx)
    commit_and_revalidate(ctx, data.slug)
    return ItemRead.model_validate(item)
