"""
Person actions: roster management, claiming, RSVP and guest counts
"""

import logging
import secrets

from app.models import Item, Person
from app.plan import rsvp
from app.schemas.actions import (
    ClaimPersonInput,
    CreatePersonInput,
    DeleteByIdInput,
    UpdateGuestCountInput,
    UpdatePersonInput,
    UpdatePersonStatusInput,
)
from app.schemas.plan import PersonCreated, PersonRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.repositories import PlanRepo, verify_access
from app.utils.errors import ConflictError, UnauthorizedError, ValidationFailed
from app.utils.security import assert_can_modify_person, can

logger = logging.getLogger(__name__)


def mint_person_token() -> str:
    return secrets.token_urlsafe(24)


@create_safe_action(CreatePersonInput)
def create_person_action(ctx: ActionContext, data: CreatePersonInput) -> PersonCreated:
    event, _ = verify_access(ctx, data.slug, "person:create", data.key, data.token)
    db = ctx.db

    person = Person(
        event_id=event.id,
        name=data.name,
        emoji=data.emoji or None,
        token=mint_person_token(),
    )
    db.add(person)
    db.flush()
    log_change(db, "create", "people", person.id, None, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    db.refresh(person)
    return PersonCreated.model_validate(person)


@create_safe_action(UpdatePersonInput)
def update_person_action(ctx: ActionContext, data: UpdatePersonInput) -> PersonRead:
    event, permissions = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    person = PlanRepo.get_person(ctx.db, event, data.id)
    assert_can_modify_person(permissions, person.id, person.user_id)
    if not data.name:
        raise ValidationFailed("Name is required")

    old_data = row_to_dict(person)
    person.name = data.name
    person.emoji = data.emoji or None

    log_change(ctx.db, "update", "people", person.id, old_data, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    return PersonRead.model_validate(person)


@create_safe_action(DeleteByIdInput)
def delete_person_action(ctx: ActionContext, data: DeleteByIdInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "person:delete", data.key, data.token)
    db = ctx.db
    person = PlanRepo.get_person(db, event, data.id)

    # Their items go back to "à prévoir"
    db.query(Item).filter(Item.person_id == person.id).update(
        {Item.person_id: None}, synchronize_session=False
    )
    log_change(db, "delete", "people", person.id, person, None, ctx)
    db.delete(person)
    commit_and_revalidate(ctx, data.slug)
    return {"success": True}


@create_safe_action(ClaimPersonInput)
def claim_person_action(ctx: ActionContext, data: ClaimPersonInput) -> PersonCreated:
    """Link a person row to the signed-in user; returns the guest token too"""
    event, _ = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    if ctx.user is None:
        raise UnauthorizedError("Unauthorized: Please log in to claim a profile")

    person = PlanRepo.get_person(ctx.db, event, data.person_id)
    if person.user_id and person.user_id != ctx.user.id:
        raise ConflictError("This profile is already claimed")

    old_data = row_to_dict(person)
    person.user_id = ctx.user.id
    if not person.token:
        person.token = mint_person_token()

    log_change(ctx.db, "update", "people", person.id, old_data, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    logger.info(f"Person {person.id} claimed by user {ctx.user.id}")
    return PersonCreated.model_validate(person)


@create_safe_action(ClaimPersonInput)
def unclaim_person_action(ctx: ActionContext, data: ClaimPersonInput) -> PersonRead:
    event, permissions = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    if ctx.user is None:
        raise UnauthorizedError("Unauthorized")

    person = PlanRepo.get_person(ctx.db, event, data.person_id)
    if person.user_id != ctx.user.id and not can("person:update:other", permissions):
        raise UnauthorizedError("Unauthorized: You cannot modify this person")

    old_data = row_to_dict(person)
    person.user_id = None

    log_change(ctx.db, "update", "people", person.id, old_data, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    return PersonRead.model_validate(person)


@create_safe_action(UpdatePersonStatusInput)
def update_person_status_action(ctx: ActionContext, data: UpdatePersonStatusInput) -> PersonRead:
    event, permissions = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    person = PlanRepo.get_person(ctx.db, event, data.person_id)
    assert_can_modify_person(permissions, person.id, person.user_id)

    old_data = row_to_dict(person)
    updated = rsvp.transition(PersonRead.model_validate(person), data.status)
    person.status = updated.status
    person.guest_adults = updated.guest_adults
    person.guest_children = updated.guest_children

    log_change(ctx.db, "update", "people", person.id, old_data, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    return PersonRead.model_validate(person)


@create_safe_action(UpdateGuestCountInput)
def update_person_guest_count_action(ctx: ActionContext, data: UpdateGuestCountInput) -> PersonRead:
    event, permissions = verify_access(ctx, data.slug, "event:read", data.key, data.token)
    person = PlanRepo.get_person(ctx.db, event, data.person_id)
    assert_can_modify_person(permissions, person.id, person.user_id)

    try:
        updated = rsvp.set_guest_counts(PersonRead.model_validate(person), data.guest_adults, data.guest_children)
    except ValueError as e:
        raise ConflictError(str(e)) from e

    old_data = row_to_dict(person)
    person.guest_adults = updated.guest_adults
    person.guest_children = updated.guest_children

    log_change(ctx.db, "update", "people", person.id, old_data, person, ctx)
    commit_and_revalidate(ctx, data.slug)
    return PersonRead.model_validate(person)
