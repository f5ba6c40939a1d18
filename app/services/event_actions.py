"""
Event-level actions: creation (with starter meals), settings, deletion
"""

import logging
import uuid
from datetime import date

from app.models import Event, Person
from app.schemas.actions import CreateEventInput, DeleteEventInput, UpdateEventInput, ValidateKeyInput
from app.schemas.plan import EventRead
from app.services.action_utils import ActionContext, commit_and_revalidate, create_safe_action
from app.services.change_log import log_change, row_to_dict
from app.services.meal_actions import add_meal_with_services
from app.services.repositories import EventRepo, verify_access
from app.utils.errors import ValidationFailed
from app.utils.sanitize import sanitize_slug, sanitize_strict_text
from app.utils.security import build_permission_context

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 100
OWNER_EMOJI = "\U0001F451"
STARTER_MEAL_TITLE = "Repas complet"

CREATION_MODE_SERVICES = {
    "total": ["Aperitif", "Entree", "Plats", "Fromage", "Dessert", "Boissons", "Autre"],
    "classique": ["Entree", "Plats", "Dessert"],
    "apero": ["Aperitif", "Boissons"],
    "zero": [],
}


def find_unique_slug(db, base_slug: str) -> str:
    """``base``, then ``base-1``, ``base-2``... until no event uses it"""
    slug = base_slug
    counter = 1
    while EventRepo.slug_exists(db, slug):
        suffix = f"-{counter}"
        slug = sanitize_slug(base_slug[:SLUG_MAX_LENGTH - len(suffix)] + suffix, SLUG_MAX_LENGTH)
        counter += 1
    return slug


@create_safe_action(CreateEventInput)
def create_event_action(ctx: ActionContext, data: CreateEventInput) -> EventRead:
    if not data.slug:
        raise ValidationFailed("Slug is required")
    if not data.name:
        raise ValidationFailed("Name is required")

    db = ctx.db
    slug = find_unique_slug(db, data.slug)
    admin_key = data.key if data.key else str(uuid.uuid4())

    event = Event(
        slug=slug,
        name=data.name,
        description=data.description,
        admin_key=admin_key,
        owner_id=ctx.user.id if ctx.user else None,
        adults=data.adults,
        children=data.children,
    )
    db.add(event)
    db.flush()
    log_change(db, "create", "events", event.id, None, event, ctx)

    if ctx.user:
        owner = Person(
            event_id=event.id,
            name=sanitize_strict_text(ctx.user.name or "Utilisateur", 50),
            emoji=OWNER_EMOJI,
            user_id=ctx.user.id,
        )
        db.add(owner)
        db.flush()
        log_change(db, "create", "people", owner.id, None, owner, ctx)

    services = CREATION_MODE_SERVICES.get(data.creation_mode or "zero", [])
    if services:
        add_meal_with_services(
            ctx,
            event,
            meal_date=data.date or date.today().isoformat(),
            title=STARTER_MEAL_TITLE,
            services=services,
            adults=event.adults,
            children=event.children,
        )

    commit_and_revalidate(ctx, slug)
    db.refresh(event)
    logger.info(f"Event created: {slug} (mode={data.creation_mode or 'zero'})")
    return EventRead.model_validate(event)


@create_safe_action(UpdateEventInput)
def update_event_action(ctx: ActionContext, data: UpdateEventInput) -> EventRead:
    event, _ = verify_access(ctx, data.slug, "event:update", data.key, data.token)
    old_data = row_to_dict(event)

    if data.name is not None:
        if not data.name:
            raise ValidationFailed("Name is required")
        event.name = data.name
    if data.description is not None:
        event.description = data.description or None
    if data.adults is not None:
        event.adults = data.adults
    if data.children is not None:
        event.children = data.children

    log_change(ctx.db, "update", "events", event.id, old_data, event, ctx)
    commit_and_revalidate(ctx, event.slug)
    return EventRead.model_validate(event)


@create_safe_action(DeleteEventInput)
def delete_event_action(ctx: ActionContext, data: DeleteEventInput) -> dict:
    event, _ = verify_access(ctx, data.slug, "event:delete", data.key, data.token)

    # Logged before the row disappears
    log_change(ctx.db, "delete", "events", event.id, event, None, ctx)
    ctx.db.delete(event)
    commit_and_revalidate(ctx, data.slug)
    logger.info(f"Event deleted: {data.slug}")
    return {"success": True}


@create_safe_action(ValidateKeyInput)
def validate_write_key_action(ctx: ActionContext, data: ValidateKeyInput) -> bool:
    """True when the key (or owner session) grants write access to the event"""
    if not data.slug:
        return False
    event = EventRepo.get_by_slug(ctx.db, data.slug)
    if not event:
        return False
    permissions = build_permission_context(ctx.db, event, data.key, data.token, ctx.user)
    return permissions.is_owner or permissions.has_valid_key


def get_my_events(ctx: ActionContext):
    """Events the signed-in user owns or appears in as a claimed person"""
    if not ctx.user:
        return []
    db = ctx.db
    participating = db.query(Person.event_id).filter(Person.user_id == ctx.user.id)
    return (
        db.query(Event)
        .filter((Event.owner_id == ctx.user.id) | (Event.id.in_(participating)))
        .order_by(Event.created_at.desc())
        .all()
    )