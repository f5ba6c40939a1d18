"""
Repository layer: lookups shared by the server actions and the access check
every mutation starts with.
"""

from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import Event, Meal, Service, Item, Ingredient, Person
from app.utils.errors import NotFoundError
from app.utils.security import PermissionContext, assert_can, build_permission_context


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Event]:
        return db.query(Event).filter(Event.slug == slug).first()

    @staticmethod
    def get_by_id(db: Session, event_id: int) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return db.query(Event.id).filter(Event.slug == slug).first() is not None


def verify_access(
    ctx,
    slug: str,
    action: str,
    key: Optional[str] = None,
    token: Optional[str] = None,
) -> Tuple[Event, PermissionContext]:
    """Resolve the event and make sure the caller may perform ``action`` on it"""
    event = EventRepo.get_by_slug(ctx.db, slug)
    if not event:
        raise NotFoundError("Event not found")

    permissions = build_permission_context(ctx.db, event, key, token, ctx.user)
    assert_can(action, permissions)
    return event, permissions


# -------- Plan entity lookups, always scoped to one event --------

class PlanRepo:
    @staticmethod
    def get_meal(db: Session, event: Event, meal_id: int) -> Meal:
        meal = db.query(Meal).filter(Meal.id == meal_id, Meal.event_id == event.id).first()
        if not meal:
            raise NotFoundError("Meal not found")
        return meal

    @staticmethod
    def get_service(db: Session, event: Event, service_id: int) -> Service:
        service = (
            db.query(Service)
            .join(Meal, Service.meal_id == Meal.id)
            .filter(Service.id == service_id, Meal.event_id == event.id)
            .first()
        )
        if not service:
            raise NotFoundError("Service not found")
        return service

    @staticmethod
    def get_item(db: Session, event: Event, item_id: int) -> Item:
        item = (
            db.query(Item)
            .join(Service, Item.service_id == Service.id)
            .join(Meal, Service.meal_id == Meal.id)
            .filter(Item.id == item_id, Meal.event_id == event.id)
            .first()
        )
        if not item:
            raise NotFoundError("Item not found")
        return item

    @staticmethod
    def get_ingredient(db: Session, event: Event, ingredient_id: int) -> Ingredient:
        ingredient = (
            db.query(Ingredient)
            .join(Item, Ingredient.item_id == Item.id)
            .join(Service, Item.service_id == Service.id)
            .join(Meal, Service.meal_id == Meal.id)
            .filter(Ingredient.id == ingredient_id, Meal.event_id == event.id)
            .first()
        )
        if not ingredient:
            raise NotFoundError("Ingredient not found")
        return ingredient

    @staticmethod
    def get_person(db: Session, event: Event, person_id: int) -> Person:
        person = db.query(Person).filter(Person.id == person_id, Person.event_id == event.id).first()
        if not person:
            raise NotFoundError("Person not found")
        return person

    @staticmethod
    def next_item_order(db: Session, service_id: int) -> int:
        last = db.query(func.max(Item.order_index)).filter(Item.service_id == service_id).scalar()
        return (last if last is not None else -1) + 1

    @staticmethod
    def next_service_order(db: Session, meal_id: int) -> int:
        last = db.query(func.max(Service.order_index)).filter(Service.meal_id == meal_id).scalar()
        return (last if last is not None else -1) + 1

    @staticmethod
    def next_ingredient_order(db: Session, item_id: int) -> int:
        last = db.query(func.max(Ingredient.order_index)).filter(Ingredient.item_id == item_id).scalar()
        return (last if last is not None else -1) + 1
