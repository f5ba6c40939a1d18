"""
Read path: load one event's full plan tree
"""

from sqlalchemy.orm import Session, selectinload

from app.models import Event, Meal, Service, Item, Person
from app.schemas.plan import PlanData


def fetch_plan(db: Session, slug: str) -> PlanData:
    """Event with meals -> services -> items -> ingredients, plus people"""
    event = db.query(Event).filter(Event.slug == slug).first()
    if not event:
        return PlanData(event=None, meals=[], people=[])

    meals = (
        db.query(Meal)
        .filter(Meal.event_id == event.id)
        .options(
            selectinload(Meal.services)
            .selectinload(Service.items)
            .selectinload(Item.ingredients)
        )
        .order_by(Meal.date, Meal.id)
        .all()
    )
    people = db.query(Person).filter(Person.event_id == event.id).order_by(Person.name).all()

    return PlanData.model_validate({"event": event, "meals": meals, "people": people})
