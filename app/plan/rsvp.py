"""
RSVP state machine for people.

Any status may follow any other. Guest counts are reset when somebody
becomes ``confirmed`` from a non-confirmed state and can only be changed
while confirmed.
"""

from typing import Iterable, List, Optional

from app.schemas.plan import PersonRead

STATUSES = (None, "confirmed", "declined", "maybe")

# What a person can answer; None only means nobody answered yet
RSVP_CHOICES = ("confirmed", "declined", "maybe")


def transition(person: PersonRead, status: Optional[str]) -> PersonRead:
    if status not in STATUSES:
        raise ValueError(f"Unknown RSVP status: {status}")

    update = {"status": status}
    if status == "confirmed" and person.status != "confirmed":
        update["guest_adults"] = 0
        update["guest_children"] = 0
    return person.model_copy(update=update)


def set_guest_counts(person: PersonRead, guest_adults: int, guest_children: int) -> PersonRead:
    if person.status != "confirmed":
        raise ValueError("Guest counts can only change while confirmed")
    return person.model_copy(update={
        "guest_adults": max(0, int(guest_adults)),
        "guest_children": max(0, int(guest_children)),
    })


def effective_adults(person: PersonRead) -> int:
    """The person plus the adults they bring"""
    return 1 + person.guest_adults


def confirmed_headcount(people: Iterable[PersonRead]) -> int:
    return sum(
        effective_adults(person) + person.guest_children
        for person in people
        if person.status == "confirmed"
    )


def visible_people(people: Iterable[PersonRead]) -> List[PersonRead]:
    """Everyone except those who declined"""
    return [person for person in people if person.status != "declined"]


def rsvp_stats(people: Iterable[PersonRead]) -> dict:
    people = list(people)
    confirmed = [person for person in people if person.status == "confirmed"]
    return {
        "confirmed": len(confirmed),
        "declined": sum(1 for person in people if person.status == "declined"),
        "maybe": sum(1 for person in people if person.status == "maybe"),
        "pending": sum(1 for person in people if person.status is None),
        "adults": sum(effective_adults(person) for person in confirmed),
        "children": sum(person.guest_children for person in confirmed),
        "headcount": confirmed_headcount(confirmed),
    }
