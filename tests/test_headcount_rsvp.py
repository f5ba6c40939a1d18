"""
Tests for headcount resolution and the RSVP state machine
"""

import pytest

from app.plan import rsvp
from app.plan.headcount import DEFAULT_PEOPLE_COUNT, people_count_from_note, resolve_people_count
from app.schemas.plan import PersonRead

def make_person(status=None, guest_adults=0, guest_children=0, person_id=1):
    return PersonRead(
        id=person_id,
        event_id=1,
        name=f"Person {person_id}",
        status=status,
        guest_adults=guest_adults,
        guest_children=guest_children,
    )

def test_note_overrides_service_headcount():
    """Lasagnes noted "Pour 8 personnes" in a service of 4 is generated for 8"""
    assert resolve_people_count(None, "Pour 8 personnes", 4, 0) == 8

def test_headcount_priority_chain():
    assert resolve_people_count(12, "Pour 8 personnes", 4, 20) == 12
    assert resolve_people_count(None, "pour 1 personne", 4, 0) == 1
    assert resolve_people_count(None, None, 4, 6) == 6
    assert resolve_people_count(None, "rien", 7, 6) == 7
    assert resolve_people_count(None, None, 0, 0) == DEFAULT_PEOPLE_COUNT

def test_zero_override_falls_through():
    assert resolve_people_count(0, None, 5, 0) == 5

def test_people_count_from_note():
    assert people_count_from_note("Apporter du pain. POUR 10 PERSONNES merci") == 10
    assert people_count_from_note("pour 0 personne") is None
    assert people_count_from_note("") is None

@pytest.mark.parametrize("start", [None, "declined", "maybe"])
def test_confirming_resets_guest_counts(start):
    person = make_person(status=start, guest_adults=3, guest_children=2)
    confirmed = rsvp.transition(person, "confirmed")
    assert confirmed.status == "confirmed"
    assert (confirmed.guest_adults, confirmed.guest_children) == (0, 0)

def test_reconfirming_keeps_guest_counts():
    person = make_person(status="confirmed", guest_adults=2, guest_children=1)
    again = rsvp.transition(person, "confirmed")
    assert (again.guest_adults, again.guest_children) == (2, 1)

def test_any_status_may_follow_any_other():
    person = make_person(status="confirmed", guest_adults=2)
    declined = rsvp.transition(person, "declined")
    assert declined.status == "declined"
    assert declined.guest_adults == 2
    assert rsvp.transition(declined, None).status is None
    assert rsvp.transition(declined, "maybe").status == "maybe"

def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        rsvp.transition(make_person(), "attending")

def test_guest_counts_only_while_confirmed():
    with pytest.raises(ValueError):
        rsvp.set_guest_counts(make_person(status="maybe"), 1, 1)

    updated = rsvp.set_guest_counts(make_person(status="confirmed"), 2, -4)
    assert (updated.guest_adults, updated.guest_children) == (2, 0)

def test_rsvp_stats_and_visibility():
    people = [
        make_person("confirmed", 1, 2, person_id=1),
        make_person("confirmed", 0, 0, person_id=2),
        make_person("declined", 5, 5, person_id=3),
        make_person("maybe", person_id=4),
        make_person(None, person_id=5),
    ]
    stats = rsvp.rsvp_stats(people)

    assert stats["confirmed"] == 2
    assert stats["declined"] == 1
    assert stats["maybe"] == 1
    assert stats["pending"] == 1
    assert stats["adults"] == 3  # 1 + 1 guest, then 1
    assert stats["children"] == 2
    assert stats["headcount"] == 5
    assert rsvp.confirmed_headcount(people) == 5
    assert [person.id for person in rsvp.visible_people(people)] == [1, 2, 4, 5]
