"""
Person handlers: roster, claiming, RSVP status and guest counts.

Person-scoped calls carry the guest token stored for that person, so a guest
without the write key can still answer for themselves.
"""

from typing import Optional

from app.plan import rsvp, tree
from app.plan.handlers.base import ADD_ERROR, DELETE_ERROR, UPDATE_ERROR, BaseHandler
from app.schemas.plan import PersonCreated, PersonRead


class PersonHandlers(BaseHandler):

    def _person_token(self, person_id: int) -> Optional[str]:
        return self.store.guest_tokens.get(person_id)

    def _can_edit_person(self, person_id: int) -> bool:
        """Write access, or the guest token of that very person"""
        return not self.read_only or person_id in self.store.guest_tokens

    def _remember_token(self, person: PersonCreated) -> None:
        if person.token:
            self.store.guest_tokens[person.id] = person.token

    async def handle_create_person(self, name: str, emoji: Optional[str] = None) -> Optional[PersonRead]:
        if self.read_only:
            return None
        try:
            data = await self.persist("create_person", name=name, emoji=emoji)
            created = PersonCreated.model_validate(data)
        except Exception as e:
            self.fail(e, ADD_ERROR, "create_person")
            return None

        self._remember_token(created)
        person = PersonRead.model_validate(created.model_dump(exclude={"token"}))
        self.store.set_plan(lambda plan: tree.insert_person_sorted(plan, person))
        self.store.close_sheet()
        self.store.notify(f"{name} ajouté(e) ! ✨")
        return person

    async def handle_update_person(self, person_id: int, name: str, emoji: Optional[str] = None) -> None:
        if not self._can_edit_person(person_id):
            return
        person = self.store.find_person(person_id)
        if person is None:
            return

        previous = {"name": person.name, "emoji": person.emoji}
        request = self.store.begin_request(f"person:{person_id}")
        self.store.set_plan(lambda plan: tree.replace_person(plan, person_id, name=name, emoji=emoji))

        try:
            await self.persist("update_person", token=self._person_token(person_id), id=person_id, name=name, emoji=emoji)
        except Exception as e:
            if self.store.is_current(f"person:{person_id}", request):
                self.store.set_plan(lambda plan: tree.replace_person(plan, person_id, **previous))
            self.fail(e, UPDATE_ERROR, "update_person")
            return

        self.store.close_sheet()
        self.store.notify("Convive mis à jour ✓")

    async def handle_delete_person(self, person_id: int) -> None:
        """Their items go back to unassigned in the same update"""
        if self.read_only:
            return
        person = self.store.find_person(person_id)
        if person is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.remove_person(plan, person_id))
        self.store.close_sheet()
        self.store.notify(f"{person.name or 'Convive'} supprimé ✓")

        try:
            await self.persist("delete_person", id=person_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_person")

    async def handle_claim_person(self, person_id: int) -> None:
        if self.read_only:
            return
        if self.store.find_person(person_id) is None:
            return

        try:
            data = await self.persist("claim_person", person_id=person_id)
            claimed = PersonCreated.model_validate(data)
        except Exception as e:
            self.fail(e, UPDATE_ERROR, "claim_person")
            return

        self._remember_token(claimed)
        self.store.set_plan(lambda plan: tree.replace_person(plan, person_id, user_id=claimed.user_id))
        self.store.close_sheet()
        self.store.notify(f"Bienvenue {claimed.name} ✨")

    async def handle_unclaim_person(self, person_id: int) -> None:
        if self.read_only:
            return
        person = self.store.find_person(person_id)
        if person is None:
            return

        previous_user = person.user_id
        request = self.store.begin_request(f"person:{person_id}:claim")
        self.store.set_plan(lambda plan: tree.replace_person(plan, person_id, user_id=None))

        try:
            await self.persist("unclaim_person", person_id=person_id)
        except Exception as e:
            if self.store.is_current(f"person:{person_id}:claim", request):
                self.store.set_plan(lambda plan: tree.replace_person(plan, person_id, user_id=previous_user))
            self.fail(e, UPDATE_ERROR, "unclaim_person")
            return

        self.store.guest_tokens.pop(person_id, None)

    async def handle_status_change(self, person_id: int, status: Optional[str]) -> None:
        if not self._can_edit_person(person_id):
            return
        person = self.store.find_person(person_id)
        if person is None or status not in rsvp.RSVP_CHOICES:
            return

        updated = rsvp.transition(person, status)
        request = self.store.begin_request(f"person:{person_id}:rsvp")
        self.store.set_plan(lambda plan: tree.replace_person(
            plan,
            person_id,
            status=updated.status,
            guest_adults=updated.guest_adults,
            guest_children=updated.guest_children,
        ))

        try:
            await self.persist("update_person_status", token=self._person_token(person_id), person_id=person_id, status=status)
        except Exception as e:
            if self.store.is_current(f"person:{person_id}:rsvp", request):
                self.store.set_plan(lambda plan: tree.replace_person(
                    plan,
                    person_id,
                    status=person.status,
                    guest_adults=person.guest_adults,
                    guest_children=person.guest_children,
                ))
            self.fail(e, UPDATE_ERROR, "update_person_status")

    async def handle_count_change(self, person_id: int, guest_adults: int, guest_children: int) -> None:
        """Only meaningful for confirmed people; anyone else is left alone"""
        if not self._can_edit_person(person_id):
            return
        person = self.store.find_person(person_id)
        if person is None or person.status != "confirmed":
            return

        updated = rsvp.set_guest_counts(person, guest_adults, guest_children)
        request = self.store.begin_request(f"person:{person_id}:rsvp")
        self.store.set_plan(lambda plan: tree.replace_person(
            plan, person_id, guest_adults=updated.guest_adults, guest_children=updated.guest_children
        ))

        try:
            await self.persist(
                "update_person_guest_count",
                token=self._person_token(person_id),
                person_id=person_id,
                guest_adults=updated.guest_adults,
                guest_children=updated.guest_children,
            )
        except Exception as e:
            if self.store.is_current(f"person:{person_id}:rsvp", request):
                self.store.set_plan(lambda plan: tree.replace_person(
                    plan, person_id, guest_adults=person.guest_adults, guest_children=person.guest_children
                ))
            self.fail(e, UPDATE_ERROR, "update_person_guest_count")
