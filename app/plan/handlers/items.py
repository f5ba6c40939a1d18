"""
Item handlers: create, update, assign, move, toggle, delete
"""

from typing import Optional

from app.plan import tree
from app.plan.handlers.base import ADD_ERROR, DELETE_ERROR, SAVED, UPDATE_ERROR, BaseHandler
from app.schemas.plan import ItemRead

UNASSIGNED_LABEL = "À prévoir"
CELEBRATED_NAMES = ("cécile", "cecile")

EDITABLE_FIELDS = ("name", "quantity", "note", "price", "person_id")


class ItemHandlers(BaseHandler):

    async def handle_create_item(
        self,
        service_id: int,
        name: str,
        quantity: Optional[str] = None,
        note: Optional[str] = None,
        price: Optional[float] = None,
        person_id: Optional[int] = None,
    ) -> Optional[ItemRead]:
        """The row only appears once the server has assigned it an id"""
        if self.read_only:
            return None
        if self.store.find_service(service_id) is None:
            return None

        try:
            data = await self.persist(
                "create_item",
                service_id=service_id,
                name=name,
                quantity=quantity,
                note=note,
                price=price,
                person_id=person_id,
            )
            created = ItemRead.model_validate(data)
        except Exception as e:
            self.fail(e, ADD_ERROR, "create_item")
            return None

        self.store.set_plan(lambda plan: tree.add_item(plan, service_id, created))
        self.store.close_sheet()
        self.store.notify(f"{name} ajouté ! ✨")
        return created

    async def handle_update_item(self, item_id: int, close_sheet: bool = False, **values) -> None:
        if self.read_only:
            return
        found = self.store.find_item(item_id)
        if found is None:
            return

        values = {field: value for field, value in values.items() if field in EDITABLE_FIELDS}
        previous = {field: getattr(found.item, field) for field in values}
        updated = found.item.model_copy(update=values)
        request = self.store.begin_request(f"item:{item_id}")
        self.store.set_plan(lambda plan: tree.update_item(plan, item_id, **values))

        try:
            await self.persist(
                "update_item",
                id=item_id,
                **{field: getattr(updated, field) for field in EDITABLE_FIELDS},
            )
        except Exception as e:
            if self.store.is_current(f"item:{item_id}", request):
                self.store.set_plan(lambda plan: tree.update_item(plan, item_id, **previous))
            self.fail(e, UPDATE_ERROR, "update_item")
            return

        self.store.notify(SAVED)
        if close_sheet:
            self.store.close_sheet()

    async def handle_assign(self, item_id: int, person_id: Optional[int]) -> None:
        if self.read_only:
            return
        found = self.store.find_item(item_id)
        if found is None:
            return

        previous_person = found.item.person_id
        person = self.store.find_person(person_id)
        request = self.store.begin_request(f"item:{item_id}")
        self.store.set_plan(lambda plan: tree.update_item(plan, item_id, person_id=person_id))
        self.store.close_sheet()
        self.store.notify(f"Article assigné à {person.name if person else UNASSIGNED_LABEL} ✓")

        if person and person.name.lower() in CELEBRATED_NAMES:
            self.store.push_effect("celebrate")

        try:
            await self.persist("assign_item", id=item_id, person_id=person_id)
        except Exception as e:
            if self.store.is_current(f"item:{item_id}", request):
                self.store.set_plan(lambda plan: tree.update_item(plan, item_id, person_id=previous_person))
            self.fail(e, UPDATE_ERROR, "assign_item")

    async def handle_delete(self, item_id: int) -> None:
        if self.read_only:
            return
        found = self.store.find_item(item_id)
        if found is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.remove_item(plan, item_id))
        self.store.close_sheet()
        self.store.notify(f"{found.item.name} supprimé ✓")

        try:
            await self.persist("delete_item", id=item_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_item")

    async def handle_move_item(self, item_id: int, target_service_id: int, target_order: Optional[int] = None) -> None:
        if self.read_only:
            return
        found = self.store.find_item(item_id)
        if found is None or self.store.find_service(target_service_id) is None:
            return
        if found.service.id == target_service_id and target_order is None:
            return

        origin_service_id = found.service.id
        origin_index = [item.id for item in found.service.items].index(item_id)
        request = self.store.begin_request(f"item:{item_id}")
        self.store.set_plan(lambda plan: tree.move_item(plan, item_id, target_service_id, target_order))

        try:
            await self.persist(
                "move_item",
                item_id=item_id,
                target_service_id=target_service_id,
                target_order=target_order,
            )
        except Exception as e:
            if self.store.is_current(f"item:{item_id}", request):
                self.store.set_plan(lambda plan: tree.move_item(plan, item_id, origin_service_id, origin_index))
            self.fail(e, UPDATE_ERROR, "move_item")

    async def handle_toggle_item_checked(self, item_id: int, checked: bool) -> None:
        if self.read_only:
            return
        if self.store.find_item(item_id) is None:
            return

        request = self.store.begin_request(f"item:{item_id}:checked")
        self.store.set_plan(lambda plan: tree.update_item(plan, item_id, checked=checked))

        try:
            await self.persist("toggle_item_checked", id=item_id, checked=checked)
        except Exception as e:
            if self.store.is_current(f"item:{item_id}:checked", request):
                self.store.set_plan(lambda plan: tree.update_item(plan, item_id, checked=not checked))
            self.fail(e, UPDATE_ERROR, "toggle_item_checked")
