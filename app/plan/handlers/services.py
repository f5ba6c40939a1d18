"""
Service handlers
"""

from typing import Optional

from app.plan import tree
from app.plan.handlers.base import ADD_ERROR, DELETE_ERROR, UPDATE_ERROR, BaseHandler
from app.schemas.plan import ServiceRead

SERVICE_FIELDS = ("title", "description", "adults", "children", "people_count")


class ServiceHandlers(BaseHandler):

    async def handle_create_service(self, meal_id: int, title: str, **details) -> Optional[ServiceRead]:
        if self.read_only:
            return None
        if self.store.find_meal(meal_id) is None:
            return None

        try:
            data = await self.persist("create_service", meal_id=meal_id, title=title, **details)
            created = ServiceRead.model_validate(data)
        except Exception as e:
            self.fail(e, ADD_ERROR, "create_service")
            return None

        self.store.set_plan(lambda plan: tree.add_service(plan, meal_id, created))
        self.store.close_sheet()
        self.store.notify("Service ajouté ! ✓")
        return created

    async def handle_update_service(self, service_id: int, **values) -> None:
        if self.read_only:
            return
        service = self.store.find_service(service_id)
        if service is None:
            return

        values = {field: value for field, value in values.items() if field in SERVICE_FIELDS}
        previous = {field: getattr(service, field) for field in values}
        request = self.store.begin_request(f"service:{service_id}")
        self.store.set_plan(lambda plan: tree.update_service(plan, service_id, **values))

        try:
            await self.persist("update_service", id=service_id, **values)
        except Exception as e:
            if self.store.is_current(f"service:{service_id}", request):
                self.store.set_plan(lambda plan: tree.update_service(plan, service_id, **previous))
            self.fail(e, UPDATE_ERROR, "update_service")
            return

        self.store.close_sheet()
        self.store.notify("Service mis à jour ✓")

    async def handle_delete_service(self, service_id: int) -> None:
        if self.read_only:
            return
        if self.store.find_service(service_id) is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.remove_service(plan, service_id))
        self.store.close_sheet()
        self.store.notify("Service supprimé ✓")

        try:
            await self.persist("delete_service", id=service_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_service")
