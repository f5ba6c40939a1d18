"""
Event handlers
"""

from typing import Optional

from app.plan.handlers.base import DELETE_ERROR, UPDATE_ERROR, BaseHandler
from app.schemas.plan import EventRead

EVENT_FIELDS = ("name", "description", "adults", "children")


class EventHandlers(BaseHandler):

    async def handle_update_event(self, **values) -> None:
        if self.read_only:
            return
        event = self.store.plan.event
        if event is None:
            return

        values = {field: value for field, value in values.items() if field in EVENT_FIELDS}
        previous = event
        request = self.store.begin_request("event")
        self.store.set_plan(lambda plan: plan.model_copy(update={"event": event.model_copy(update=values)}))

        try:
            data = await self.persist("update_event", **values)
            updated = EventRead.model_validate(data)
        except Exception as e:
            if self.store.is_current("event", request):
                self.store.set_plan(lambda plan: plan.model_copy(update={"event": previous}))
            self.fail(e, UPDATE_ERROR, "update_event")
            return

        if self.store.is_current("event", request):
            self.store.set_plan(lambda plan: plan.model_copy(update={"event": updated}))
        self.store.close_sheet()
        self.store.notify("Événement mis à jour ✓")

    async def handle_delete_event(self) -> Optional[bool]:
        """Nothing is removed locally; on success the UI is sent home"""
        if self.read_only:
            return None
        try:
            await self.persist("delete_event")
        except Exception as e:
            self.fail(e, DELETE_ERROR, "delete_event")
            return False

        self.store.notify("Événement supprimé ✓")
        self.store.push_effect("redirect_home")
        return True
