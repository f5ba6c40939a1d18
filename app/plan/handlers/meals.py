"""
Meal handlers
"""

from typing import List, Optional

from app.plan import tree
from app.plan.handlers.base import CREATE_ERROR, DELETE_ERROR, UPDATE_ERROR, BaseHandler
from app.schemas.plan import MealRead

MEAL_FIELDS = ("date", "title", "adults", "children", "time", "address")


class MealHandlers(BaseHandler):

    async def handle_create_meal(self, date: str, title: Optional[str] = None, **details) -> Optional[MealRead]:
        if self.read_only:
            return None
        try:
            data = await self.persist("create_meal", date=date, title=title, **details)
            created = MealRead.model_validate(data)
        except Exception as e:
            self.fail(e, CREATE_ERROR, "create_meal")
            return None

        self.store.set_plan(lambda plan: tree.insert_meal_sorted(plan, created))
        self.store.notify("Repas ajouté ✨")
        return created

    async def handle_create_meal_with_services(
        self,
        date: str,
        services: List[str],
        title: Optional[str] = None,
        **details,
    ) -> Optional[MealRead]:
        if self.read_only:
            return None
        try:
            data = await self.persist(
                "create_meal_with_services", date=date, title=title, services=services, **details
            )
            created = MealRead.model_validate(data)
        except Exception as e:
            self.fail(e, CREATE_ERROR, "create_meal_with_services")
            return None

        self.store.set_plan(lambda plan: tree.insert_meal_sorted(plan, created))
        self.store.close_sheet()
        self.store.notify("Nouveau repas créé ✨")
        return created

    async def handle_update_meal(self, meal_id: int, **values) -> None:
        """Headcount edits stay on the meal; its services keep their own"""
        if self.read_only:
            return
        meal = self.store.find_meal(meal_id)
        if meal is None:
            return

        values = {field: value for field, value in values.items() if field in MEAL_FIELDS}
        previous = {field: getattr(meal, field) for field in values}
        request = self.store.begin_request(f"meal:{meal_id}")
        self.store.set_plan(lambda plan: tree.replace_meal(plan, meal_id, **values))

        try:
            await self.persist("update_meal", id=meal_id, **values)
        except Exception as e:
            if self.store.is_current(f"meal:{meal_id}", request):
                self.store.set_plan(lambda plan: tree.replace_meal(plan, meal_id, **previous))
            self.fail(e, UPDATE_ERROR, "update_meal")
            return

        self.store.close_sheet()
        self.store.notify("Repas mis à jour ✓")

    async def handle_delete_meal(self, meal_id: int) -> None:
        """Services and items of the meal disappear in the same update"""
        if self.read_only:
            return
        if self.store.find_meal(meal_id) is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.remove_meal(plan, meal_id))
        self.store.close_sheet()
        self.store.notify("Repas supprimé ✓")

        try:
            await self.persist("delete_meal", id=meal_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_meal")
