"""
Ingredient handlers, including single and bulk AI generation
"""

import logging
from typing import Iterable, List, Optional

from app.plan import tree
from app.plan.handlers.base import ADD_ERROR, DELETE_ERROR, UPDATE_ERROR, BaseHandler
from app.plan.headcount import resolve_people_count
from app.plan.rsvp import confirmed_headcount
from app.schemas.common import ActionResult, BulkGenerationSummary
from app.schemas.plan import IngredientRead, ItemRead

logger = logging.getLogger(__name__)

GENERATION_ERROR = "Erreur lors de la génération des ingrédients"


class IngredientHandlers(BaseHandler):

    def items_without_ingredients(self) -> List[ItemRead]:
        return [item for item in self.store.index.items.values() if not item.ingredients]

    def effective_people_count(self, item_id: int, manual_override: Optional[int] = None, note: Optional[str] = None) -> int:
        found = self.store.find_item(item_id)
        service = found.service if found else None
        service_headcount = 0
        if service is not None:
            service_headcount = service.people_count or (service.adults + service.children)
        return resolve_people_count(
            manual_override,
            note if note is not None else (found.item.note if found else None),
            service_headcount,
            confirmed_headcount(self.store.plan.people),
        )

    async def handle_generate_ingredients(
        self,
        item_id: int,
        item_name: str,
        adults: Optional[int] = None,
        children: Optional[int] = None,
        people_count: Optional[int] = None,
        locale: Optional[str] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Replace the item's ingredients with a generated list; True on success"""
        if self.read_only:
            return False
        if self.store.find_item(item_id) is None:
            return False

        count = self.effective_people_count(item_id, people_count, note)
        request = self.store.begin_request(f"item:{item_id}:ingredients")

        try:
            result = await self.persist(
                "generate_ingredients",
                item_id=item_id,
                item_name=item_name,
                adults=adults,
                children=children,
                people_count=count,
                locale=locale,
                note=note,
            )
            outcome = ActionResult.model_validate(result or {"success": False})
            if outcome.success:
                generated = [IngredientRead.model_validate(row) for row in outcome.data or []]
        except Exception as e:
            self.fail(e, GENERATION_ERROR, "generate_ingredients")
            return False

        if not outcome.success:
            self.store.notify(outcome.error or GENERATION_ERROR, "error")
            return False

        # Out-of-order responses: only the latest generation lands
        if not self.store.is_current(f"item:{item_id}:ingredients", request):
            return False

        self.store.set_plan(lambda plan: tree.map_item_ingredients(plan, item_id, lambda _: generated))
        self.store.notify(f"{len(generated)} ingrédients générés ✨")
        return True

    async def handle_generate_all_ingredients(
        self,
        selected_ids: Optional[Iterable[int]] = None,
        locale: Optional[str] = None,
    ) -> Optional[dict]:
        """Selected items get full generation, the others only a category; then the plan is reloaded"""
        if self.read_only:
            return None
        pending = self.items_without_ingredients()
        if not pending:
            return None

        selected = set(selected_ids) if selected_ids is not None else None
        entries = [
            {"id": item.id, "action": "generate" if selected is None or item.id in selected else "categorize"}
            for item in pending
        ]

        try:
            result = await self.persist("generate_all_ingredients", locale=locale, items=entries)
            outcome = ActionResult.model_validate(result or {"success": False})
            if outcome.success:
                summary = BulkGenerationSummary.model_validate(outcome.data or {})
        except Exception as e:
            self.fail(e, GENERATION_ERROR, "generate_all_ingredients")
            return None

        if not outcome.success:
            self.store.notify(outcome.error or GENERATION_ERROR, "error")
            return None

        try:
            await self.store.reload()
        except Exception as e:
            logger.error(f"Plan reload failed after bulk generation: {e}")

        if summary.failed > 0:
            names = ", ".join(error.item_name or str(error.item_id) for error in summary.errors)
            self.store.notify(f"{summary.processed} plats traités, {summary.failed} échecs. {names}", "warning")
        else:
            self.store.notify(f"{summary.processed} plats traités avec succès")
        return summary.model_dump()

    async def handle_create_ingredient(self, item_id: int, name: str, quantity: Optional[str] = None) -> Optional[IngredientRead]:
        if self.read_only:
            return None
        if self.store.find_item(item_id) is None:
            return None

        try:
            data = await self.persist("create_ingredient", item_id=item_id, name=name, quantity=quantity)
            created = IngredientRead.model_validate(data)
        except Exception as e:
            self.fail(e, ADD_ERROR, "create_ingredient")
            return None

        self.store.set_plan(lambda plan: tree.map_item_ingredients(plan, item_id, lambda rows: [*rows, created]))
        return created

    async def handle_update_ingredient(self, ingredient_id: int, **values) -> None:
        if self.read_only:
            return
        item_id = self.store.find_ingredient_item(ingredient_id)
        if item_id is None:
            return

        ingredient = self.store.index.ingredients[ingredient_id]
        values = {field: value for field, value in values.items() if field in ("name", "quantity", "checked")}
        previous = {field: getattr(ingredient, field) for field in values}
        entity = f"ingredient:{ingredient_id}"
        request = self.store.begin_request(entity)
        self.store.set_plan(lambda plan: tree.update_ingredient(plan, item_id, ingredient_id, **values))

        try:
            await self.persist("update_ingredient", id=ingredient_id, **values)
        except Exception as e:
            if self.store.is_current(entity, request):
                self.store.set_plan(lambda plan: tree.update_ingredient(plan, item_id, ingredient_id, **previous))
            self.fail(e, UPDATE_ERROR, "update_ingredient")

    async def handle_toggle_ingredient(self, ingredient_id: int, checked: bool) -> None:
        await self.handle_update_ingredient(ingredient_id, checked=checked)

    async def handle_delete_ingredient(self, ingredient_id: int) -> None:
        if self.read_only:
            return
        item_id = self.store.find_ingredient_item(ingredient_id)
        if item_id is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.map_item_ingredients(
            plan, item_id, lambda rows: [row for row in rows if row.id != ingredient_id]
        ))

        try:
            await self.persist("delete_ingredient", id=ingredient_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_ingredient")

    async def handle_delete_all_ingredients(self, item_id: int) -> None:
        if self.read_only:
            return
        if self.store.find_item(item_id) is None:
            return

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: tree.map_item_ingredients(plan, item_id, lambda _: []))
        self.store.set_plan(lambda plan: tree.update_item(plan, item_id, cache_id=None))

        try:
            await self.persist("delete_all_ingredients", item_id=item_id)
        except Exception as e:
            self.store.restore(snapshot)
            self.fail(e, DELETE_ERROR, "delete_all_ingredients")

    async def handle_feedback_submit(self, item_id: int, rating: int, comment: Optional[str] = None) -> None:
        if self.read_only:
            return
        if self.store.find_item(item_id) is None:
            return
        try:
            await self.persist("save_ai_feedback", item_id=item_id, rating=rating, comment=comment)
        except Exception as e:
            self.fail(e, ADD_ERROR, "save_ai_feedback")
            return
        self.store.notify("Merci pour votre retour ✓")
