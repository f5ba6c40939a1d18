"""
Shopping list handlers.

An aggregated row stands for several plan entries; editing it fans the same
change out to every source. All source updates run concurrently and the
edit only counts when every one of them succeeded.
"""

import asyncio
from typing import List, Optional, Union

from app.plan import tree
from app.plan.handlers.base import UPDATE_ERROR, BaseHandler
from app.schemas.plan import PlanData
from app.services.shopping import ShoppingRow, build_shopping_list, group_by_category

PARTIAL_UPDATE_ERROR = "Certains articles n'ont pas pu être mis à jour ❌"


class ShoppingHandlers(BaseHandler):

    def shopping_list(self, person_id: Union[int, str] = "all") -> List[ShoppingRow]:
        return build_shopping_list(self.store.plan, person_id)

    def shopping_list_by_category(self, person_id: Union[int, str] = "all"):
        return group_by_category(self.shopping_list(person_id))

    def _apply_to_sources(self, plan: PlanData, row: ShoppingRow, **values) -> PlanData:
        for source in row.sources:
            if source.ingredient is not None:
                plan = tree.update_ingredient(plan, source.item.id, source.ingredient.id, **values)
            else:
                plan = tree.update_item(plan, source.item.id, **values)
        return plan

    async def handle_update_shopping_row(
        self,
        row: ShoppingRow,
        name: str,
        quantity: Optional[str] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Rename/requantify every source; any failure reverts all of them"""
        if self.read_only or not row.sources:
            return False

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: self._apply_to_sources(plan, row, name=name, quantity=quantity))
        if note is not None:
            self.store.set_plan(lambda plan: self._apply_notes(plan, row, note))

        calls = []
        for source in row.sources:
            if source.ingredient is not None:
                calls.append(self.persist("update_ingredient", id=source.ingredient.id, name=name, quantity=quantity))
            else:
                item = source.item
                calls.append(self.persist(
                    "update_item",
                    id=item.id,
                    name=name,
                    quantity=quantity,
                    note=note if note is not None else item.note,
                    price=item.price,
                    person_id=item.person_id,
                ))

        results = await asyncio.gather(*calls, return_exceptions=True)
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            self.store.restore(snapshot)
            self.fail(failures[0], PARTIAL_UPDATE_ERROR, f"shopping row '{row.name}' ({len(failures)}/{len(calls)} sources)")
            if len(failures) < len(calls):
                # Some sources did change server-side
                await self._resync()
            return False

        self.store.close_sheet()
        self.store.notify("Modifications enregistrées ✓")
        return True

    async def _resync(self) -> None:
        try:
            await self.store.reload()
        except Exception as e:
            self.fail(e, UPDATE_ERROR, "plan reload")

    @staticmethod
    def _apply_notes(plan: PlanData, row: ShoppingRow, note: str) -> PlanData:
        for source in row.sources:
            if source.ingredient is None:
                plan = tree.update_item(plan, source.item.id, note=note)
        return plan

    async def handle_toggle_shopping_row(self, row: ShoppingRow, checked: bool) -> bool:
        if self.read_only or not row.sources:
            return False

        snapshot = self.store.snapshot()
        self.store.set_plan(lambda plan: self._apply_to_sources(plan, row, checked=checked))

        calls = [
            self.persist("update_ingredient", id=source.ingredient.id, checked=checked)
            if source.ingredient is not None
            else self.persist("toggle_item_checked", id=source.item.id, checked=checked)
            for source in row.sources
        ]
        results = await asyncio.gather(*calls, return_exceptions=True)
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            self.store.restore(snapshot)
            self.fail(failures[0], UPDATE_ERROR, f"shopping row '{row.name}' check")
            if len(failures) < len(calls):
                await self._resync()
            return False
        return True
