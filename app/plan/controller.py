"""
EventController: one store, every handler family wired to it
"""

import logging
from typing import Optional

from app.plan.client import ActionClient
from app.plan.handlers.events import EventHandlers
from app.plan.handlers.ingredients import IngredientHandlers
from app.plan.handlers.items import ItemHandlers
from app.plan.handlers.meals import MealHandlers
from app.plan.handlers.people import PersonHandlers
from app.plan.handlers.services import ServiceHandlers
from app.plan.handlers.shopping import ShoppingHandlers
from app.plan.store import PlanStore

logger = logging.getLogger(__name__)


class EventController:
    def __init__(
        self,
        store: PlanStore,
        actions: ActionClient,
        slug: str,
        write_key: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self.store = store
        self.actions = actions
        self.slug = slug

        args = (store, actions, slug, write_key, token)
        self.items = ItemHandlers(*args)
        self.meals = MealHandlers(*args)
        self.services = ServiceHandlers(*args)
        self.people = PersonHandlers(*args)
        self.ingredients = IngredientHandlers(*args)
        self.events = EventHandlers(*args)
        self.shopping = ShoppingHandlers(*args)

    @classmethod
    async def open(
        cls,
        actions: ActionClient,
        slug: str,
        write_key: Optional[str] = None,
        token: Optional[str] = None,
        person_id: Optional[int] = None,
    ) -> "EventController":
        """Fetch the plan once and build a controller around it.

        Without a valid write key the store is read-only and every handler
        is a no-op, except the person-scoped ones for the guest whose
        ``token`` was given along with their ``person_id``.
        """
        response = await actions.fetch_plan(slug, write_key)

        async def loader():
            return (await actions.fetch_plan(slug, write_key)).plan

        store = PlanStore(response.plan, read_only=not response.write_enabled, loader=loader)
        if token and person_id is not None:
            store.guest_tokens[person_id] = token
        logger.info(f"Opened event {slug} (write_enabled={response.write_enabled})")
        return cls(store, actions, slug, write_key if response.write_enabled else None, token)
