"""
PlanStore: the single owner of one event's plan tree and of the UI state around it
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Union

from app.schemas.plan import IngredientRead, ItemRead, MealRead, PersonRead, PlanData, ServiceRead

logger = logging.getLogger(__name__)

PlanUpdater = Callable[[PlanData], PlanData]
PlanLoader = Callable[[], Awaitable[PlanData]]


@dataclass
class Notification:
    text: str
    type: str = "success"


@dataclass
class ItemLocation:
    item: ItemRead
    service: ServiceRead
    meal: MealRead


@dataclass
class PlanIndex:
    """Id-keyed lookups with parent pointers, rebuilt whenever the tree changes"""
    meals: Dict[int, MealRead] = field(default_factory=dict)
    services: Dict[int, ServiceRead] = field(default_factory=dict)
    items: Dict[int, ItemRead] = field(default_factory=dict)
    ingredients: Dict[int, IngredientRead] = field(default_factory=dict)
    people: Dict[int, PersonRead] = field(default_factory=dict)
    service_meal: Dict[int, int] = field(default_factory=dict)
    item_service: Dict[int, int] = field(default_factory=dict)
    ingredient_item: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def build(cls, plan: PlanData) -> "PlanIndex":
        index = cls()
        for meal in plan.meals:
            index.meals[meal.id] = meal
            for service in meal.services:
                index.services[service.id] = service
                index.service_meal[service.id] = meal.id
                for item in service.items:
                    index.items[item.id] = item
                    index.item_service[item.id] = service.id
                    for ingredient in item.ingredients:
                        index.ingredients[ingredient.id] = ingredient
                        index.ingredient_item[ingredient.id] = item.id
        for person in plan.people:
            index.people[person.id] = person
        return index


class PlanStore:
    def __init__(
        self,
        plan: PlanData,
        read_only: bool = False,
        loader: Optional[PlanLoader] = None,
    ):
        self._plan = plan
        self._index = PlanIndex.build(plan)
        self._loader = loader
        self.read_only = read_only

        # UI state
        self.tab = "planning"
        self.sheet: Optional[dict] = None
        self.selected_person: Optional[int] = None
        self.planning_filter = "all"
        self.active_item_id: Optional[int] = None
        self.notifications: List[Notification] = []
        self.effects: List[str] = []

        # Guest tokens keyed by person id, as handed out on creation/claim
        self.guest_tokens: Dict[int, str] = {}

        self._requests: Dict[str, int] = {}
        self._request_counter = itertools.count(1)
        self.reload_count = 0

    # -------- Tree --------

    @property
    def plan(self) -> PlanData:
        return self._plan

    @property
    def index(self) -> PlanIndex:
        return self._index

    def set_plan(self, updater: Union[PlanData, PlanUpdater]) -> None:
        self._plan = updater(self._plan) if callable(updater) else updater
        self._index = PlanIndex.build(self._plan)

    def snapshot(self) -> PlanData:
        return self._plan.model_copy(deep=True)

    def restore(self, snapshot: PlanData) -> None:
        self.set_plan(snapshot)

    async def reload(self) -> None:
        """Replace the whole tree with a fresh copy from the server"""
        if self._loader is None:
            logger.warning("Reload requested without a plan loader")
            return
        self.set_plan(await self._loader())
        self.reload_count += 1

    # -------- Lookups --------

    def find_item(self, item_id: int) -> Optional[ItemLocation]:
        item = self._index.items.get(item_id)
        if item is None:
            return None
        service = self._index.services[self._index.item_service[item_id]]
        meal = self._index.meals[self._index.service_meal[service.id]]
        return ItemLocation(item=item, service=service, meal=meal)

    def find_service(self, service_id: int) -> Optional[ServiceRead]:
        return self._index.services.get(service_id)

    def find_meal(self, meal_id: int) -> Optional[MealRead]:
        return self._index.meals.get(meal_id)

    def find_person(self, person_id: Optional[int]) -> Optional[PersonRead]:
        if person_id is None:
            return None
        return self._index.people.get(person_id)

    def find_ingredient_item(self, ingredient_id: int) -> Optional[int]:
        return self._index.ingredient_item.get(ingredient_id)

    @property
    def unassigned_items_count(self) -> int:
        return sum(1 for item in self._index.items.values() if item.person_id is None)

    # -------- UI state --------

    def notify(self, text: str, type: str = "success") -> None:
        self.notifications.append(Notification(text=text, type=type))

    def set_sheet(self, sheet: Optional[dict]) -> None:
        self.sheet = sheet

    def close_sheet(self) -> None:
        self.sheet = None

    def push_effect(self, effect: str) -> None:
        self.effects.append(effect)

    # -------- In-flight requests --------

    def begin_request(self, entity_key: str) -> int:
        """Mark a new request for ``entity_key``; any older one stops being current"""
        token = next(self._request_counter)
        self._requests[entity_key] = token
        return token

    def is_current(self, entity_key: str, token: int) -> bool:
        return self._requests.get(entity_key) == token
