"""
Shared fixtures: a sample plan tree and an in-memory ActionClient
"""

import pytest

from app.plan.store import PlanStore
from app.schemas.plan import (
    EventRead,
    IngredientRead,
    ItemRead,
    MealRead,
    PersonRead,
    PlanData,
    PlanResponse,
    ServiceRead,
)
from app.services.plan_cache import plan_cache
from app.utils.errors import ActionError
from app.utils.security import rate_limiter


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Module-level caches outlive a single test"""
    plan_cache.revalidate()
    rate_limiter.clear()
    yield
    plan_cache.revalidate()
    rate_limiter.clear()


class FakeActionClient:
    """Records every call; answers from ``responses`` or fails for names in ``failing``"""

    def __init__(self, plan=None):
        self.calls = []
        self.responses = {}
        self.failing = {}
        self.plan = plan

    def fail(self, name, error=None):
        self.failing[name] = error or ActionError("Server said no")

    async def call(self, action, /, **payload):
        self.calls.append((action, payload))
        if action in self.failing:
            raise self.failing[action]
        response = self.responses.get(action)
        if callable(response):
            return response(**payload)
        return response if response is not None else {"success": True}

    async def fetch_plan(self, slug, key=None):
        return PlanResponse(plan=self.plan, write_enabled=key == "secret")

    def names(self):
        return [name for name, _ in self.calls]


def build_sample_plan() -> PlanData:
    return PlanData(
        event=EventRead(id=1, slug="reveillon", name="Réveillon", admin_key="secret", adults=4, children=1),
        meals=[
            MealRead(
                id=1,
                event_id=1,
                date="2025-12-24",
                title="Dîner",
                adults=4,
                children=1,
                services=[
                    ServiceRead(
                        id=10,
                        meal_id=1,
                        title="Entrée",
                        order_index=0,
                        people_count=5,
                        items=[
                            ItemRead(id=100, service_id=10, name="Foie gras", person_id=2, order_index=0),
                        ],
                    ),
                    ServiceRead(
                        id=11,
                        meal_id=1,
                        title="Plat",
                        order_index=1,
                        people_count=4,
                        items=[
                            ItemRead(
                                id=110,
                                service_id=11,
                                name="Lasagnes",
                                note="Pour 8 personnes",
                                order_index=0,
                                ingredients=[
                                    IngredientRead(id=1000, item_id=110, name="Mozzarella", quantity="200g",
                                                   category="dairy-eggs"),
                                    IngredientRead(id=1001, item_id=110, name="Sauce tomate", quantity="400ml",
                                                   category="pantry-savory", order_index=1),
                                ],
                            ),
                            ItemRead(id=111, service_id=11, name="Fromage", quantity="200g", order_index=1),
                        ],
                    ),
                ],
            ),
            MealRead(
                id=2,
                event_id=1,
                date="2025-12-25",
                title="Déjeuner",
                services=[
                    ServiceRead(
                        id=20,
                        meal_id=2,
                        title="Dessert",
                        items=[
                            ItemRead(id=200, service_id=20, name="fromage ", quantity="300g", person_id=2),
                            ItemRead(id=201, service_id=20, name="Bûche", order_index=1),
                        ],
                    ),
                ],
            ),
        ],
        people=[
            PersonRead(id=1, event_id=1, name="Cécile", emoji="🎉"),
            PersonRead(id=2, event_id=1, name="Marc", status="confirmed", guest_adults=1, guest_children=1),
        ],
    )


@pytest.fixture
def sample_plan():
    return build_sample_plan()


@pytest.fixture
def store(sample_plan):
    return PlanStore(sample_plan)


@pytest.fixture
def actions(sample_plan):
    return FakeActionClient(plan=sample_plan)
