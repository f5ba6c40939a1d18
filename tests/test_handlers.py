"""
Tests for the optimistic client handlers, against an in-memory ActionClient
"""

import asyncio

import pytest

from app.plan.controller import EventController
from app.plan.handlers.base import ADD_ERROR, DELETE_ERROR, UPDATE_ERROR
from app.plan.handlers.shopping import PARTIAL_UPDATE_ERROR
from app.plan.store import PlanStore
from app.schemas.plan import IngredientRead, ItemRead, MealRead
from app.utils.errors import ActionError, DatabaseError, DB_UNAVAILABLE_MESSAGE

SLUG = "reveillon"

@pytest.fixture
def controller(store, actions):
    return EventController(store, actions, SLUG, write_key="secret")

def find_row(controller, name):
    return next(row for row in controller.shopping.shopping_list() if row.name.lower() == name.lower())

# -------- Deletes roll back to the exact previous tree --------

@pytest.mark.parametrize("name,handler,args", [
    ("delete_item", "items.handle_delete", (110,)),
    ("delete_meal", "meals.handle_delete_meal", (1,)),
    ("delete_service", "services.handle_delete_service", (11,)),
    ("delete_person", "people.handle_delete_person", (2,)),
    ("delete_ingredient", "ingredients.handle_delete_ingredient", (1000,)),
    ("delete_all_ingredients", "ingredients.handle_delete_all_ingredients", (110,)),
])
async def test_failed_delete_restores_previous_tree(controller, store, actions, name, handler, args):
    before = store.snapshot()
    actions.fail(name)
    family, method = handler.split(".")

    await getattr(getattr(controller, family), method)(*args)

    assert store.plan == before
    assert actions.names() == [name]
    assert store.notifications[-1].type == "error"
    assert store.notifications[-1].text == DELETE_ERROR

async def test_database_outage_message_reaches_the_user(controller, store, actions):
    actions.fail("delete_item", DatabaseError(DB_UNAVAILABLE_MESSAGE))

    await controller.items.handle_delete(110)

    assert store.notifications[-1].text == DB_UNAVAILABLE_MESSAGE

async def test_successful_delete_sends_credentials(controller, store, actions):
    await controller.items.handle_delete(110)

    assert store.find_item(110) is None
    name, payload = actions.calls[0]
    assert name == "delete_item"
    assert payload == {"id": 110, "slug": SLUG, "key": "secret", "token": None}

async def test_meal_delete_cascades_in_one_update(controller, store, actions, monkeypatch):
    updates = []
    original = store.set_plan
    monkeypatch.setattr(store, "set_plan", lambda updater: (updates.append(updater), original(updater)))

    await controller.meals.handle_delete_meal(1)

    assert len(updates) == 1
    assert store.find_meal(1) is None
    assert store.find_service(10) is None and store.find_service(11) is None
    assert all(store.find_item(item_id) is None for item_id in (100, 110, 111))

# -------- Read-only mode --------

async def test_read_only_handlers_do_nothing(sample_plan, actions):
    store = PlanStore(sample_plan, read_only=True)
    controller = EventController(store, actions, SLUG)
    before = store.snapshot()

    await controller.items.handle_create_item(10, "Huîtres")
    await controller.items.handle_update_item(110, name="Cannelloni")
    await controller.items.handle_assign(110, 1)
    await controller.items.handle_delete(110)
    await controller.items.handle_move_item(110, 20, 0)
    await controller.items.handle_toggle_item_checked(110, True)
    await controller.meals.handle_create_meal("2025-12-31")
    await controller.meals.handle_update_meal(1, title="Souper")
    await controller.meals.handle_delete_meal(1)
    await controller.services.handle_delete_service(10)
    await controller.people.handle_create_person("Zoé")
    await controller.people.handle_status_change(1, "confirmed")
    await controller.people.handle_count_change(2, 3, 3)
    await controller.people.handle_delete_person(2)
    await controller.ingredients.handle_generate_ingredients(110, "Lasagnes")
    await controller.ingredients.handle_generate_all_ingredients()
    await controller.ingredients.handle_update_ingredient(1000, checked=True)
    await controller.ingredients.handle_feedback_submit(110, 5)
    await controller.events.handle_update_event(name="Nouvel An")
    await controller.events.handle_delete_event()
    await controller.shopping.handle_toggle_shopping_row(find_row(controller, "fromage"), True)

    assert actions.calls == []
    assert store.plan == before
    assert store.notifications == []

# -------- Items --------

async def test_assign_to_cecile_celebrates_and_null_unassigns(controller, store, actions):
    await controller.items.handle_assign(110, 1)

    assert store.find_item(110).item.person_id == 1
    assert store.effects == ["celebrate"]
    assert store.notifications[-1].text == "Article assigné à Cécile ✓"

    await controller.items.handle_assign(110, None)

    assert store.find_item(110).item.person_id is None
    assert store.effects == ["celebrate"]
    assert store.notifications[-1].text == "Article assigné à À prévoir ✓"
    assert [payload["person_id"] for _, payload in actions.calls] == [1, None]

async def test_failed_assign_reverts(controller, store, actions):
    actions.fail("assign_item")

    await controller.items.handle_assign(100, 1)

    assert store.find_item(100).item.person_id == 2
    assert store.notifications[-1].text == UPDATE_ERROR

async def test_create_item_appears_after_server_answer(controller, store, actions):
    actions.responses["create_item"] = lambda **payload: ItemRead(
        id=500, service_id=payload["service_id"], name=payload["name"], order_index=2
    ).model_dump()

    created = await controller.items.handle_create_item(11, "Salade")

    assert created.id == 500
    assert store.find_item(500).service.id == 11
    assert store.notifications[-1].text == "Salade ajouté ! ✨"

async def test_failed_create_item_leaves_tree_alone(controller, store, actions):
    before = store.snapshot()
    actions.fail("create_item")

    assert await controller.items.handle_create_item(11, "Salade") is None
    assert store.plan == before
    assert store.notifications[-1].type == "error"

async def test_update_item_sends_full_item(controller, store, actions):
    await controller.items.handle_update_item(111, quantity="1kg", bogus="ignored")

    assert store.find_item(111).item.quantity == "1kg"
    name, payload = actions.calls[0]
    assert name == "update_item"
    assert payload["name"] == "Fromage"
    assert payload["quantity"] == "1kg"
    assert "bogus" not in payload

async def test_failed_update_item_reverts(controller, store, actions):
    actions.fail("update_item")

    await controller.items.handle_update_item(111, name="Comté")

    assert store.find_item(111).item.name == "Fromage"

async def test_older_failure_does_not_undo_newer_update(controller, store):
    """Two edits of one item in flight: the first fails after the second landed"""
    gate = asyncio.Event()

    class GatedClient:
        def __init__(self):
            self.seen = 0

        async def call(self, action, /, **payload):
            self.seen += 1
            if self.seen == 1:
                await gate.wait()
                raise ActionError("too late")
            return {}

    controller = EventController(store, GatedClient(), SLUG, write_key="secret")

    async def release():
        gate.set()

    await asyncio.gather(
        controller.items.handle_update_item(111, name="Comté"),
        controller.items.handle_update_item(111, name="Brie"),
        release(),
    )

    assert store.find_item(111).item.name == "Brie"
    assert store.notifications[-1].type == "error"

async def test_failed_move_restores_positions(controller, store, actions):
    before = store.snapshot()
    actions.fail("move_item")

    await controller.items.handle_move_item(100, 20, 0)

    assert store.plan == before

async def test_move_item(controller, store, actions):
    await controller.items.handle_move_item(100, 20, 0)

    assert store.find_item(100).service.id == 20
    assert actions.calls == [("move_item", {
        "item_id": 100, "target_service_id": 20, "target_order": 0, "slug": SLUG, "key": "secret", "token": None,
    })]

# -------- Meals --------

async def test_create_meal_is_inserted_in_date_order(controller, store, actions):
    actions.responses["create_meal"] = lambda **payload: MealRead(
        id=3, event_id=1, date=payload["date"], title=payload["title"]
    ).model_dump()

    await controller.meals.handle_create_meal("2025-12-20", title="Avant")

    assert [meal.id for meal in store.plan.meals] == [3, 1, 2]

async def test_meal_headcount_edit_keeps_service_headcounts(controller, store, actions):
    await controller.meals.handle_update_meal(1, adults=10)

    assert store.find_meal(1).adults == 10
    assert store.find_service(10).people_count == 5

# -------- People --------

async def test_create_person_keeps_guest_token(controller, store, actions):
    actions.responses["create_person"] = {"id": 3, "event_id": 1, "name": "Zoé", "token": "tok-zoe"}

    person = await controller.people.handle_create_person("Zoé")

    assert person.id == 3
    assert store.guest_tokens == {3: "tok-zoe"}
    assert [p.name for p in store.plan.people] == ["Cécile", "Marc", "Zoé"]

    await controller.people.handle_status_change(3, "maybe")
    assert actions.calls[-1][1]["token"] == "tok-zoe"

async def test_status_change_resets_guests_when_confirming(controller, store, actions):
    await controller.people.handle_status_change(2, "declined")
    await controller.people.handle_status_change(2, "confirmed")

    marc = store.find_person(2)
    assert marc.status == "confirmed"
    assert (marc.guest_adults, marc.guest_children) == (0, 0)

async def test_unknown_status_is_ignored(controller, store, actions):
    await controller.people.handle_status_change(1, "attending")
    await controller.people.handle_status_change(2, None)

    assert actions.calls == []
    assert store.find_person(2).status == "confirmed"

async def test_guest_counts_only_for_confirmed(controller, store, actions):
    await controller.people.handle_count_change(1, 2, 2)
    assert actions.calls == []

    await controller.people.handle_count_change(2, 3, -1)
    assert (store.find_person(2).guest_adults, store.find_person(2).guest_children) == (3, 0)
    assert actions.calls[-1][1]["guest_children"] == 0

# -------- Ingredients --------

async def test_generation_uses_people_count_from_note(controller, store, actions):
    actions.responses["generate_ingredients"] = {
        "success": True,
        "data": [IngredientRead(id=2000, item_id=110, name="Pâtes à lasagnes", quantity="480g").model_dump()],
    }

    assert await controller.ingredients.handle_generate_ingredients(110, "Lasagnes") is True

    assert actions.calls[0][1]["people_count"] == 8
    assert [row.id for row in store.find_item(110).item.ingredients] == [2000]

async def test_generation_refusal_keeps_ingredients(controller, store, actions):
    actions.responses["generate_ingredients"] = {"success": False, "error": "Connectez-vous"}

    assert await controller.ingredients.handle_generate_ingredients(110, "Lasagnes") is False

    assert len(store.find_item(110).item.ingredients) == 2
    assert store.notifications[-1].text == "Connectez-vous"

async def test_bulk_generation_reloads_plan(sample_plan, actions):
    reloaded = sample_plan.model_copy(update={"meals": sample_plan.meals[:1]})

    async def loader():
        return reloaded

    store = PlanStore(sample_plan, loader=loader)
    controller = EventController(store, actions, SLUG, write_key="secret")
    actions.responses["generate_all_ingredients"] = {
        "success": True,
        "data": {"processed": 3, "failed": 1, "errors": [{"item_id": 201, "item_name": "Bûche", "error": "x"}]},
    }

    summary = await controller.ingredients.handle_generate_all_ingredients(selected_ids=[111])

    entries = {entry["id"]: entry["action"] for entry in actions.calls[0][1]["items"]}
    assert entries == {100: "categorize", 111: "generate", 200: "categorize", 201: "categorize"}
    assert summary["failed"] == 1
    assert store.reload_count == 1
    assert store.plan == reloaded
    assert store.notifications[-1].type == "warning"
    assert "Bûche" in store.notifications[-1].text

async def test_toggle_ingredient_failure_reverts(controller, store, actions):
    actions.fail("update_ingredient")

    await controller.ingredients.handle_toggle_ingredient(1000, True)

    assert store.index.ingredients[1000].checked is False

# -------- Events --------

async def test_update_event_reconciles_with_server(controller, store, actions):
    actions.responses["update_event"] = lambda **payload: {
        **store.plan.event.model_dump(), "name": "Nouvel An (serveur)"
    }

    await controller.events.handle_update_event(name="Nouvel An")

    assert store.plan.event.name == "Nouvel An (serveur)"

async def test_delete_event_redirects(controller, store, actions):
    assert await controller.events.handle_delete_event() is True
    assert store.effects == ["redirect_home"]

# -------- Shopping rows --------

async def test_shopping_row_edit_fans_out(controller, store, actions):
    row = find_row(controller, "fromage")

    assert await controller.shopping.handle_update_shopping_row(row, "Comté", "1kg") is True

    assert sorted(payload["id"] for name, payload in actions.calls if name == "update_item") == [111, 200]
    assert store.find_item(111).item.name == "Comté"
    assert store.find_item(200).item.name == "Comté"
    assert store.find_item(200).item.person_id == 2

async def test_partial_shopping_failure_reverts_and_resyncs(sample_plan, actions):
    async def loader():
        return sample_plan

    store = PlanStore(sample_plan, loader=loader)
    controller = EventController(store, actions, SLUG, write_key="secret")
    before = store.snapshot()

    def update_item(**payload):
        if payload["id"] == 200:
            raise ActionError("boom")
        return {}

    actions.responses["update_item"] = update_item

    assert await controller.shopping.handle_update_shopping_row(find_row(controller, "fromage"), "Comté") is False

    assert store.plan == before
    assert store.reload_count == 1
    assert any(n.text == PARTIAL_UPDATE_ERROR for n in store.notifications)

async def test_toggle_shopping_row_mixes_items_and_ingredients(controller, store, actions):
    await controller.shopping.handle_toggle_shopping_row(find_row(controller, "mozzarella"), True)
    await controller.shopping.handle_toggle_shopping_row(find_row(controller, "fromage"), True)

    assert actions.names() == ["update_ingredient", "toggle_item_checked", "toggle_item_checked"]
    assert find_row(controller, "fromage").checked is True

# -------- Controller --------

async def test_open_without_key_is_read_only(actions):
    controller = await EventController.open(actions, SLUG)
    assert controller.store.read_only is True

    controller = await EventController.open(actions, SLUG, write_key="secret")
    assert controller.store.read_only is False
    await controller.store.reload()
    assert controller.store.reload_count == 1

    controller = await EventController.open(actions, SLUG, token="tok-cecile", person_id=1)
    assert controller.store.read_only is True
    assert controller.store.guest_tokens == {1: "tok-cecile"}

def test_shopping_list_by_category_for_one_person(controller):
    grouped = controller.shopping.shopping_list_by_category(person_id=2)

    assert list(grouped.keys()) == ["misc"]
    assert sorted(row.name for row in grouped["misc"]) == ["Foie gras", "fromage"]

async def test_successful_update_closes_sheet(controller, store):
    store.set_sheet({"type": "item", "id": 111})

    await controller.items.handle_update_item(111, close_sheet=True, note="Affiné")

    assert store.sheet is None
    assert store.find_item(111).item.note == "Affiné"

async def test_payload_name_fields_reach_the_server(controller, store, actions):
    await controller.people.handle_update_person(2, "Marco")
    await controller.ingredients.handle_update_ingredient(1000, name="Burrata")

    assert [(action, payload["name"]) for action, payload in actions.calls] == [
        ("update_person", "Marco"),
        ("update_ingredient", "Burrata"),
    ]
    assert store.find_person(2).name == "Marco"
    assert store.index.ingredients[1000].name == "Burrata"

async def test_failed_move_keeps_edits_made_meanwhile(store):
    gate = asyncio.Event()

    class GatedMoveClient:
        async def call(self, action, /, **payload):
            if action == "move_item":
                await gate.wait()
                raise ActionError("refused")
            return {}

    controller = EventController(store, GatedMoveClient(), SLUG, write_key="secret")

    async def toggle_then_release():
        await controller.items.handle_toggle_item_checked(201, True)
        gate.set()

    await asyncio.gather(controller.items.handle_move_item(110, 20, 0), toggle_then_release())

    assert store.find_item(201).item.checked is True
    assert [item.id for item in store.find_service(11).items] == [110, 111]
    assert [item.id for item in store.find_service(20).items] == [200, 201]
    assert store.find_item(110).item.service_id == 11

async def test_guest_token_allows_own_rsvp_without_write_key(sample_plan, actions):
    store = PlanStore(sample_plan, read_only=True)
    store.guest_tokens[1] = "tok-cecile"
    controller = EventController(store, actions, SLUG)

    await controller.people.handle_status_change(1, "confirmed")
    await controller.people.handle_count_change(1, 2, 1)
    await controller.people.handle_status_change(2, "declined")
    await controller.people.handle_update_person(2, "Marco")

    assert actions.names() == ["update_person_status", "update_person_guest_count"]
    assert all(payload["token"] == "tok-cecile" and payload["key"] is None for _, payload in actions.calls)
    cecile = store.find_person(1)
    assert (cecile.status, cecile.guest_adults, cecile.guest_children) == ("confirmed", 2, 1)
    assert store.find_person(2).status == "confirmed"

async def test_partial_shopping_toggle_failure_resyncs(sample_plan, actions):
    async def loader():
        return sample_plan

    store = PlanStore(sample_plan, loader=loader)
    controller = EventController(store, actions, SLUG, write_key="secret")

    def toggle(**payload):
        if payload["id"] == 200:
            raise ActionError("boom")
        return {}

    actions.responses["toggle_item_checked"] = toggle
    row = find_row(controller, "fromage")
    assert len(row.sources) == 2

    assert await controller.shopping.handle_toggle_shopping_row(row, True) is False
    assert store.reload_count == 1

    actions.fail("toggle_item_checked")
    assert await controller.shopping.handle_toggle_shopping_row(find_row(controller, "fromage"), True) is False
    assert store.reload_count == 1

async def test_malformed_server_reply_becomes_a_notification(controller, store, actions):
    before = store.snapshot()
    actions.responses["create_item"] = {"unexpected": True}
    actions.responses["create_meal"] = ["not", "a", "meal"]

    assert await controller.items.handle_create_item(11, "Salade") is None
    assert await controller.meals.handle_create_meal("2025-12-31") is None

    assert store.plan == before
    assert [n.type for n in store.notifications] == ["error", "error"]
    assert store.notifications[0].text == ADD_ERROR
