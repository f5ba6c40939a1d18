"""
End-to-end tests: HTTP routes driven through HttpActionClient and the handlers
"""

from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.api import routes_plan
from app.core.config import settings
from app.core.db import Base, get_db
from app.models import User, UserSession
from app.plan.client import HttpActionClient
from app.plan.controller import EventController
from app.utils.errors import ActionError, DatabaseError, DB_UNAVAILABLE_MESSAGE
from main import app

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_api.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

KEY = "reveillon-key"

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def transport():
    return httpx.ASGITransport(app=app)

@pytest.fixture
def client(transport):
    return HttpActionClient(base_url="http://test", transport=transport)

@pytest.fixture
async def http(transport):
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

@pytest.fixture
async def reveillon(client):
    """Event > meal "Dîner" > service "Plat", written through the action endpoint"""
    await client.call("create_event", slug="reveillon", name="Réveillon", key=KEY)
    meal = await client.call("create_meal", slug="reveillon", key=KEY, date="2025-12-24", title="Dîner")
    service = await client.call("create_service", slug="reveillon", key=KEY, meal_id=meal["id"], title="Plat")
    return {"meal": meal, "service": service}

async def test_health_check(http):
    response = await http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

async def test_single_item_gives_one_shopping_row(client, http, reveillon):
    await client.call("create_item", slug="reveillon", key=KEY, service_id=reveillon["service"]["id"], name="Raclette")

    response = await http.get("/event/reveillon/shopping")
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert [(row["name"], len(row["sources"])) for row in body["data"]["rows"]] == [("Raclette", 1)]
    assert list(body["data"]["by_category"].keys()) == ["misc"]

async def test_plan_hides_admin_key_without_write_access(client, reveillon):
    anonymous = await client.fetch_plan("reveillon")
    assert anonymous.write_enabled is False
    assert anonymous.plan.event.admin_key is None
    assert [meal.title for meal in anonymous.plan.meals] == ["Dîner"]

    editor = await client.fetch_plan("reveillon", KEY)
    assert editor.write_enabled is True
    assert editor.plan.event.admin_key == KEY

async def test_plan_reflects_mutations_immediately(client, reveillon):
    await client.fetch_plan("reveillon")
    await client.call("create_item", slug="reveillon", key=KEY, service_id=reveillon["service"]["id"], name="Pain")

    plan = (await client.fetch_plan("reveillon")).plan
    assert [item.name for item in plan.meals[0].services[0].items] == ["Pain"]

async def test_unknown_event_and_action(http):
    response = await http.get("/event/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False

    response = await http.post("/actions/launch_rocket", json={})
    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"

async def test_action_errors_keep_their_status(client, reveillon):
    with pytest.raises(ActionError) as exc_info:
        await client.call("create_item", slug="reveillon", key="wrong", service_id=reveillon["service"]["id"], name="X")
    assert exc_info.value.status_code == 403
    assert exc_info.value.error_code == "unauthorized"

    with pytest.raises(ActionError) as exc_info:
        await client.call("create_item", slug="reveillon", key=KEY, service_id=0, name="X")
    assert exc_info.value.status_code == 422
    assert exc_info.value.error_code == "validation_error"

async def test_database_outage_is_a_503(client, monkeypatch):
    def unavailable(ctx, **payload):
        raise DatabaseError(DB_UNAVAILABLE_MESSAGE)

    monkeypatch.setitem(routes_plan.ACTIONS, "delete_item", unavailable)

    with pytest.raises(DatabaseError) as exc_info:
        await client.call("delete_item", slug="reveillon", key=KEY, id=1)
    assert exc_info.value.message == DB_UNAVAILABLE_MESSAGE

async def test_localized_plan(http, reveillon):
    response = await http.get("/en/event/reveillon")
    assert response.status_code == 200
    assert response.json()["data"]["locale"] == "en"
    assert response.json()["data"]["write_enabled"] is False

    response = await http.get("/xx/event/reveillon")
    assert response.status_code == 404

async def test_shopping_export(client, http, reveillon):
    await client.call("create_item", slug="reveillon", key=KEY, service_id=reveillon["service"]["id"], name="Vin",
                      quantity="2 bouteilles")

    response = await http.get("/event/reveillon/shopping.xlsx")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "courses_reveillon.xlsx" in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"

async def test_controller_round_trip(client, reveillon):
    controller = await EventController.open(client, "reveillon", KEY)
    service_id = reveillon["service"]["id"]

    created = await controller.items.handle_create_item(service_id, "Raclette")
    person = await controller.people.handle_create_person("Cécile")
    await controller.items.handle_assign(created.id, person.id)

    plan = (await client.fetch_plan("reveillon", KEY)).plan
    assert plan.meals[0].services[0].items[0].person_id == person.id
    assert controller.store.effects == ["celebrate"]
    assert person.id in controller.store.guest_tokens

    await controller.people.handle_delete_person(person.id)
    plan = (await client.fetch_plan("reveillon", KEY)).plan
    assert plan.people == []
    assert plan.meals[0].services[0].items[0].person_id is None
    assert controller.store.plan.meals[0].services[0].items[0].person_id is None

async def test_controller_without_key_sends_nothing(client, reveillon):
    controller = await EventController.open(client, "reveillon", "wrong-key")

    assert controller.store.read_only is True
    assert await controller.items.handle_create_item(reveillon["service"]["id"], "Raclette") is None
    plan = (await client.fetch_plan("reveillon", KEY)).plan
    assert plan.meals[0].services[0].items == []

async def test_failed_delete_rolls_back_through_http(client, reveillon):
    controller = await EventController.open(client, "reveillon", KEY)
    created = await controller.items.handle_create_item(reveillon["service"]["id"], "Raclette")
    before = controller.store.snapshot()

    # Another tab removed the dish in the meantime
    await client.call("delete_item", slug="reveillon", key=KEY, id=created.id)
    await controller.items.handle_delete(created.id)

    assert controller.store.plan == before
    assert controller.store.notifications[-1].type == "error"

async def test_signed_in_user_lists_own_events(transport):
    db = TestingSessionLocal()
    db.add(User(id="user-1", email="alice@example.com", name="Alice", email_verified=True))
    db.add(UserSession(token="session-1", user_id="user-1", expires_at=datetime.utcnow() + timedelta(days=1)))
    db.commit()
    db.close()

    alice = HttpActionClient(base_url="http://test", session_token="session-1", transport=transport)
    event = await alice.call("create_event", slug="anniversaire", name="Anniversaire", creation_mode="apero")

    assert event["owner_id"] == "user-1"
    plan = await alice.fetch_plan("anniversaire")
    assert plan.write_enabled is True
    assert [service.title for service in plan.plan.meals[0].services] == ["Aperitif", "Boissons"]

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        response = await http.get("/me/events", headers={"Authorization": "Bearer session-1"})
        assert [event["slug"] for event in response.json()["data"]] == ["anniversaire"]

        response = await http.get("/me/events")
        assert response.status_code == 401

async def test_admin_dashboard(client, http, reveillon):
    headers = {"Authorization": f"Bearer {settings.ADMIN_TOKEN}"}

    response = await http.get("/admin/events")
    assert response.status_code in (401, 403)

    response = await http.get("/admin/events", headers=headers)
    events = response.json()["data"]
    assert events[0]["slug"] == "reveillon"
    assert events[0]["meals_count"] == 1
    assert events[0]["people_count"] == 0

    response = await http.get("/admin/audit-logs", params={"table_name": "meals"}, headers=headers)
    logs = response.json()["data"]
    assert [log["action"] for log in logs] == ["create"]

    response = await http.put(
        f"/admin/events/{events[0]['id']}",
        json={"name": "Réveillon 2025", "slug": "reveillon-2025"},
        headers=headers,
    )
    assert response.json()["data"]["slug"] == "reveillon-2025"
    assert (await client.fetch_plan("reveillon-2025")).plan.event.name == "Réveillon 2025"

    response = await http.post("/admin/audit-logs/purge", json={"delete_all": True}, headers=headers)
    assert response.json()["data"]["deleted"] > 0

    response = await http.post("/admin/audit-logs/purge", json={}, headers=headers)
    assert response.status_code == 422

    response = await http.delete(f"/admin/events/{events[0]['id']}", headers=headers)
    assert response.status_code == 200
    with pytest.raises(ActionError):
        await client.fetch_plan("reveillon-2025")

async def test_ai_generation_is_rate_limited(client, reveillon, monkeypatch):
    monkeypatch.setattr(settings, "AI_RATE_LIMIT_PER_MINUTE", 1)

    first = await client.call("generate_ingredients", slug="reveillon", key=KEY, item_id=1, item_name="Raclette")
    assert first["success"] is False  # anonymous callers are refused politely

    with pytest.raises(ActionError) as exc_info:
        await client.call("generate_ingredients", slug="reveillon", key=KEY, item_id=1, item_name="Raclette")
    assert exc_info.value.status_code == 429
