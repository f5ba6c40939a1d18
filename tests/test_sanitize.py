"""
Tests for input sanitization and input schemas
"""

import pytest
from pydantic import ValidationError

from app.schemas.actions import (
    CreateEventInput,
    CreateMealWithServicesInput,
    CreatePersonInput,
    DeleteAuditLogsInput,
    MoveItemInput,
)
from app.utils.sanitize import (
    sanitize_emoji,
    sanitize_key,
    sanitize_number,
    sanitize_slug,
    sanitize_strict_text,
    sanitize_text,
)

def test_sanitize_text_strips_markup():
    """Script blocks vanish entirely, other tags leave their text"""
    assert sanitize_text("<script>alert(1)</script>Raclette") == "Raclette"
    assert sanitize_text("<b>Fromage</b> de chèvre") == "Fromage de chèvre"
    assert sanitize_text("javascript:alert(1)") == "alert(1)"

def test_sanitize_text_keeps_lines_and_truncates():
    assert sanitize_text("ligne 1\r\nligne 2") == "ligne 1\nligne 2"
    assert sanitize_text("abcdef", max_length=3) == "abc"
    assert sanitize_text("  padded\x07  ") == "padded"

def test_sanitize_non_string_input():
    assert sanitize_text(None) == ""
    assert sanitize_strict_text(42) == ""
    assert sanitize_slug(["x"]) == ""
    assert sanitize_emoji(None) == ""
    assert sanitize_key(1.5) == ""

def test_sanitize_strict_text():
    assert sanitize_strict_text("Cécile <3 !!") == "Cécile 3"
    assert sanitize_strict_text("Jean-Pierre   O'Neil") == "Jean-Pierre O'Neil"

def test_sanitize_slug():
    assert sanitize_slug("Réveillon de Noël 2025") == "reveillon-de-noel-2025"
    assert sanitize_slug("--a__b--") == "a-b"

def test_sanitize_emoji_and_key():
    assert sanitize_emoji("hello 🎉 and 🍕") == "🎉"
    assert sanitize_emoji("no emoji") == ""
    assert sanitize_key("abc-123_XYZ!@#") == "abc-123_XYZ"

def test_sanitize_number():
    assert sanitize_number(12.7, 0, 10, 4) == 10
    assert sanitize_number(-3, 0, 10, 4) == 0
    assert sanitize_number(float("nan"), 0, 10, 4) == 4
    assert sanitize_number("7", 0, 10, 4) == 4
    assert sanitize_number(True, 0, 10, 4) == 4

def test_schemas_sanitize_while_validating():
    data = CreateEventInput(slug="Mon Événement!", name="<i>Fête</i>")
    assert data.slug == "mon-evenement"
    assert data.name == "Fête"

def test_schema_rejects_invalid_input():
    with pytest.raises(ValidationError):
        CreatePersonInput(slug="fete", name="<>")
    with pytest.raises(ValidationError):
        MoveItemInput(slug="fete", item_id=0, target_service_id=1)
    with pytest.raises(ValidationError):
        DeleteAuditLogsInput()

    assert DeleteAuditLogsInput(delete_all=True).delete_all is True

def test_sanitize_text_keeps_entities_escaped():
    assert sanitize_text("&lt;img src=x onerror=alert(1)&gt;") == "&lt;img src=x onerror=alert(1)&gt;"
    assert sanitize_text("<p>Sel & poivre</p>") == "Sel &amp; poivre"

def test_meal_services_are_checked_after_cleaning():
    with pytest.raises(ValidationError):
        CreateMealWithServicesInput(slug="fete", date="2025-12-24", services=["   "])

    data = CreateMealWithServicesInput(slug="fete", date="2025-12-24", services=["Entrée", "  "])
    assert data.services == ["Entrée"]
