"""
Input schemas for every server action.

Free-text fields are sanitized while validating, so handlers only ever see
cleaned values.
"""

from datetime import date
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from app.utils.sanitize import (
    sanitize_emoji,
    sanitize_key,
    sanitize_slug,
    sanitize_strict_text,
    sanitize_text,
)


def safe_text(max_length: int = 500):
    return Annotated[str, AfterValidator(lambda v: sanitize_text(v, max_length))]


def safe_strict_text(max_length: int = 100):
    return Annotated[str, AfterValidator(lambda v: sanitize_strict_text(v, max_length))]


SafeSlug = Annotated[str, AfterValidator(lambda v: sanitize_slug(v, 50))]
SafeEmoji = Annotated[str, AfterValidator(sanitize_emoji)]
SafeKey = Annotated[str, AfterValidator(lambda v: sanitize_key(v, 100))]
Headcount = Annotated[int, Field(ge=0, le=1000)]
RecordId = Annotated[int, Field(gt=0)]
RsvpStatus = Literal["confirmed", "declined", "maybe"]


def _to_iso_date(value: Union[str, date]) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        raise ValueError("Invalid date format")
    return value


DateStr = Annotated[Union[date, str], AfterValidator(_to_iso_date)]


class BaseInput(BaseModel):
    slug: SafeSlug
    key: Optional[SafeKey] = None
    token: Optional[SafeKey] = None


# -------- Events --------

class CreateEventInput(BaseModel):
    slug: SafeSlug
    name: safe_text(100)
    description: Optional[safe_text(500)] = None
    key: Optional[SafeKey] = None
    creation_mode: Optional[Literal["total", "classique", "apero", "zero"]] = None
    date: Optional[str] = None
    adults: Headcount = 0
    children: Headcount = 0


class UpdateEventInput(BaseInput):
    name: Optional[safe_text(100)] = None
    description: Optional[safe_text(500)] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None


class DeleteEventInput(BaseInput):
    pass


class ValidateKeyInput(BaseModel):
    slug: Optional[SafeSlug] = None
    key: Optional[SafeKey] = None
    token: Optional[SafeKey] = None


class AdminUpdateEventInput(BaseModel):
    name: safe_text(100)
    description: Optional[safe_text(500)] = None
    slug: Optional[SafeSlug] = None
    admin_key: Optional[SafeKey] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None


# -------- Meals --------

class CreateMealInput(BaseInput):
    date: DateStr
    title: Optional[safe_text(200)] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None
    time: Optional[str] = None
    address: Optional[safe_text(500)] = None


class CreateMealWithServicesInput(CreateMealInput):
    services: List[safe_strict_text(100)]

    @field_validator("services")
    @classmethod
    def at_least_one_service(cls, value: List[str]) -> List[str]:
        titles = [title for title in value if title]
        if not titles:
            raise ValueError("At least one service is required")
        return titles


class UpdateMealInput(BaseInput):
    id: RecordId
    date: Optional[DateStr] = None
    title: Optional[safe_text(200)] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None
    time: Optional[str] = None
    address: Optional[safe_text(500)] = None


class DeleteByIdInput(BaseInput):
    id: RecordId


# -------- Services --------

class CreateServiceInput(BaseInput):
    meal_id: RecordId
    title: safe_text(200)
    description: Optional[safe_text(500)] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None
    people_count: Optional[Headcount] = None


class UpdateServiceInput(BaseInput):
    id: RecordId
    title: Optional[safe_text(200)] = None
    description: Optional[safe_text(500)] = None
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None
    people_count: Optional[Headcount] = None


# -------- People --------

class CreatePersonInput(BaseInput):
    name: safe_strict_text(50)
    emoji: Optional[SafeEmoji] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Name is required")
        return value


class UpdatePersonInput(BaseInput):
    id: RecordId
    name: safe_strict_text(50)
    emoji: Optional[SafeEmoji] = None


class ClaimPersonInput(BaseInput):
    person_id: RecordId


class UpdatePersonStatusInput(BaseInput):
    person_id: RecordId
    status: RsvpStatus


class UpdateGuestCountInput(BaseInput):
    person_id: RecordId
    guest_adults: Headcount
    guest_children: Headcount


# -------- Items --------

class CreateItemInput(BaseInput):
    service_id: RecordId
    name: safe_text(200)
    quantity: Optional[safe_text(50)] = None
    note: Optional[safe_text(500)] = None
    price: Optional[float] = Field(default=None, ge=0, le=100000)
    person_id: Optional[RecordId] = None


class UpdateItemInput(BaseInput):
    id: RecordId
    name: safe_text(200)
    quantity: Optional[safe_text(50)] = None
    note: Optional[safe_text(500)] = None
    price: Optional[float] = Field(default=None, ge=0, le=100000)
    person_id: Optional[RecordId] = None


class AssignItemInput(BaseInput):
    id: RecordId
    person_id: Optional[RecordId] = None


class MoveItemInput(BaseInput):
    item_id: RecordId
    target_service_id: RecordId
    target_order: Optional[Annotated[int, Field(ge=0)]] = None


class ReorderItemsInput(BaseInput):
    service_id: RecordId
    item_ids: List[RecordId]


class ToggleItemCheckedInput(BaseInput):
    id: RecordId
    checked: bool


# -------- Ingredients --------

class GenerateIngredientsInput(BaseInput):
    item_id: RecordId
    item_name: safe_strict_text(100)
    adults: Optional[Headcount] = None
    children: Optional[Headcount] = None
    people_count: Optional[Headcount] = None
    locale: Optional[str] = None
    note: Optional[safe_text(500)] = None


class BulkGenerationEntry(BaseModel):
    id: RecordId
    action: Literal["generate", "categorize"] = "generate"


class GenerateAllIngredientsInput(BaseInput):
    locale: Optional[str] = None
    items: List[BulkGenerationEntry]


class CreateIngredientInput(BaseInput):
    item_id: RecordId
    name: safe_text(100)
    quantity: Optional[safe_text(50)] = None


class UpdateIngredientInput(BaseInput):
    id: RecordId
    name: Optional[safe_text(100)] = None
    quantity: Optional[safe_text(50)] = None
    checked: Optional[bool] = None


class DeleteAllIngredientsInput(BaseInput):
    item_id: RecordId


class SaveAIFeedbackInput(BaseInput):
    item_id: RecordId
    rating: Annotated[int, Field(ge=1, le=5)]
    comment: Optional[safe_text(1000)] = None


# -------- Admin --------

AUDIT_TABLE_NAMES = ("events", "meals", "services", "items", "people", "ingredients")


class AuditLogFilter(BaseModel):
    table_name: Optional[Literal["events", "meals", "services", "items", "people", "ingredients"]] = None
    action: Optional[Literal["create", "update", "delete"]] = None
    user_id: Optional[str] = None


class DeleteAuditLogsInput(BaseModel):
    older_than_days: Optional[Annotated[int, Field(ge=1, le=365)]] = None
    delete_all: Optional[bool] = None

    @model_validator(mode="after")
    def require_scope(self):
        if self.older_than_days is None and self.delete_all is not True:
            raise ValueError("Either older_than_days or delete_all must be provided")
        return self


class UpdateCacheEntryInput(BaseModel):
    ingredients: str = Field(min_length=2)
