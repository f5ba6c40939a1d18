"""
Plan tree schemas: the full nested view of one event
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class IngredientRead(PlanModel):
    id: int
    item_id: int
    name: str
    quantity: Optional[str] = None
    checked: bool = False
    category: Optional[str] = None
    order_index: int = 0


class ItemRead(PlanModel):
    id: int
    service_id: int
    name: str
    quantity: Optional[str] = None
    note: Optional[str] = None
    person_id: Optional[int] = None
    order_index: int = 0
    price: Optional[float] = None
    checked: bool = False
    category: Optional[str] = None
    cache_id: Optional[int] = None
    ingredients: List[IngredientRead] = Field(default_factory=list)


class ServiceRead(PlanModel):
    id: int
    meal_id: int
    title: str
    description: Optional[str] = None
    order_index: int = 0
    adults: int = 0
    children: int = 0
    people_count: int = 0
    items: List[ItemRead] = Field(default_factory=list)


class MealRead(PlanModel):
    id: int
    event_id: int
    date: str
    title: Optional[str] = None
    adults: int = 0
    children: int = 0
    time: Optional[str] = None
    address: Optional[str] = None
    services: List[ServiceRead] = Field(default_factory=list)


class PersonRead(PlanModel):
    id: int
    event_id: int
    name: str
    emoji: Optional[str] = None
    image: Optional[str] = None
    user_id: Optional[str] = None
    status: Optional[str] = None
    guest_adults: int = 0
    guest_children: int = 0


class PersonCreated(PersonRead):
    """Returned to the creator only: carries the guest capability token"""
    token: Optional[str] = None


class EventRead(PlanModel):
    id: int
    slug: str
    name: str
    description: Optional[str] = None
    admin_key: Optional[str] = None
    owner_id: Optional[str] = None
    adults: int = 0
    children: int = 0
    created_at: Optional[datetime] = None


class PlanData(PlanModel):
    event: Optional[EventRead] = None
    meals: List[MealRead] = Field(default_factory=list)
    people: List[PersonRead] = Field(default_factory=list)


class PlanResponse(BaseModel):
    plan: PlanData
    write_enabled: bool


class ChangeLogRead(PlanModel):
    id: int
    action: str
    table_name: str
    record_id: int
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    user_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    created_at: Optional[datetime] = None
