"""
Shopping list: flatten a plan into entries, merge them into rows, export to Excel
"""

import io
import re
from collections import OrderedDict
from typing import Dict, List, Literal, Optional, Tuple, Union

import pandas as pd
from pydantic import BaseModel, Field

from app.schemas.plan import IngredientRead, ItemRead, PlanData
from app.services.llm import INGREDIENT_CATEGORIES

_QUANTITY = re.compile(r"^(\d+(?:[.,]\d+)?)\s*(.*)$")
_ABBREVIATION = re.compile(r"^[a-z]+$", re.IGNORECASE)


class ShoppingEntry(BaseModel):
    """One thing to buy, as it appears in the plan"""
    type: Literal["ingredient", "item"]
    item: ItemRead
    ingredient: Optional[IngredientRead] = None
    meal_title: str = ""
    service_title: str = ""

    @property
    def name(self) -> str:
        return self.ingredient.name if self.ingredient else self.item.name

    @property
    def quantity(self) -> Optional[str]:
        return self.ingredient.quantity if self.ingredient else self.item.quantity

    @property
    def checked(self) -> bool:
        return self.ingredient.checked if self.ingredient else self.item.checked

    @property
    def category(self) -> Optional[str]:
        return self.ingredient.category if self.ingredient else self.item.category


class ShoppingSource(ShoppingEntry):
    original_quantity: Optional[str] = None


class ShoppingRow(BaseModel):
    id: str
    name: str
    quantity: Optional[float] = None
    unit: str = ""
    category: Optional[str] = None
    checked: bool = False
    sources: List[ShoppingSource] = Field(default_factory=list)

    @property
    def display_quantity(self) -> str:
        return format_aggregated_quantity(self.quantity, self.unit)


def parse_quantity(text: Optional[str]) -> Tuple[Optional[float], str]:
    """"400g" -> (400.0, "g"); text without a leading number is all unit"""
    if not text:
        return None, ""
    trimmed = text.strip()
    match = _QUANTITY.match(trimmed)
    if not match:
        return None, trimmed.lower()
    return float(match.group(1).replace(",", ".")), match.group(2).strip().lower()


def normalize_name(name: str) -> str:
    return " ".join(name.lower().split())


def collect_shopping_entries(plan: PlanData, person_id: Union[int, str] = "all") -> List[ShoppingEntry]:
    """Walk meals -> services -> items.

    An item with ingredients contributes its ingredients, otherwise the item
    itself. ``person_id`` keeps only items assigned to that person.
    """
    entries = []
    for meal in plan.meals:
        meal_title = meal.title or meal.date
        for service in meal.services:
            for item in service.items:
                if person_id != "all" and item.person_id != person_id:
                    continue
                if item.ingredients:
                    for ingredient in item.ingredients:
                        entries.append(ShoppingEntry(
                            type="ingredient",
                            item=item,
                            ingredient=ingredient,
                            meal_title=meal_title,
                            service_title=service.title,
                        ))
                else:
                    entries.append(ShoppingEntry(
                        type="item",
                        item=item,
                        meal_title=meal_title,
                        service_title=service.title,
                    ))
    return entries


def aggregate_shopping_list(entries: List[ShoppingEntry]) -> List[ShoppingRow]:
    """Merge entries sharing a normalized name and unit (and category, once categorised).

    Numeric quantities are summed; a row whose quantities cannot all be read
    as numbers has no total. Every contributing entry is kept as a source and
    a row is checked only when all of its sources are.
    """
    groups: Dict[str, ShoppingRow] = OrderedDict()
    unparsed = set()

    for entry in entries:
        raw_quantity = entry.quantity
        value, unit = parse_quantity(raw_quantity)
        key = f"{normalize_name(entry.name)}|{unit}"
        if entry.category:
            key = f"{key}|{entry.category}"

        row = groups.get(key)
        if row is None:
            row = ShoppingRow(id=key, name=entry.name.strip(), unit=unit, category=entry.category)
            groups[key] = row

        if value is not None:
            row.quantity = (row.quantity or 0) + value
        elif raw_quantity and raw_quantity.strip():
            unparsed.add(key)

        row.sources.append(ShoppingSource(
            type=entry.type,
            item=entry.item,
            ingredient=entry.ingredient,
            meal_title=entry.meal_title,
            service_title=entry.service_title,
            original_quantity=raw_quantity,
        ))

    rows = list(groups.values())
    for row in rows:
        if row.id in unparsed:
            row.quantity = None
        row.checked = all(source.checked for source in row.sources)
    return rows


def format_aggregated_quantity(quantity: Optional[float], unit: str) -> str:
    if quantity is None:
        return unit
    if not unit:
        return "" if quantity == 0 else _format_number(quantity)

    # Short alphabetic units stick to the number: 400g, 1.5l
    needs_space = len(unit) > 2 or not _ABBREVIATION.match(unit)
    return f"{_format_number(quantity)}{' ' if needs_space else ''}{unit}"


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def group_by_category(rows: List[ShoppingRow]) -> Dict[str, List[ShoppingRow]]:
    """Rows bucketed by shopping category, in aisle order; uncategorised rows go to misc"""
    buckets: Dict[str, List[ShoppingRow]] = OrderedDict((category, []) for category in INGREDIENT_CATEGORIES)
    for row in rows:
        category = row.category if row.category in buckets else "misc"
        buckets[category].append(row)
    return OrderedDict((category, bucket) for category, bucket in buckets.items() if bucket)


def build_shopping_list(plan: PlanData, person_id: Union[int, str] = "all") -> List[ShoppingRow]:
    return aggregate_shopping_list(collect_shopping_entries(plan, person_id))


class ShoppingExportService:
    """Excel export of an aggregated shopping list"""

    COLUMNS = ["Article", "Quantité", "Catégorie", "Pour", "Coché"]

    @staticmethod
    def export_shopping_list(rows: List[ShoppingRow], people: Optional[Dict[int, str]] = None) -> bytes:
        people = people or {}
        df = pd.DataFrame(columns=ShoppingExportService.COLUMNS)

        for row in rows:
            destinations = sorted({
                f"{source.meal_title} - {source.service_title} ({source.item.name})"
                for source in row.sources
            })
            owners = sorted({
                people[source.item.person_id]
                for source in row.sources
                if source.item.person_id in people
            })
            df.loc[len(df)] = [
                row.name,
                row.display_quantity,
                row.category or "misc",
                "; ".join(destinations) + (f" [{', '.join(owners)}]" if owners else ""),
                "oui" if row.checked else "non",
            ]

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Liste de courses")

        return buffer.getvalue()
