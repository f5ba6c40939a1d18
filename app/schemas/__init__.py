"""
Pydantic schemas package
"""

from .common import *
from .plan import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "ActionResponse",
    "ActionResult",
    "IngredientRead",
    "ItemRead",
    "ServiceRead",
    "MealRead",
    "PersonRead",
    "PersonCreated",
    "EventRead",
    "PlanData",
    "PlanResponse",
    "ChangeLogRead",
]
