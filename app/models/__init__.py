"""
Database models package
"""

from .user import User, UserSession
from .event import Event
from .meal import Meal, Service
from .item import Item, Ingredient
from .person import Person
from .audit import ChangeLog, IngredientCache, AIFeedback

__all__ = [
    "User",
    "UserSession",
    "Event",
    "Meal",
    "Service",
    "Item",
    "Ingredient",
    "Person",
    "ChangeLog",
    "IngredientCache",
    "AIFeedback",
]
