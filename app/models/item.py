"""
Item and ingredient models
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Float, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    quantity = Column(String(50), nullable=True)
    note = Column(Text, nullable=True)
    person_id = Column(Integer, ForeignKey("people.id", ondelete="SET NULL"), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=True)
    checked = Column(Boolean, nullable=False, default=False)
    category = Column(String(50), nullable=True)
    cache_id = Column(Integer, ForeignKey("ingredient_cache.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    service = relationship("Service", back_populates="items")
    person = relationship("Person")
    ingredients = relationship(
        "Ingredient",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Ingredient.order_index",
    )

class Ingredient(Base):
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    quantity = Column(String(50), nullable=True)
    checked = Column(Boolean, nullable=False, default=False)
    category = Column(String(50), nullable=True, default="misc")
    order_index = Column(Integer, nullable=False, default=0)

    # Relationships
    item = relationship("Item", back_populates="ingredients")
