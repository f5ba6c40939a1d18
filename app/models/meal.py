"""
Meal (day) and service models
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Meal(Base):
    __tablename__ = "meals"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(20), nullable=False)  # YYYY-MM-DD
    title = Column(String(200), nullable=True)
    adults = Column(Integer, nullable=False, default=0)
    children = Column(Integer, nullable=False, default=0)
    time = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)

    # Relationships
    event = relationship("Event", back_populates="meals")
    services = relationship(
        "Service",
        back_populates="meal",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Service.order_index",
    )

class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    adults = Column(Integer, nullable=False, default=0)
    children = Column(Integer, nullable=False, default=0)
    people_count = Column(Integer, nullable=False, default=0)

    # Relationships
    meal = relationship("Meal", back_populates="services")
    items = relationship(
        "Item",
        back_populates="service",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Item.order_index",
    )
