"""
Event model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    admin_key = Column(String(100), nullable=True)
    owner_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    adults = Column(Integer, nullable=False, default=0)
    children = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    meals = relationship(
        "Meal",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Meal.date",
    )
    people = relationship(
        "Person",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Person.name",
    )
