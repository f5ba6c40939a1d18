"""
Person (event participant) model
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Person(Base):
    __tablename__ = "people"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    emoji = Column(String(16), nullable=True)
    image = Column(String(500), nullable=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    token = Column(String(64), nullable=True, index=True)
    status = Column(String(20), nullable=True)  # confirmed, declined, maybe or NULL
    guest_adults = Column(Integer, nullable=False, default=0)
    guest_children = Column(Integer, nullable=False, default=0)

    # Relationships
    event = relationship("Event", back_populates="people")
