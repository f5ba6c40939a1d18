"""
Audit, AI cache and feedback models
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey

from app.core.db import Base

class ChangeLog(Base):
    __tablename__ = "change_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(20), nullable=False)  # create, update, delete
    table_name = Column(String(50), nullable=False, index=True)
    record_id = Column(Integer, nullable=False)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    user_ip = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    referer = Column(String(500), nullable=True)
    user_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

class IngredientCache(Base):
    __tablename__ = "ingredient_cache"

    id = Column(Integer, primary_key=True, index=True)
    dish_name = Column(String(200), nullable=False, index=True)
    people_count = Column(Integer, nullable=False, default=0)
    ingredients = Column(Text, nullable=False)  # JSON list of {name, quantity, category}
    confirmations = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class AIFeedback(Base):
    __tablename__ = "ai_feedback"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="SET NULL"), nullable=True)
    cache_id = Column(Integer, ForeignKey("ingredient_cache.id", ondelete="SET NULL"), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    user_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
