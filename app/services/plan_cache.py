"""
Time-bounded cache of fetched plans.

A cached plan is served for at most ``REVALIDATE_SECONDS``; every successful
mutation drops the event's entry so the next read is fresh.
"""

import logging
import threading
import time
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.plan import PlanData
from app.services.queries import fetch_plan

logger = logging.getLogger(__name__)


class PlanCache:
    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, Tuple[PlanData, float]] = {}
        self._lock = threading.Lock()

    def get(self, db: Session, slug: str) -> PlanData:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(slug)
        if entry and now - entry[1] < self.ttl_seconds:
            return entry[0]

        plan = fetch_plan(db, slug)
        if plan.event is not None:
            with self._lock:
                self._entries[slug] = (plan, now)
        return plan

    def revalidate(self, slug: Optional[str] = None) -> None:
        """Drop one event's cached plan, or everything when slug is None"""
        with self._lock:
            if slug is None:
                self._entries.clear()
            else:
                self._entries.pop(slug, None)
        logger.debug(f"Plan cache revalidated for {slug or 'all events'}")


plan_cache = PlanCache(settings.REVALIDATE_SECONDS)
