"""
Shared plumbing for the optimistic handlers.

A handler guards against read-only mode, applies its change to the store
right away, persists it through the ActionClient, then reconciles or rolls
back. Nothing is raised to the caller: failures end up as notifications.
"""

import logging
from typing import Any, Optional

from app.plan.client import ActionClient
from app.plan.store import PlanStore
from app.utils.errors import DatabaseError

logger = logging.getLogger(__name__)

ADD_ERROR = "Erreur lors de l'ajout ❌"
CREATE_ERROR = "Erreur lors de la création ❌"
UPDATE_ERROR = "Erreur lors de la mise à jour ❌"
DELETE_ERROR = "Erreur lors de la suppression ❌"
SAVED = "Modifications enregistrées ✓"


def describe_error(error: BaseException, fallback: str) -> str:
    """Toast text for a failed request; database outages get their own message"""
    if isinstance(error, DatabaseError):
        return error.message
    return fallback


class BaseHandler:
    def __init__(
        self,
        store: PlanStore,
        actions: ActionClient,
        slug: str,
        write_key: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self.store = store
        self.actions = actions
        self.slug = slug
        self.write_key = write_key
        self.token = token

    @property
    def read_only(self) -> bool:
        return self.store.read_only

    def credentials(self, token: Optional[str] = None) -> dict:
        return {"slug": self.slug, "key": self.write_key, "token": token or self.token}

    async def persist(self, action: str, /, token: Optional[str] = None, **payload) -> Any:
        return await self.actions.call(action, **payload, **self.credentials(token))

    def fail(self, error: BaseException, fallback: str, context: str) -> None:
        logger.error(f"{context} failed: {error}")
        self.store.notify(describe_error(error, fallback), "error")
