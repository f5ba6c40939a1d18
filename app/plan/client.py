"""
Client side of the server actions
"""

import logging
from typing import Any, Optional, Protocol

import httpx
from fastapi.encoders import jsonable_encoder

from app.core.config import settings
from app.schemas.plan import PlanResponse
from app.utils.errors import ActionError, DatabaseError

logger = logging.getLogger(__name__)


class ActionClient(Protocol):
    """What the handlers need from the server.

    ``call`` runs the action registered under ``action`` (``"create_item"``,
    ``"delete_meal"``...) with keyword input and returns its data; failures
    raise ``ActionError`` or ``DatabaseError``.
    """

    async def call(self, action: str, /, **payload) -> Any:
        ...

    async def fetch_plan(self, slug: str, key: Optional[str] = None) -> PlanResponse:
        ...


class HttpActionClient:
    """ActionClient over the HTTP surface, using httpx"""

    def __init__(
        self,
        base_url: str = settings.BASE_URL,
        session_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url
        self.session_token = session_token
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.session_token:
            headers["Authorization"] = f"Bearer {self.session_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            timeout=self.timeout,
            headers=headers,
        )

    async def call(self, action: str, /, **payload) -> Any:
        async with self._client() as client:
            response = await client.post(f"/actions/{action}", json=jsonable_encoder(payload))
        return self._unwrap(response)

    async def fetch_plan(self, slug: str, key: Optional[str] = None) -> PlanResponse:
        params = {"key": key} if key else None
        async with self._client() as client:
            response = await client.get(f"/event/{slug}", params=params)
        return PlanResponse.model_validate(self._unwrap(response))

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_success:
            return body.get("data")

        message = body.get("message") or body.get("detail") or f"HTTP {response.status_code}"
        logger.warning(f"Action request failed ({response.status_code}): {message}")
        if response.status_code == 503:
            raise DatabaseError(message)

        error = ActionError(message, details=body.get("details"))
        error.status_code = response.status_code
        if body.get("error_code"):
            error.error_code = body["error_code"]
        raise error
