"""Message store talking to the persistence service over HTTP."""

from typing import Any, List, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import TypeAdapter

from ..domain.errors import StorageError, ValidationError
from ..domain.models import Message, Role
from .base import validate_new_message

logger = structlog.get_logger()

_MESSAGE_LIST = TypeAdapter(List[Message])


class HttpMessageStore:
    """Networked message store.

    User turns go through ``POST /api/chat`` and assistant turns through
    ``POST /api/ai-response``. Transport failures and 5xx responses raise
    ``StorageError``; 400 responses raise ``ValidationError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpMessageStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("persistence_request_failed", method=method, url=url, error=str(e))
            raise StorageError(f"Persistence service unreachable: {e}") from e

        if response.is_error and response.status_code != 400:
            logger.error("persistence_request_error", method=method, url=url, status=response.status_code)
            raise StorageError(f"Persistence service returned {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            logger.error("persistence_response_unreadable", method=method, url=url, status=response.status_code)
            raise StorageError(f"Persistence service sent an unreadable {response.status_code} response") from e

        if response.status_code == 400:
            detail = body.get("detail", "Invalid request data") if isinstance(body, dict) else "Invalid request data"
            errors = body.get("errors") if isinstance(body, dict) else None
            raise ValidationError(detail, errors)
        return body

    async def list_messages(self, session_id: str) -> List[Message]:
        data = await self._request("GET", f"/api/messages/{quote(session_id, safe='')}")
        return _MESSAGE_LIST.validate_python(data)

    async def create_message(self, content: str, role: Role, model: str, session_id: str) -> Message:
        role = validate_new_message(content, role, model, session_id)
        if role is Role.USER:
            data = await self._request(
                "POST", "/api/chat", json={"message": content, "model": model, "sessionId": session_id}
            )
        else:
            data = await self._request(
                "POST", "/api/ai-response", json={"content": content, "model": model, "sessionId": session_id}
            )
        return Message.model_validate(data["message"])

    async def clear_session(self, session_id: str) -> None:
        await self._request("DELETE", f"/api/messages/{quote(session_id, safe='')}")
