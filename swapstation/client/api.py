"""
HTTP client for the SwapStation API.

``ApiClient`` wraps one httpx ``AsyncClient``, attaches the bearer token from the
auth store and maps error responses onto client exceptions. A 401 clears the
auth store; 401 and 403 are also broadcast to registered listeners so the UI
can redirect to login or show a notice.
"""
from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from swapstation.client.errors import ApiError, ForbiddenError, FormValidationError, UnauthorizedError
from swapstation.client.session import AuthStore
from swapstation.config import settings
from swapstation.core import messages
from swapstation.core.exceptions import validation_errors_to_fields

logger = logging.getLogger(__name__)

MOCK_BASE_URL = "http://swapstation.mock"

FormT = TypeVar("FormT", bound=BaseModel)
Listener = Callable[[str, "ApiError"], Any]


def validate_form(schema: Type[FormT], data: Dict[str, Any]) -> FormT:
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        fields = validation_errors_to_fields(exc.errors())
        raise FormValidationError(next(iter(fields.values()), messages.INVALID_DATA), errors=fields)


def form_body(form: BaseModel) -> Dict[str, Any]:
    return form.model_dump(mode="json", by_alias=True)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        store: Optional[AuthStore] = None,
        timeout: Optional[float] = None,
        lifespan: Optional[Callable[[], Any]] = None,
    ):
        self.base_url = base_url
        self.store = store or AuthStore()
        self.client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            headers={"Content-Type": "application/json"},
            timeout=timeout or settings.api_timeout_seconds,
        )
        self._lifespan = lifespan
        self._stack: Optional[AsyncExitStack] = None
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, store: Optional[AuthStore] = None) -> "ApiClient":
        """Build the client for the configured backend: the in-process app or API_BASE_URL."""
        if settings.mock_api_enabled:
            from swapstation.main import app

            return cls(
                MOCK_BASE_URL,
                transport=httpx.ASGITransport(app=app),
                store=store,
                lifespan=lambda: app.router.lifespan_context(app),
            )
        if not settings.api_base_url:
            raise ValueError("API_BASE_URL is not configured")
        return cls(settings.api_base_url, store=store)

    async def open(self) -> "ApiClient":
        if self._lifespan is not None and self._stack is None:
            self._stack = AsyncExitStack()
            await self._stack.enter_async_context(self._lifespan())
        return self

    async def close(self) -> None:
        await self.client.aclose()
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None

    async def __aenter__(self) -> "ApiClient":
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: str, error: ApiError) -> None:
        for listener in list(self._listeners):
            listener(event, error)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Dict[str, Any]:
        """Send a request and return the decoded success envelope."""
        headers: Dict[str, str] = {}
        if auth and self.store.token:
            headers["Authorization"] = f"Bearer {self.store.token}"
        try:
            response = await self.client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(messages.NETWORK_ERROR) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"payload": body}

        message = body.get("message")
        if response.status_code == 401:
            self.store.clear()
            error = UnauthorizedError(message or messages.SESSION_EXPIRED, 401)
            self._notify("unauthorized", error)
            raise error
        if response.status_code == 403:
            error = ForbiddenError(message or messages.FORBIDDEN, 403)
            self._notify("forbidden", error)
            raise error
        if response.is_error:
            raise ApiError(message or messages.GENERIC_ERROR, response.status_code, body.get("errors"))
        return body

    async def get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return await self.request("DELETE", path, **kwargs)
