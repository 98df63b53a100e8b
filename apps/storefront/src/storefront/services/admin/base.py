"""Shared plumbing for the admin console flows."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Union

from loguru import logger

from storefront.api.client import ApiClient, RequestError
from storefront.services.admin.notices import NoticeBoard
from storefront.services.auth import AuthenticationRequiredError, SessionStore
from storefront.validation import FormValidationError

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


class AdminAccessRequiredError(RuntimeError):
    def __init__(self, message: str = "Admin access required.") -> None:
        super().__init__(message)


class AdminActionError(RuntimeError):
    """Raised when an admin action is refused locally, before any request."""


ADMIN_FLOW_ERRORS: tuple[type[Exception], ...] = (
    AdminAccessRequiredError,
    AdminActionError,
    AuthenticationRequiredError,
    FormValidationError,
    RequestError,
)


async def confirmed(confirm: Confirm, prompt: str) -> bool:
    answer = confirm(prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)


class AdminFlow:
    """Base for admin pages.

    Every mutation validates locally, calls the gateway, then re-fetches the
    whole list instead of merging the response into local state. Failures turn
    into error notices and the mutation returns ``False``.
    """

    def __init__(self, api: ApiClient, session: SessionStore, *, notices: NoticeBoard | None = None) -> None:
        self._api = api
        self._session = session
        self.notices = notices or NoticeBoard()
        self.loading = False
        self.error: str | None = None

    def _admin_token(self) -> str:
        token = self._session.require_token()
        if not self._session.is_admin:
            raise AdminAccessRequiredError()
        return token

    def _fail(self, action: str, exc: Exception) -> bool:
        message = str(exc)
        self.notices.error(message)
        logger.warning("Admin action failed", action=action, error=message)
        return False

    def _succeed(self, action: str, message: str) -> None:
        self.notices.success(message)
        logger.info("Admin action completed", action=action)
