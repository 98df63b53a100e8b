"""Signed-in session state shared by every storefront service."""

from __future__ import annotations

from typing import Any, Mapping

from loguru import logger
from pydantic import ValidationError

from storefront.api.client import ApiClient, RequestError
from storefront.schemas import ADMIN_ROLE, AuthResponse, AuthUser, EntityId, ViewMode
from storefront.services.auth.storage import SessionStorage

AUTH_STORAGE_KEY = "ecommerce_auth"
VIEW_MODE_STORAGE_KEY = "ecommerce_view_mode"


class AuthenticationRequiredError(RuntimeError):
    """Raised when an action needs a bearer token and nobody is signed in."""

    def __init__(self, message: str = "Please sign in.") -> None:
        super().__init__(message)


class CustomerRequiredError(RuntimeError):
    """Raised when a customer-only action runs without an effective customer id."""

    def __init__(self, message: str = "Login as customer required") -> None:
        super().__init__(message)


def user_has_admin_role(user: AuthUser | None) -> bool:
    return bool(user and ADMIN_ROLE in user.roles)


def normalize_view_mode(user: AuthUser | None, preferred: ViewMode | str | None) -> ViewMode:
    """Non-admins always get the customer view; admins default to the admin view."""

    if not user_has_admin_role(user):
        return ViewMode.CUSTOMER
    value = preferred.value if isinstance(preferred, ViewMode) else preferred
    return ViewMode.CUSTOMER if value == ViewMode.CUSTOMER.value else ViewMode.ADMIN


class SessionStore:
    """Holds ``user``, ``token`` and ``view_mode`` and persists them.

    Lifecycle: construct, ``await initialize()`` (hydrate from storage, then
    revalidate the token with ``/auth/me``), then use. All writes go through the
    mutators below; consumers only read.
    """

    def __init__(self, api: ApiClient, storage: SessionStorage) -> None:
        self._api = api
        self._storage = storage
        self.user: AuthUser | None = None
        self.token: str | None = None
        self.view_mode: ViewMode = ViewMode.CUSTOMER
        self.loading = True
        self._fallback_customer_id: EntityId | None = None
        self._fallback_lookup_done_for: EntityId | None = None

    # Persistence --------------------------------------------------------

    def _read_stored_auth(self) -> AuthResponse | None:
        raw = self._storage.get(AUTH_STORAGE_KEY)
        if not raw:
            return None
        try:
            return AuthResponse.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring malformed persisted session")
            return None

    def _persist_auth(self, auth: AuthResponse) -> None:
        self._storage.set(AUTH_STORAGE_KEY, auth.model_dump_json(by_alias=True))

    def _purge(self) -> None:
        self._storage.remove(AUTH_STORAGE_KEY)
        self._storage.remove(VIEW_MODE_STORAGE_KEY)
        self.user = None
        self.token = None
        self.view_mode = ViewMode.CUSTOMER
        self._fallback_customer_id = None
        self._fallback_lookup_done_for = None

    def _apply_user(self, user: AuthUser | None) -> None:
        self.user = user
        self._fallback_customer_id = user.customer_id if user else None
        self._fallback_lookup_done_for = None

    def _apply_auth(self, auth: AuthResponse) -> None:
        self._persist_auth(auth)
        self._apply_user(auth.user)
        self.token = auth.access_token
        mode = normalize_view_mode(auth.user, self._storage.get(VIEW_MODE_STORAGE_KEY))
        self._storage.set(VIEW_MODE_STORAGE_KEY, mode.value)
        self.view_mode = mode

    # Lifecycle ----------------------------------------------------------

    async def initialize(self) -> None:
        stored = self._read_stored_auth()
        if stored is None:
            self.loading = False
            return

        self._apply_user(stored.user)
        self.token = stored.access_token
        self.view_mode = normalize_view_mode(stored.user, self._storage.get(VIEW_MODE_STORAGE_KEY))
        try:
            user = await self._api.me(stored.access_token)
        except RequestError as exc:
            logger.info("Stored session rejected, signing out", status_code=exc.status_code)
            self._purge()
        else:
            self._apply_user(user)
            self.view_mode = normalize_view_mode(user, self.view_mode)
        finally:
            self.loading = False

    @property
    def ready(self) -> bool:
        return not self.loading

    # Mutators -----------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthUser:
        auth = await self._api.login(email, password)
        self._apply_auth(auth)
        logger.info("Signed in", user_id=str(auth.user.id), view_mode=self.view_mode.value)
        return auth.user

    async def register(self, payload: Mapping[str, Any]) -> AuthUser:
        auth = await self._api.register(payload)
        self._apply_auth(auth)
        logger.info("Registered account", user_id=str(auth.user.id))
        return auth.user

    async def refresh_user(self) -> AuthUser | None:
        """Re-fetch the current user; does nothing when signed out."""

        if not self.token:
            return None
        current = self._read_stored_auth()
        user = await self._api.me(self.token)
        self._apply_user(user)
        self.view_mode = normalize_view_mode(user, self.view_mode)
        if current is not None:
            self._persist_auth(current.model_copy(update={"user": user, "access_token": self.token}))
        return user

    def set_user(self, user: AuthUser | None) -> None:
        self._apply_user(user)
        self.view_mode = normalize_view_mode(user, self.view_mode)

    def set_view_mode(self, mode: ViewMode | str) -> ViewMode:
        normalized = normalize_view_mode(self.user, mode)
        self.view_mode = normalized
        self._storage.set(VIEW_MODE_STORAGE_KEY, normalized.value)
        return normalized

    def toggle_view_mode(self) -> ViewMode:
        """Flip between admin and customer view; only effective for admins."""

        if not user_has_admin_role(self.user):
            return self.view_mode
        next_mode = ViewMode.CUSTOMER if self.view_mode is ViewMode.ADMIN else ViewMode.ADMIN
        self.view_mode = next_mode
        self._storage.set(VIEW_MODE_STORAGE_KEY, next_mode.value)
        return next_mode

    def logout(self) -> None:
        self._purge()
        logger.info("Signed out")

    # Derived values -----------------------------------------------------

    @property
    def has_admin_role(self) -> bool:
        return user_has_admin_role(self.user)

    @property
    def is_admin(self) -> bool:
        return self.has_admin_role and self.view_mode is ViewMode.ADMIN

    @property
    def effective_customer_id(self) -> EntityId | None:
        if self.view_mode is not ViewMode.CUSTOMER or self.user is None:
            return None
        if self.user.customer_id is not None:
            return self.user.customer_id
        return self._fallback_customer_id

    @property
    def can_use_customer_features(self) -> bool:
        return self.effective_customer_id is not None

    async def ensure_effective_customer_id(self) -> EntityId | None:
        """Resolve the customer id, probing once per user for admins without a profile."""

        user = self.user
        token = self.token
        if (
            token
            and user is not None
            and self.view_mode is ViewMode.CUSTOMER
            and user_has_admin_role(user)
            and user.customer_id is None
            and self._fallback_lookup_done_for != user.id
        ):
            self._fallback_lookup_done_for = user.id
            try:
                customer = await self._api.get_customer(token, user.id)
            except RequestError as exc:
                logger.info("No customer profile for admin", user_id=str(user.id), status_code=exc.status_code)
                self._fallback_customer_id = None
            else:
                self._fallback_customer_id = customer.id
        return self.effective_customer_id

    def require_token(self) -> str:
        if not self.token:
            raise AuthenticationRequiredError()
        return self.token

    async def require_customer(self) -> tuple[str, EntityId]:
        """Return ``(token, customer_id)`` or raise when customer features are unavailable."""

        if not self.token:
            raise CustomerRequiredError()
        customer_id = await self.ensure_effective_customer_id()
        if customer_id is None:
            raise CustomerRequiredError()
        return self.token, customer_id
