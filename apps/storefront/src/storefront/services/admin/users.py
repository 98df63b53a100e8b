"""Admin user management: profile edits and account access."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError

from storefront.api.client import RequestError
from storefront.schemas import AdminUser, AdminUserUpdate, EntityId, is_user_enabled
from storefront.services.admin.base import ADMIN_FLOW_ERRORS, AdminActionError, AdminFlow, Confirm, confirmed
from storefront.validation import FormValidationError, first_validation_error


class SelfDisableError(AdminActionError):
    def __init__(self) -> None:
        super().__init__("You can't disable your own account.")


def prepare_user_update(changes: AdminUserUpdate | Mapping[str, Any]) -> AdminUserUpdate:
    """Validate a partial update.

    Only fields that were set are checked: email and full name may be left out
    but never cleared, and a provided role list must not be empty. Optional
    text fields set to blank are sent as ``null``. Enabling or disabling goes
    through ``UserAdminFlow.set_access`` only.
    """

    if isinstance(changes, AdminUserUpdate):
        update = changes
    else:
        if "enabled" in changes:
            raise FormValidationError("Use the access toggle to enable or disable an account.", field="enabled")
        try:
            update = AdminUserUpdate.model_validate(dict(changes))
        except ValidationError as exc:
            message, field = first_validation_error(exc)
            raise FormValidationError(message, field=field) from exc

    values: dict[str, Any] = {}
    for name in ("email", "full_name"):
        if update.is_set(name):
            value = (getattr(update, name) or "").strip()
            if not value:
                raise FormValidationError("Email and full name are required.", field=name)
            values[name] = value.lower() if name == "email" else value
    if update.is_set("roles"):
        roles = [role.strip() for role in update.roles or [] if role.strip()]
        if not roles:
            raise FormValidationError("At least one role is required.", field="roles")
        values["roles"] = roles
    for name in ("password", "phone", "address"):
        if update.is_set(name):
            value = (getattr(update, name) or "").strip()
            values[name] = value or None

    # Rebuilt through the constructor so ``model_fields_set`` lists only what the caller set.
    return AdminUserUpdate(**values)


class UserAdminFlow(AdminFlow):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.users: list[AdminUser] = []
        self.saving_id: EntityId | None = None
        self.pending_user_id: EntityId | None = None

    @property
    def enabled_count(self) -> int:
        return sum(1 for user in self.users if is_user_enabled(user))

    @property
    def disabled_count(self) -> int:
        return len(self.users) - self.enabled_count

    def is_current_user(self, user_id: EntityId) -> bool:
        current = self._session.user
        return current is not None and str(current.id) == str(user_id)

    async def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            token = self._admin_token()
            self.users = await self._api.admin_list_users(token)
        except ADMIN_FLOW_ERRORS as exc:
            self.error = str(exc)
            return False
        finally:
            self.loading = False
        return True

    async def update(self, user_id: EntityId, changes: AdminUserUpdate | Mapping[str, Any]) -> bool:
        self.saving_id = user_id
        try:
            token = self._admin_token()
            update = prepare_user_update(changes)
            await self._api.admin_update_user(token, user_id, update.to_payload())
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("user.update", exc)
        finally:
            self.saving_id = None
        self._succeed("user.update", "User updated successfully.")
        await self.load()
        if self.is_current_user(user_id):
            await self._refresh_current_user()
        return True

    async def set_access(self, user: AdminUser, enabled: bool, *, confirm: Confirm) -> bool:
        """Enable or disable an account.

        Disabling the signed-in admin is refused without a request. Disabling
        anyone else needs ``confirm`` to agree first.
        """

        if not enabled:
            if self.is_current_user(user.id):
                return self._fail("user.access", SelfDisableError())
            if not await confirmed(confirm, f"Disable {user.email}? They will not be able to sign in."):
                return False
        self.pending_user_id = user.id
        try:
            token = self._admin_token()
            await self._api.admin_set_user_access(token, user.id, enabled)
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("user.access", exc)
        finally:
            self.pending_user_id = None
        self._succeed("user.access", f"Account {'enabled' if enabled else 'disabled'}.")
        await self.load()
        return True

    async def _refresh_current_user(self) -> None:
        try:
            await self._session.refresh_user()
        except RequestError as exc:
            self.notices.error(exc.message)
