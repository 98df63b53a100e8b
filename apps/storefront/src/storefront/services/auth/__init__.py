"""Signed-in session state and its persistence."""

from .session_store import (
    AUTH_STORAGE_KEY,
    VIEW_MODE_STORAGE_KEY,
    AuthenticationRequiredError,
    CustomerRequiredError,
    SessionStore,
    normalize_view_mode,
    user_has_admin_role,
)
from .storage import FileSessionStorage, MemorySessionStorage, SessionStorage

__all__ = [
    "AUTH_STORAGE_KEY",
    "VIEW_MODE_STORAGE_KEY",
    "AuthenticationRequiredError",
    "CustomerRequiredError",
    "FileSessionStorage",
    "MemorySessionStorage",
    "SessionStorage",
    "SessionStore",
    "normalize_view_mode",
    "user_has_admin_role",
]
