from __future__ import annotations

from typing import Any, Mapping

from storefront.api.client import RequestError
from storefront.schemas import Category, EntityId
from storefront.services.admin.base import ADMIN_FLOW_ERRORS, AdminFlow, Confirm, confirmed
from storefront.validation import CategoryForm, validate_form


class CategoryAdminFlow(AdminFlow):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.categories: list[Category] = []
        self.submitting = False
        self.saving_id: EntityId | None = None
        self.deleting_id: EntityId | None = None

    async def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            self.categories = await self._api.list_categories()
        except RequestError as exc:
            self.error = exc.message
            self.notices.error(exc.message)
            return False
        finally:
            self.loading = False
        return True

    async def create(self, data: Mapping[str, Any]) -> bool:
        self.submitting = True
        try:
            token = self._admin_token()
            form = validate_form(CategoryForm, dict(data))
            await self._api.create_category(token, form.to_payload())
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("category.create", exc)
        finally:
            self.submitting = False
        self._succeed("category.create", "Category created successfully.")
        await self.load()
        return True

    async def update(self, category_id: EntityId, data: Mapping[str, Any]) -> bool:
        self.saving_id = category_id
        try:
            token = self._admin_token()
            form = validate_form(CategoryForm, dict(data))
            await self._api.update_category(token, category_id, form.to_payload())
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("category.update", exc)
        finally:
            self.saving_id = None
        self._succeed("category.update", "Category updated.")
        await self.load()
        return True

    async def delete(self, category: Category, *, confirm: Confirm) -> bool:
        if not await confirmed(confirm, f'Delete "{category.name}"? This cannot be undone.'):
            return False
        self.deleting_id = category.id
        try:
            token = self._admin_token()
            await self._api.delete_category(token, category.id)
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("category.delete", exc)
        finally:
            self.deleting_id = None
        self._succeed("category.delete", "Category deleted.")
        await self.load()
        return True
