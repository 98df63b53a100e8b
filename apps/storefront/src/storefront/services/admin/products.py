from __future__ import annotations

import asyncio
from typing import Any, Mapping

from storefront.api.client import RequestError
from storefront.schemas import Category, EntityId, Product
from storefront.services.admin.base import ADMIN_FLOW_ERRORS, AdminFlow, Confirm, confirmed
from storefront.validation import AdminProductForm, validate_form


class ProductAdminFlow(AdminFlow):
    """Product catalogue management; the category list is loaded alongside for the form."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.products: list[Product] = []
        self.categories: list[Category] = []
        self.submitting = False
        self.saving_id: EntityId | None = None
        self.deleting_id: EntityId | None = None

    @property
    def default_category_id(self) -> EntityId | None:
        return self.categories[0].id if self.categories else None

    async def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            self.categories, self.products = await asyncio.gather(
                self._api.list_categories(),
                self._api.list_products(),
            )
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
            form = validate_form(AdminProductForm, dict(data))
            await self._api.create_product(token, form.to_payload())
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("product.create", exc)
        finally:
            self.submitting = False
        self._succeed("product.create", "Product created successfully.")
        await self.load()
        return True

    async def update(self, product_id: EntityId, data: Mapping[str, Any]) -> bool:
        self.saving_id = product_id
        try:
            token = self._admin_token()
            form = validate_form(AdminProductForm, dict(data))
            await self._api.update_product(token, product_id, form.to_payload())
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("product.update", exc)
        finally:
            self.saving_id = None
        self._succeed("product.update", "Product updated.")
        await self.load()
        return True

    async def delete(self, product: Product, *, confirm: Confirm) -> bool:
        if not await confirmed(confirm, f'Delete "{product.name}"? This cannot be undone.'):
            return False
        self.deleting_id = product.id
        try:
            token = self._admin_token()
            await self._api.delete_product(token, product.id)
        except ADMIN_FLOW_ERRORS as exc:
            return self._fail("product.delete", exc)
        finally:
            self.deleting_id = None
        self._succeed("product.delete", "Product deleted.")
        await self.load()
        return True
