"""Reference data for the dashboard: users, stores, products and reasons."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..core.config import load_yaml
from ..models.schemas import ProductSKU, Store, User

LOGGER = logging.getLogger(__name__)


class CatalogService:
    """Catalog loaded from ``catalog.yaml`` or injected directly.

    Passing ``catalog`` bypasses the file so tests can use arbitrary
    fixtures.
    """

    def __init__(
        self,
        config_root: str = "configs",
        catalog: Optional[Dict[str, Any]] = None,
    ) -> None:
        if catalog is None:
            path = os.path.join(config_root, "catalog.yaml")
            catalog = load_yaml(path)
            if not catalog:
                LOGGER.warning("Catalog file %s missing or empty", path)

        self.users: List[User] = self._parse(User, catalog.get("users"))
        self.stores: List[Store] = self._parse(Store, catalog.get("stores"))
        self.products: List[ProductSKU] = self._parse(ProductSKU, catalog.get("products"))
        self.justification_reasons: List[str] = [
            str(reason) for reason in (catalog.get("justification_reasons") or []) if str(reason).strip()
        ]

    @staticmethod
    def _parse(model: type, rows: Optional[Iterable[Any]]) -> list:
        parsed = []
        for row in rows or []:
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as exc:
                LOGGER.warning("Skipping invalid %s catalog entry %r: %s", model.__name__, row, exc)
        return parsed

    def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = (email or "").strip().lower()
        return next((user for user in self.users if user.email.lower() == wanted), None)

    def find_store(self, name: str) -> Optional[Store]:
        return next((store for store in self.stores if store.name == name), None)

    def find_product(self, sku: str) -> Optional[ProductSKU]:
        return next((product for product in self.products if product.sku == sku), None)

    def stores_in_region(self, region: str) -> List[Store]:
        return [store for store in self.stores if store.region == region]

    @property
    def regions(self) -> List[str]:
        seen: List[str] = []
        for store in self.stores:
            if store.region not in seen:
                seen.append(store.region)
        return seen

    @property
    def categories(self) -> List[str]:
        seen: List[str] = []
        for product in self.products:
            if product.category not in seen:
                seen.append(product.category)
        return seen
