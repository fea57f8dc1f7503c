r"""backend/app/api/v1/deps.py

Shared service instances for the v1 routers.

Routes receive these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, status

from ...core.config import get_settings
from ...models.schemas import Store
from ...services.catalog_service import CatalogService
from ...services.dataset_service import DatasetService


def error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


@lru_cache(maxsize=None)
def get_catalog() -> CatalogService:
    return CatalogService(config_root=get_settings().config_dir)


@lru_cache(maxsize=None)
def get_datasets() -> DatasetService:
    return DatasetService(get_catalog(), config_root=get_settings().config_dir)


def resolve_store(catalog: CatalogService, store_name: str) -> Store:
    store = catalog.find_store(store_name)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("store_not_found", f"Store '{store_name}' was not found."),
        )
    return store
