r"""backend/app/api/v1/stores.py

Per-store datasets: order recommendations, order history, spoilage and
notifications, plus manual inventory counts."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.schemas import (
    InventoryCount,
    Notification,
    OrderHistoryRecord,
    RecommendationRecord,
    SpoilageRecord,
)
from ...services.catalog_service import CatalogService
from ...services.dataset_service import DatasetService
from .deps import error_payload, get_catalog, get_datasets, resolve_store

LOGGER = logging.getLogger(__name__)
router = APIRouter()


@router.get("/order-recommendations/{store_name}", response_model=List[RecommendationRecord])
def get_order_recommendations(
    store_name: str,
    catalog: CatalogService = Depends(get_catalog),
    datasets: DatasetService = Depends(get_datasets),
) -> List[RecommendationRecord]:
    """Return the current batch of reorder suggestions for a store."""

    store = resolve_store(catalog, store_name)
    records = datasets.order_recommendations(store)
    LOGGER.info("Served %d recommendation(s) for store=%s", len(records), store.name)
    return records


@router.get("/order-history/{store_name}", response_model=List[OrderHistoryRecord])
def get_order_history(
    store_name: str,
    catalog: CatalogService = Depends(get_catalog),
    datasets: DatasetService = Depends(get_datasets),
) -> List[OrderHistoryRecord]:
    return datasets.order_history(resolve_store(catalog, store_name))


@router.get("/spoilage-data/{store_name}", response_model=List[SpoilageRecord])
def get_spoilage_data(
    store_name: str,
    catalog: CatalogService = Depends(get_catalog),
    datasets: DatasetService = Depends(get_datasets),
) -> List[SpoilageRecord]:
    return datasets.spoilage(resolve_store(catalog, store_name))


@router.get("/notifications/{store_name}", response_model=List[Notification])
def get_notifications(
    store_name: str,
    catalog: CatalogService = Depends(get_catalog),
    datasets: DatasetService = Depends(get_datasets),
) -> List[Notification]:
    return datasets.notifications(resolve_store(catalog, store_name))


@router.post("/inventory-counts")
def record_inventory_count(
    body: InventoryCount,
    catalog: CatalogService = Depends(get_catalog),
) -> Dict[str, Any]:
    """Acknowledge a manual inventory count.

    Counts are not stored; the response only echoes what was received.
    """

    store = resolve_store(catalog, body.store_name)
    product = catalog.find_product(body.sku)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("sku_not_found", f"SKU '{body.sku}' was not found in the catalog."),
        )
    LOGGER.info("Manual count store=%s sku=%s count=%d", store.name, product.sku, body.count)
    return {
        "status": "ok",
        "message": (
            f"Inventory for {product.name} ({product.sku}) updated to {body.count}. "
            "Recommendations will be refreshed shortly."
        ),
    }
