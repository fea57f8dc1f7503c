r"""backend/app/api/v1/insights.py

Regional and corporate performance routes."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.schemas import CorporateDashboard, RegionalStorePerformance
from ...services.catalog_service import CatalogService
from ...services.dataset_service import DatasetService
from .deps import error_payload, get_catalog, get_datasets

router = APIRouter()


@router.get("/regional-performance/{region}", response_model=List[RegionalStorePerformance])
def get_regional_performance(
    region: str,
    catalog: CatalogService = Depends(get_catalog),
    datasets: DatasetService = Depends(get_datasets),
) -> List[RegionalStorePerformance]:
    """Return one performance row per store in ``region``."""

    if region not in catalog.regions:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("region_not_found", f"Region '{region}' has no stores."),
        )
    return datasets.regional_performance(region)


@router.get("/corporate-dashboard", response_model=CorporateDashboard)
def get_corporate_dashboard(datasets: DatasetService = Depends(get_datasets)) -> CorporateDashboard:
    return datasets.corporate_dashboard()
