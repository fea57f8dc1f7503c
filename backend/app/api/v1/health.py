r"""backend\app\api\v1\health.py

Health check endpoints.

These endpoints can be used by orchestrators and load balancers to verify
that the service is running.  A simple GET request to `/api/v1/health`
returns a JSON payload with status information.
"""

from fastapi import APIRouter, Depends

from ...services.catalog_service import CatalogService
from .deps import get_catalog

router = APIRouter()


@router.get("/health")
def health_check(catalog: CatalogService = Depends(get_catalog)) -> dict[str, str]:
    """Return a basic health indicator plus whether catalog data is loaded."""
    return {"status": "ok", "catalog": "loaded" if catalog.products else "empty"}
