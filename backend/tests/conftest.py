from __future__ import annotations

import copy
import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.api.v1.deps import get_catalog, get_datasets  # noqa: E402
from backend.app.core import observability as obs  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.app.services.catalog_service import CatalogService  # noqa: E402
from backend.app.services.dataset_service import DatasetService  # noqa: E402

TODAY = date(2024, 7, 30)

CATALOG: Dict[str, Any] = {
    "users": [
        {
            "id": 1,
            "name": "Alice Manager",
            "email": "storemgr@greengrocer.com",
            "role": "Store Manager",
            "store_id": 101,
            "region": "North",
        },
        {
            "id": 2,
            "name": "Bob Regional",
            "email": "regionalmgr@greengrocer.com",
            "role": "Regional Manager",
            "region": "North",
        },
        {"id": 3, "name": "Charlie Analyst", "email": "analyst@greengrocer.com", "role": "Corporate Analyst"},
    ],
    "stores": [
        {"id": 101, "name": "GreenGrocer Downtown", "region": "North"},
        {"id": 102, "name": "GreenGrocer Suburbia", "region": "North"},
        {"id": 201, "name": "GreenGrocer Westside", "region": "West"},
    ],
    "products": [
        {"sku": "PROD-001", "name": "Organic Bananas", "category": "Produce", "unit_of_measure": "lb"},
        {"sku": "DAIRY-001", "name": "Organic Milk (Gallon)", "category": "Dairy", "unit_of_measure": "gallon"},
        {"sku": "BAKE-001", "name": "Artisan Sourdough", "category": "Bakery", "unit_of_measure": "loaf"},
    ],
    "justification_reasons": ["Supplier Delay", "Seasonal Demand Spike"],
}


@pytest.fixture(autouse=True)
def _no_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 0, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)


@pytest.fixture
def catalog() -> CatalogService:
    return CatalogService(catalog=copy.deepcopy(CATALOG))


@pytest.fixture
def llm_reply() -> Dict[str, Optional[Callable[[str], Any]]]:
    """Mutable holder for the fake LLM used by ``datasets``; ``None`` disables it."""

    return {"fn": None}


@pytest.fixture
def datasets(catalog: CatalogService, tmp_path: Path, llm_reply: Dict[str, Any]) -> DatasetService:
    def _llm(prompt: str) -> Any:
        fn = llm_reply["fn"]
        return fn(prompt) if fn is not None else None

    return DatasetService(catalog, config_root=str(tmp_path), llm=_llm, today=TODAY)


@pytest.fixture
def client(catalog: CatalogService, datasets: DatasetService) -> Iterator[TestClient]:
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_datasets] = lambda: datasets
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
