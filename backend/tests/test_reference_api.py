from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_reports_catalog(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "catalog": "loaded"}


def test_users_use_camel_case_fields(client: TestClient) -> None:
    response = client.get("/api/v1/users")
    assert response.status_code == 200
    users = response.json()
    assert [u["email"] for u in users][0] == "storemgr@greengrocer.com"
    assert users[0]["storeId"] == 101
    assert users[0]["role"] == "Store Manager"
    assert users[2]["region"] is None


def test_stores_can_be_filtered_by_region(client: TestClient) -> None:
    all_stores = client.get("/api/v1/stores").json()
    assert len(all_stores) == 3

    north = client.get("/api/v1/stores", params={"region": "North"}).json()
    assert {s["name"] for s in north} == {"GreenGrocer Downtown", "GreenGrocer Suburbia"}


def test_products_and_reasons(client: TestClient) -> None:
    products = client.get("/api/v1/products").json()
    assert products[1] == {
        "sku": "DAIRY-001",
        "name": "Organic Milk (Gallon)",
        "category": "Dairy",
        "unitOfMeasure": "gallon",
    }

    reasons = client.get("/api/v1/justification-reasons").json()
    assert reasons == ["Supplier Delay", "Seasonal Demand Spike"]


def test_login_matches_email_case_insensitively(client: TestClient) -> None:
    response = client.post("/api/v1/auth/login", json={"email": " Analyst@GreenGrocer.com "})
    assert response.status_code == 200
    assert response.json()["role"] == "Corporate Analyst"


def test_login_rejects_unknown_email(client: TestClient) -> None:
    response = client.post("/api/v1/auth/login", json={"email": "nobody@example.com"})
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "invalid_credentials"


def test_catalog_file_in_repo_loads() -> None:
    from pathlib import Path

    from backend.app.services.catalog_service import CatalogService

    config_root = Path(__file__).resolve().parents[2] / "configs"
    service = CatalogService(config_root=str(config_root))

    assert len(service.users) == 3
    assert service.find_store("GreenGrocer Downtown").region == "North"
    assert service.categories == ["Produce", "Dairy", "Bakery"]
    assert "Marketing Promotion" in service.justification_reasons
