r"""backend/app/api/v1/reference.py

Reference data routes: users, stores, products, justification reasons and
the email sign-in used by the dashboard."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.schemas import LoginRequest, ProductSKU, Store, User
from ...services.catalog_service import CatalogService
from .deps import error_payload, get_catalog

LOGGER = logging.getLogger(__name__)
router = APIRouter()


@router.get("/users", response_model=List[User])
def list_users(catalog: CatalogService = Depends(get_catalog)) -> List[User]:
    return catalog.users


@router.get("/stores", response_model=List[Store])
def list_stores(
    region: Optional[str] = Query(None, min_length=1),
    catalog: CatalogService = Depends(get_catalog),
) -> List[Store]:
    """Return all stores, or only those in ``region``."""

    if region is None:
        return catalog.stores
    return catalog.stores_in_region(region)


@router.get("/products", response_model=List[ProductSKU])
def list_products(catalog: CatalogService = Depends(get_catalog)) -> List[ProductSKU]:
    return catalog.products


@router.get("/justification-reasons", response_model=List[str])
def list_justification_reasons(catalog: CatalogService = Depends(get_catalog)) -> List[str]:
    return catalog.justification_reasons


@router.post("/auth/login", response_model=User)
def login(body: LoginRequest, catalog: CatalogService = Depends(get_catalog)) -> User:
    """Look up a user by email.

    There is no credential check; the email alone selects the account.
    """

    user = catalog.find_user_by_email(body.email)
    if user is None:
        LOGGER.info("Sign-in rejected for unknown email")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_payload("invalid_credentials", "Invalid credentials. Please try again."),
        )
    return user
