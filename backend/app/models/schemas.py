r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Field names are snake_case in Python and camelCase on
the wire so the dashboard receives the same payloads it always has.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serialising with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    STORE_MANAGER = "Store Manager"
    REGIONAL_MANAGER = "Regional Manager"
    CORPORATE_ANALYST = "Corporate Analyst"


class User(ApiModel):
    id: int
    name: str
    email: str
    role: Role
    store_id: Optional[int] = None
    region: Optional[str] = None


class Store(ApiModel):
    id: int
    name: str
    region: str


class ProductSKU(ApiModel):
    sku: str
    name: str
    category: str
    unit_of_measure: str


class RecommendationRecord(ApiModel):
    """A suggested reorder for one SKU, as produced by the data source.

    Editable review fields (adjusted quantity, justification, status) are
    added by the dashboard when a batch is opened.
    """

    sku: str
    product_name: str
    current_inventory: int = Field(..., ge=0)
    forecasted_qty: int = Field(..., ge=0)
    recommended_qty: int = Field(..., ge=0, description="Suggested order quantity")
    target_delivery_date: date


class OrderHistoryRecord(ApiModel):
    sku: str
    product_name: str
    order_date: date
    quantity_ordered: int = Field(..., ge=0)
    current_inventory: int = Field(..., ge=0)
    shelf_life_days: int = Field(..., ge=0)


class SpoilageRecord(ApiModel):
    sku: str
    product_name: str
    quantity: int = Field(..., ge=0)
    reason: Literal["Expired", "Damaged", "Overstock", "Theft"]
    recorded_date: date


class Notification(ApiModel):
    id: str
    type: Literal["Alert", "Info", "Reminder"]
    title: str
    message: str
    date: datetime
    read: bool = False


class RegionalStorePerformance(ApiModel):
    store_name: str
    total_spoilage: int = Field(..., ge=0)
    order_accuracy: float = Field(..., ge=0, le=100, description="Percentage of orders matching demand")
    inventory_turnover: float = Field(..., ge=0)


class Kpi(ApiModel):
    name: str
    value: str
    trend: Literal["up", "down", "neutral"]
    change: str


class CategoryPerformance(ApiModel):
    category: str
    sales: float = Field(..., ge=0)
    spoilage: float = Field(..., ge=0)


class CorporateDashboard(ApiModel):
    kpis: List[Kpi] = Field(default_factory=list)
    performance: List[CategoryPerformance] = Field(default_factory=list)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)


class InventoryCount(BaseModel):
    store_name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    count: int = Field(..., ge=0)
