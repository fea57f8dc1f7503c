"""Datasets served to the dashboard.

Each dataset is requested from Gemini first (see ``llm_service``); replies
are validated against the API schemas.  When the LLM is disabled, fails, or
returns records that do not validate, a deterministic generator seeded by
the store or region name produces the data instead, so the same store always
shows the same numbers within a day.
"""

from __future__ import annotations

import logging
import math
import os
import zlib
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, List, Optional, TypeVar

import numpy as np
import pandas as pd
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..core.config import load_yaml
from ..models.schemas import (
    CategoryPerformance,
    CorporateDashboard,
    Kpi,
    Notification,
    OrderHistoryRecord,
    RecommendationRecord,
    RegionalStorePerformance,
    SpoilageRecord,
    Store,
)
from . import llm_service
from .catalog_service import CatalogService

LOGGER = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SPOILAGE_REASONS = ("Expired", "Damaged", "Overstock", "Theft")
_SPOILAGE_WEIGHTS = (0.5, 0.25, 0.2, 0.05)

_NOTIFICATION_TEMPLATES = (
    ("Alert", "Low stock: {product}", "{product} is projected to run out before the next delivery."),
    ("Alert", "Spoilage spike: {product}", "Spoilage for {product} is above the weekly average."),
    ("Info", "Delivery scheduled", "The next delivery to {store} is scheduled for {day}."),
    ("Info", "New recommendations ready", "Order recommendations for {store} have been refreshed."),
    ("Reminder", "Review pending orders", "Approve pending order recommendations before the cutoff."),
    ("Reminder", "Weekly inventory count", "Submit the weekly manual count for {product}."),
)


def _seed(*parts: str) -> int:
    return zlib.crc32("|".join(parts).encode("utf-8"))


class DatasetService:
    """Produce store, regional and corporate datasets.

    Parameters
    ----------
    catalog:
        Reference data (stores and products) the datasets are built from.
    config_root:
        Directory containing ``settings.yaml`` with generator parameters.
    llm:
        Callable returning decoded JSON for a prompt, or ``None``.
    today:
        Optional fixed date; defaults to the current UTC date on each call.
    """

    def __init__(
        self,
        catalog: CatalogService,
        config_root: str = "configs",
        llm: Optional[Callable[[str], Optional[Any]]] = None,
        today: Optional[date] = None,
    ) -> None:
        settings = load_yaml(os.path.join(config_root, "settings.yaml"))

        self.catalog = catalog
        self.safety_stock_days = float(settings.get("safety_stock_days", 2))
        self.delivery_lead_days = int(settings.get("delivery_lead_days", 2))
        self.history_days = int(settings.get("history_days", 90))
        self.history_orders_per_sku = int(settings.get("history_orders_per_sku", 3))
        self.spoilage_records = int(settings.get("spoilage_records", 12))
        self.notifications_per_store = int(settings.get("notifications_per_store", 5))
        self._llm = llm if llm is not None else llm_service.generate_json
        self._today = today

    @property
    def today(self) -> date:
        return self._today or datetime.now(timezone.utc).date()

    def _rng(self, *parts: str) -> np.random.Generator:
        return np.random.default_rng(_seed(*parts, self.today.isoformat()))

    # ------------------------------------------------------------------
    def _from_llm(self, prompt: str, model: type[M]) -> Optional[List[M]]:
        payload = self._llm(prompt)
        if payload is None:
            return None
        try:
            records = TypeAdapter(List[model]).validate_python(payload)
        except ValidationError as exc:
            LOGGER.warning("Discarding LLM %s payload: %s", model.__name__, exc.errors()[:3])
            return None
        return records or None

    def _product_lines(self) -> str:
        return "\n".join(
            f"- {p.sku}: {p.name} ({p.category}, per {p.unit_of_measure})" for p in self.catalog.products
        )

    # ------------------------------------------------------------------
    def order_recommendations(self, store: Store) -> List[RecommendationRecord]:
        """Return one reorder suggestion per catalog product for ``store``."""

        prompt = (
            "You are the replenishment planner for a grocery chain. "
            f"For the store '{store.name}' in the {store.region} region, produce a JSON array with one "
            "object per product below. Keys: sku, productName, currentInventory, forecastedQty, "
            f"recommendedQty, targetDeliveryDate (YYYY-MM-DD, about {self.delivery_lead_days} days after "
            f"{self.today.isoformat()}). Quantities are non-negative integers.\n"
            f"Products:\n{self._product_lines()}"
        )
        records = self._from_llm(prompt, RecommendationRecord)
        if records is not None:
            known = {p.sku for p in self.catalog.products}
            records = [rec for rec in records if rec.sku in known]
            if records:
                return records
        return self._generate_recommendations(store)

    def _generate_recommendations(self, store: Store) -> List[RecommendationRecord]:
        rng = self._rng("recommendations", store.name)
        delivery = self.today + timedelta(days=self.delivery_lead_days)
        records = []
        for product in self.catalog.products:
            current = int(rng.integers(5, 80))
            forecast = int(rng.integers(10, 70))
            safety = math.ceil(forecast / 7.0 * self.safety_stock_days)
            records.append(
                RecommendationRecord(
                    sku=product.sku,
                    product_name=product.name,
                    current_inventory=current,
                    forecasted_qty=forecast,
                    recommended_qty=max(forecast - current + safety, 0),
                    target_delivery_date=delivery,
                )
            )
        return records

    # ------------------------------------------------------------------
    def order_history(self, store: Store) -> List[OrderHistoryRecord]:
        prompt = (
            f"Produce a JSON array of past purchase orders for the grocery store '{store.name}' over the "
            f"{self.history_days} days before {self.today.isoformat()}. Keys: sku, productName, orderDate "
            "(YYYY-MM-DD), quantityOrdered, currentInventory, shelfLifeDays.\n"
            f"Products:\n{self._product_lines()}"
        )
        records = self._from_llm(prompt, OrderHistoryRecord)
        if records is None:
            records = self._generate_history(store)
        return sorted(records, key=lambda rec: rec.order_date, reverse=True)

    def _generate_history(self, store: Store) -> List[OrderHistoryRecord]:
        rng = self._rng("history", store.name)
        records = []
        for product in self.catalog.products:
            shelf_life = int(rng.integers(3, 21))
            for _ in range(self.history_orders_per_sku):
                records.append(
                    OrderHistoryRecord(
                        sku=product.sku,
                        product_name=product.name,
                        order_date=self.today - timedelta(days=int(rng.integers(1, self.history_days + 1))),
                        quantity_ordered=int(rng.integers(10, 60)),
                        current_inventory=int(rng.integers(0, 80)),
                        shelf_life_days=shelf_life,
                    )
                )
        return records

    # ------------------------------------------------------------------
    def spoilage(self, store: Store) -> List[SpoilageRecord]:
        prompt = (
            f"Produce a JSON array of spoilage log entries for the grocery store '{store.name}' over the "
            f"30 days before {self.today.isoformat()}. Keys: sku, productName, quantity, reason (one of "
            f"{', '.join(SPOILAGE_REASONS)}), recordedDate (YYYY-MM-DD).\n"
            f"Products:\n{self._product_lines()}"
        )
        records = self._from_llm(prompt, SpoilageRecord)
        if records is None:
            records = self._generate_spoilage(store.name, self.spoilage_records)
        return sorted(records, key=lambda rec: rec.recorded_date, reverse=True)

    def _generate_spoilage(self, store_name: str, count: int) -> List[SpoilageRecord]:
        products = self.catalog.products
        if not products:
            return []
        rng = self._rng("spoilage", store_name)
        records = []
        for _ in range(count):
            product = products[int(rng.integers(0, len(products)))]
            records.append(
                SpoilageRecord(
                    sku=product.sku,
                    product_name=product.name,
                    quantity=int(rng.integers(1, 15)),
                    reason=str(rng.choice(SPOILAGE_REASONS, p=_SPOILAGE_WEIGHTS)),
                    recorded_date=self.today - timedelta(days=int(rng.integers(0, 30))),
                )
            )
        return records

    # ------------------------------------------------------------------
    def notifications(self, store: Store) -> List[Notification]:
        prompt = (
            f"Produce a JSON array of {self.notifications_per_store} dashboard notifications for the "
            f"manager of the grocery store '{store.name}'. Keys: id, type (Alert, Info or Reminder), "
            "title, message, date (ISO 8601 timestamp within the last week), read (boolean)."
        )
        records = self._from_llm(prompt, Notification)
        if records is None:
            records = self._generate_notifications(store)
        return sorted(records, key=lambda rec: rec.date, reverse=True)

    def _generate_notifications(self, store: Store) -> List[Notification]:
        rng = self._rng("notifications", store.name)
        products = self.catalog.products
        midnight = datetime.combine(self.today, time(0, 0), tzinfo=timezone.utc)
        delivery_day = (self.today + timedelta(days=self.delivery_lead_days)).isoformat()
        records = []
        for index in range(self.notifications_per_store):
            kind, title, message = _NOTIFICATION_TEMPLATES[int(rng.integers(0, len(_NOTIFICATION_TEMPLATES)))]
            product = products[int(rng.integers(0, len(products)))].name if products else "stock"
            fields = {"product": product, "store": store.name, "day": delivery_day}
            records.append(
                Notification(
                    id=f"{store.id}-{index + 1}",
                    type=kind,
                    title=title.format(**fields),
                    message=message.format(**fields),
                    date=midnight - timedelta(minutes=int(rng.integers(0, 7 * 24 * 60))),
                    read=bool(rng.random() < 0.3),
                )
            )
        return records

    # ------------------------------------------------------------------
    def regional_performance(self, region: str) -> List[RegionalStorePerformance]:
        stores = self.catalog.stores_in_region(region)
        names = ", ".join(store.name for store in stores)
        prompt = (
            f"Produce a JSON array comparing grocery stores in the {region} region: {names}. One object per "
            "store with keys storeName, totalSpoilage (integer units this month), orderAccuracy (percentage "
            "0-100), inventoryTurnover (turns per month)."
        )
        records = self._from_llm(prompt, RegionalStorePerformance)
        if records is not None:
            wanted = {store.name for store in stores}
            records = [rec for rec in records if rec.store_name in wanted]
            if records:
                return records
        return [self._generate_store_performance(store) for store in stores]

    def _generate_store_performance(self, store: Store) -> RegionalStorePerformance:
        rng = self._rng("performance", store.name)
        return RegionalStorePerformance(
            store_name=store.name,
            total_spoilage=int(rng.integers(40, 400)),
            order_accuracy=round(float(rng.uniform(78.0, 99.0)), 1),
            inventory_turnover=round(float(rng.uniform(6.0, 16.0)), 1),
        )

    # ------------------------------------------------------------------
    def corporate_dashboard(self) -> CorporateDashboard:
        prompt = (
            "Produce a JSON object for a grocery chain's corporate dashboard with keys kpis and performance. "
            "kpis is an array of objects with keys name, value (formatted string), trend (up, down or "
            "neutral) and change (formatted string). performance is an array with keys category, sales "
            f"(USD) and spoilage (USD) for the categories {', '.join(self.catalog.categories)}."
        )
        payload = self._llm(prompt)
        if payload is not None:
            try:
                dashboard = CorporateDashboard.model_validate(payload)
            except ValidationError as exc:
                LOGGER.warning("Discarding LLM corporate dashboard payload: %s", exc.errors()[:3])
            else:
                if dashboard.kpis or dashboard.performance:
                    return dashboard
        return self._generate_corporate_dashboard()

    def _generate_corporate_dashboard(self) -> CorporateDashboard:
        categories = self.catalog.categories
        stores = self.catalog.stores
        if not categories or not stores:
            return CorporateDashboard()

        rng = self._rng("corporate")
        unit_price = {p.sku: float(rng.uniform(1.5, 7.5)) for p in self.catalog.products}
        category_of = {p.sku: p.category for p in self.catalog.products}

        spoilage_rows = [
            {"category": category_of[rec.sku], "spoilage": rec.quantity * unit_price[rec.sku]}
            for store in stores
            for rec in self._generate_spoilage(store.name, self.spoilage_records)
        ]
        frame = pd.DataFrame({"category": categories})
        frame["sales"] = [round(float(rng.uniform(40_000, 160_000)), 2) for _ in categories]
        spoilage = (
            pd.DataFrame(spoilage_rows, columns=["category", "spoilage"]).groupby("category")["spoilage"].sum()
        )
        frame["spoilage"] = frame["category"].map(spoilage).fillna(0.0).round(2)

        performance = [
            CategoryPerformance(category=row.category, sales=float(row.sales), spoilage=float(row.spoilage))
            for row in frame.itertuples(index=False)
        ]

        store_perf = pd.DataFrame(
            [self._generate_store_performance(store).model_dump() for store in stores]
        )
        total_sales = float(frame["sales"].sum())
        spoilage_rate = float(frame["spoilage"].sum()) / total_sales * 100 if total_sales else 0.0
        accuracy = float(store_perf["order_accuracy"].mean())
        turnover = float(store_perf["inventory_turnover"].mean())

        kpis = [
            self._kpi("Total Sales", f"${total_sales:,.0f}", float(rng.normal(2.0, 3.0)), "%"),
            self._kpi("Spoilage Rate", f"{spoilage_rate:.2f}%", float(rng.normal(-0.2, 0.4)), "pp"),
            self._kpi("Order Accuracy", f"{accuracy:.1f}%", float(rng.normal(0.5, 1.0)), "pp"),
            self._kpi("Inventory Turnover", f"{turnover:.1f}x", float(rng.normal(0.1, 0.4)), "x"),
        ]
        return CorporateDashboard(kpis=kpis, performance=performance)

    @staticmethod
    def _kpi(name: str, value: str, delta: float, unit: str) -> Kpi:
        rounded = round(delta, 1)
        trend = "up" if rounded > 0 else "down" if rounded < 0 else "neutral"
        return Kpi(name=name, value=value, trend=trend, change=f"{rounded:+.1f}{unit}")

