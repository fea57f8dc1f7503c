r"""frontend/utils/review.py

Review engine for a store's batch of order recommendations.

The engine owns the working state behind the Order Recommendations tab: the
batch itself (keyed by SKU, in display order), the active status/category
filters and the multi-select set.  A recommendation carries two independent
bits, *adjusted* (the manager's quantity differs from the suggested one) and
*approved*; the four-value status label is derived from them on read.

All state changes are replace-on-write so the batch mapping is the single
source of truth for every derived view.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

ALL = "All"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class RecommendationStatus(str, Enum):
    PENDING_FOR_REVIEW = "Pending for Review"
    ADJUSTED = "Adjusted"
    APPROVED = "Approved"
    ADJUSTED_AND_APPROVED = "Adjusted and Approved"

    @classmethod
    def from_bits(cls, adjusted: bool, approved: bool) -> "RecommendationStatus":
        if approved:
            return cls.ADJUSTED_AND_APPROVED if adjusted else cls.APPROVED
        return cls.ADJUSTED if adjusted else cls.PENDING_FOR_REVIEW

    @property
    def is_approved(self) -> bool:
        return self in (RecommendationStatus.APPROVED, RecommendationStatus.ADJUSTED_AND_APPROVED)


STATUS_FILTER_OPTIONS: List[str] = [ALL] + [status.value for status in RecommendationStatus]


def transition(status: RecommendationStatus, is_adjusted: bool) -> RecommendationStatus:
    """Return the status reached after a quantity edit.

    Only the adjusted bit follows the edit; the approved bit is carried over.
    """

    return RecommendationStatus.from_bits(is_adjusted, status.is_approved)


def parse_quantity(raw: Any) -> int:
    """Coerce quantity input to an integer.

    Text keeps its leading integer (``"12abc"`` is 12, ``"1e3"`` is 1) and
    becomes ``0`` when it has none. Floats are truncated.
    """

    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else 0
    match = _LEADING_INT.match("" if raw is None else str(raw))
    if match is None:
        LOGGER.debug("Non-numeric quantity %r coerced to 0", raw)
        return 0
    return int(match.group(1))


@dataclass(frozen=True)
class OrderRecommendation:
    """One SKU's suggested reorder quantity plus the manager's overrides."""

    sku: str
    product_name: str
    current_inventory: int
    forecasted_qty: int
    recommended_qty: int
    target_delivery_date: str
    adjusted_qty: Optional[int] = None
    justification: str = ""
    approved: bool = False

    def __post_init__(self) -> None:
        if self.adjusted_qty is None:
            object.__setattr__(self, "adjusted_qty", self.recommended_qty)

    @property
    def adjusted(self) -> bool:
        return self.adjusted_qty != self.recommended_qty

    @property
    def status(self) -> RecommendationStatus:
        return RecommendationStatus.from_bits(self.adjusted, self.approved)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "OrderRecommendation":
        """Build a fresh recommendation from a data-source record.

        Accepts both the camelCase wire names and snake_case keys.
        """

        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in record:
                return record[camel]
            return record.get(snake, default)

        sku = record["sku"]
        if sku is None or str(sku).strip() == "":
            raise KeyError("sku")
        recommended = parse_quantity(pick("recommendedQty", "recommended_qty", 0))
        return cls(
            sku=str(sku),
            product_name=str(pick("productName", "product_name", sku)),
            current_inventory=parse_quantity(pick("currentInventory", "current_inventory", 0)),
            forecasted_qty=parse_quantity(pick("forecastedQty", "forecasted_qty", 0)),
            recommended_qty=recommended,
            target_delivery_date=str(pick("targetDeliveryDate", "target_delivery_date", "")),
            adjusted_qty=recommended,
        )

    def as_row(self) -> Dict[str, Any]:
        """Return a flat dictionary suitable for a table row."""

        return {
            "sku": self.sku,
            "productName": self.product_name,
            "currentInventory": self.current_inventory,
            "forecastedQty": self.forecasted_qty,
            "recommendedQty": self.recommended_qty,
            "adjustedQty": self.adjusted_qty,
            "justification": self.justification,
            "status": self.status.value,
            "targetDeliveryDate": self.target_delivery_date,
        }


class ReviewEngine:
    """Working state of one store's recommendation review session.

    Parameters
    ----------
    recommendations:
        The batch, in display order. Later duplicates of a SKU are dropped.
    products:
        Product catalog records (``sku`` and ``category`` keys) used for
        category filtering.
    """

    def __init__(
        self,
        recommendations: Iterable[OrderRecommendation] = (),
        products: Iterable[Mapping[str, Any]] = (),
    ) -> None:
        batch: Dict[str, OrderRecommendation] = {}
        for rec in recommendations:
            if rec.sku in batch:
                LOGGER.warning("Duplicate SKU %s in recommendation batch ignored", rec.sku)
                continue
            batch[rec.sku] = rec
        self._recommendations = batch

        self._categories_by_sku: Dict[str, str] = {}
        self._categories: List[str] = []
        for product in products:
            if not isinstance(product, Mapping):
                continue
            sku = str(product.get("sku", ""))
            category = str(product.get("category", ""))
            if not sku:
                continue
            self._categories_by_sku[sku] = category
            if category and category not in self._categories:
                self._categories.append(category)

        self._selected: frozenset[str] = frozenset()
        self._status_filter: str = ALL
        self._category_filter: str = ALL

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        products: Iterable[Mapping[str, Any]] = (),
    ) -> "ReviewEngine":
        recs = []
        for record in records:
            if not isinstance(record, Mapping):
                LOGGER.warning("Skipping malformed recommendation record: %r", record)
                continue
            try:
                recs.append(OrderRecommendation.from_record(record))
            except (KeyError, TypeError, AttributeError):
                LOGGER.warning("Skipping recommendation record without a SKU: %r", record)
        return cls(recs, products)

    # ------------------------------------------------------------------
    # Read accessors

    @property
    def recommendations(self) -> List[OrderRecommendation]:
        return list(self._recommendations.values())

    def get(self, sku: str) -> Optional[OrderRecommendation]:
        return self._recommendations.get(sku)

    @property
    def selected(self) -> frozenset[str]:
        return self._selected

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def status_filter(self) -> str:
        return self._status_filter

    @property
    def category_filter(self) -> str:
        return self._category_filter

    @property
    def categories(self) -> List[str]:
        """Category filter options, ``All`` first."""

        return [ALL, *self._categories]

    def category_of(self, sku: str) -> Optional[str]:
        return self._categories_by_sku.get(sku)

    def filtered_view(
        self,
        status_filter: Optional[str] = None,
        category_filter: Optional[str] = None,
    ) -> List[OrderRecommendation]:
        """Return the recommendations matching both filters, in display order.

        Filters default to the engine's active filters.
        """

        status_value = _status_value(self._status_filter if status_filter is None else status_filter)
        category = self._category_filter if category_filter is None else category_filter

        view = []
        for rec in self._recommendations.values():
            if status_value != ALL and rec.status.value != status_value:
                continue
            if category != ALL and self._categories_by_sku.get(rec.sku) != category:
                continue
            view.append(rec)
        return view

    def _visible_skus(self) -> frozenset[str]:
        return frozenset(rec.sku for rec in self.filtered_view())

    @property
    def is_all_selected(self) -> bool:
        view = self.filtered_view()
        return bool(self._selected) and len(view) > 0 and len(self._selected) == len(view)

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in RecommendationStatus}
        for rec in self._recommendations.values():
            counts[rec.status.value] += 1
        return counts

    # ------------------------------------------------------------------
    # Mutations

    def _replace(self, sku: str, **changes: Any) -> bool:
        current = self._recommendations.get(sku)
        if current is None:
            return False
        updated = replace(current, **changes)
        if updated != current:
            batch = dict(self._recommendations)
            batch[sku] = updated
            self._recommendations = batch
        return True

    def set_adjusted_qty(self, sku: str, new_qty: Any) -> None:
        """Set the manager's quantity; only the adjusted bit follows it."""

        if not self._replace(sku, adjusted_qty=parse_quantity(new_qty)):
            LOGGER.debug("set_adjusted_qty ignored for unknown sku=%s", sku)
            return
        # Status filters may hide the row after its status changes.
        self._normalize_selection()

    def set_justification(self, sku: str, text: str) -> None:
        if not self._replace(sku, justification=text or ""):
            LOGGER.debug("set_justification ignored for unknown sku=%s", sku)

    def approve(self, sku: str) -> None:
        if not self._replace(sku, approved=True):
            LOGGER.debug("approve ignored for unknown sku=%s", sku)
            return
        self._normalize_selection()

    def approve_selected(self) -> List[str]:
        """Approve every selected SKU visible under the active filters.

        The selection is cleared afterwards. Returns the SKUs approved, in
        display order.
        """

        targets = [rec.sku for rec in self.filtered_view() if rec.sku in self._selected]
        if targets:
            batch = dict(self._recommendations)
            for sku in targets:
                batch[sku] = replace(batch[sku], approved=True)
            self._recommendations = batch
        self._selected = frozenset()
        LOGGER.info("Bulk approved %d recommendation(s)", len(targets))
        return targets

    def toggle_select(self, sku: str) -> None:
        if sku in self._selected:
            self._selected = self._selected - {sku}
        elif sku in self._visible_skus():
            self._selected = self._selected | {sku}

    def select_all(self, checked: bool) -> None:
        self._selected = self._visible_skus() if checked else frozenset()

    def set_filters(
        self,
        status_filter: Optional[str] = None,
        category_filter: Optional[str] = None,
    ) -> None:
        """Change the active filters and restrict the selection to the new view."""

        if status_filter is not None:
            self._status_filter = _status_value(status_filter)
        if category_filter is not None:
            self._category_filter = category_filter
        self._normalize_selection()

    def _normalize_selection(self) -> None:
        self._selected = self._selected & self._visible_skus()

    def rows(self) -> List[Dict[str, Any]]:
        return [rec.as_row() for rec in self.filtered_view()]

    def summary(self) -> Tuple[int, int]:
        """Return ``(approved, total)`` across the whole batch."""

        approved = sum(1 for rec in self._recommendations.values() if rec.approved)
        return approved, len(self._recommendations)


def _status_value(value: Any) -> str:
    if isinstance(value, RecommendationStatus):
        return value.value
    return str(value)
