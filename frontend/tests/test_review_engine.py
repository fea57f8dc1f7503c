r"""frontend/tests/test_review_engine.py"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

FRONTEND = Path(__file__).resolve().parents[1]
if str(FRONTEND) not in sys.path:
    sys.path.insert(0, str(FRONTEND))

from utils.review import (  # noqa: E402
    ALL,
    OrderRecommendation,
    RecommendationStatus,
    ReviewEngine,
    parse_quantity,
    transition,
)

PENDING = RecommendationStatus.PENDING_FOR_REVIEW
ADJUSTED = RecommendationStatus.ADJUSTED
APPROVED = RecommendationStatus.APPROVED
ADJUSTED_AND_APPROVED = RecommendationStatus.ADJUSTED_AND_APPROVED

PRODUCTS: List[Dict[str, Any]] = [
    {"sku": "PROD-001", "name": "Organic Bananas", "category": "Produce", "unitOfMeasure": "lb"},
    {"sku": "PROD-002", "name": "Avocados (Hass)", "category": "Produce", "unitOfMeasure": "each"},
    {"sku": "DAIRY-001", "name": "Organic Milk (Gallon)", "category": "Dairy", "unitOfMeasure": "gallon"},
    {"sku": "BAKE-001", "name": "Artisan Sourdough", "category": "Bakery", "unitOfMeasure": "loaf"},
]


def _record(sku: str, recommended: int, name: str = "") -> Dict[str, Any]:
    return {
        "sku": sku,
        "productName": name or sku,
        "currentInventory": 10,
        "forecastedQty": recommended + 5,
        "recommendedQty": recommended,
        "targetDeliveryDate": "2024-08-01",
    }


@pytest.fixture
def engine() -> ReviewEngine:
    return ReviewEngine.from_records(
        [
            _record("PROD-001", 20, "Organic Bananas"),
            _record("PROD-002", 12, "Avocados (Hass)"),
            _record("DAIRY-001", 10, "Organic Milk (Gallon)"),
            _record("BAKE-001", 8, "Artisan Sourdough"),
        ],
        PRODUCTS,
    )


def _status(engine: ReviewEngine, sku: str) -> RecommendationStatus:
    rec = engine.get(sku)
    assert rec is not None
    return rec.status


# ---------------------------------------------------------------------------
# Initial state and transition table


def test_fresh_batch_starts_pending_with_recommended_qty(engine: ReviewEngine) -> None:
    for rec in engine.recommendations:
        assert rec.adjusted_qty == rec.recommended_qty
        assert rec.justification == ""
        assert rec.status is PENDING
    assert [rec.sku for rec in engine.recommendations] == ["PROD-001", "PROD-002", "DAIRY-001", "BAKE-001"]


@pytest.mark.parametrize(
    "current, is_adjusted, expected",
    [
        (PENDING, False, PENDING),
        (PENDING, True, ADJUSTED),
        (APPROVED, False, APPROVED),
        (APPROVED, True, ADJUSTED_AND_APPROVED),
        (ADJUSTED, False, PENDING),
        (ADJUSTED, True, ADJUSTED),
        (ADJUSTED_AND_APPROVED, False, APPROVED),
        (ADJUSTED_AND_APPROVED, True, ADJUSTED_AND_APPROVED),
    ],
)
def test_transition_table(
    current: RecommendationStatus, is_adjusted: bool, expected: RecommendationStatus
) -> None:
    assert transition(current, is_adjusted) is expected


def test_adjust_then_revert_returns_to_pending(engine: ReviewEngine) -> None:
    for qty in (0, 19, 21, 500):
        engine.set_adjusted_qty("PROD-001", qty)
        assert _status(engine, "PROD-001") is ADJUSTED
        engine.set_adjusted_qty("PROD-001", 20)
        assert _status(engine, "PROD-001") is PENDING


def test_approval_is_sticky_across_edits(engine: ReviewEngine) -> None:
    engine.approve("PROD-001")
    for qty in (5, 20, 0, 20, 33):
        engine.set_adjusted_qty("PROD-001", qty)
        assert _status(engine, "PROD-001") in {APPROVED, ADJUSTED_AND_APPROVED}
    assert _status(engine, "PROD-001") is ADJUSTED_AND_APPROVED
    engine.set_adjusted_qty("PROD-001", 20)
    assert _status(engine, "PROD-001") is APPROVED


def test_approve_is_idempotent(engine: ReviewEngine) -> None:
    engine.set_adjusted_qty("DAIRY-001", 4)
    engine.approve("DAIRY-001")
    once = engine.get("DAIRY-001")
    engine.approve("DAIRY-001")
    assert engine.get("DAIRY-001") == once
    assert once is not None and once.status is ADJUSTED_AND_APPROVED


def test_justification_does_not_change_status(engine: ReviewEngine) -> None:
    engine.set_justification("BAKE-001", "Supplier Delay")
    rec = engine.get("BAKE-001")
    assert rec is not None
    assert rec.justification == "Supplier Delay"
    assert rec.status is PENDING

    engine.set_adjusted_qty("BAKE-001", 2)
    rec = engine.get("BAKE-001")
    assert rec is not None and rec.justification == "Supplier Delay"


def test_unknown_sku_is_a_no_op(engine: ReviewEngine) -> None:
    before = engine.recommendations
    engine.set_adjusted_qty("MISSING", 3)
    engine.set_justification("MISSING", "Stock Adjustment")
    engine.approve("MISSING")
    engine.toggle_select("MISSING")
    assert engine.recommendations == before
    assert engine.selected == frozenset()


def test_edits_replace_records_rather_than_mutating(engine: ReviewEngine) -> None:
    original = engine.get("PROD-002")
    engine.set_adjusted_qty("PROD-002", 30)
    assert original is not None and original.adjusted_qty == 12
    assert engine.get("PROD-002") is not original


# ---------------------------------------------------------------------------
# Filtering and selection


def test_filtered_view_by_category_and_status(engine: ReviewEngine) -> None:
    engine.set_adjusted_qty("PROD-002", 1)
    engine.approve("DAIRY-001")

    produce = engine.filtered_view(ALL, "Produce")
    assert [rec.sku for rec in produce] == ["PROD-001", "PROD-002"]

    adjusted_produce = engine.filtered_view("Adjusted", "Produce")
    assert [rec.sku for rec in adjusted_produce] == ["PROD-002"]

    approved = engine.filtered_view(APPROVED, ALL)
    assert [rec.sku for rec in approved] == ["DAIRY-001"]

    assert engine.filtered_view("Adjusted and Approved", "Dairy") == []


def test_sku_missing_from_catalog_only_matches_all_categories() -> None:
    engine = ReviewEngine.from_records([_record("NEW-1", 3)], PRODUCTS)
    assert [rec.sku for rec in engine.filtered_view()] == ["NEW-1"]
    assert engine.filtered_view(ALL, "Produce") == []


def test_categories_list_all_first_in_catalog_order(engine: ReviewEngine) -> None:
    assert engine.categories == ["All", "Produce", "Dairy", "Bakery"]


def test_toggle_select_is_symmetric(engine: ReviewEngine) -> None:
    engine.toggle_select("PROD-001")
    engine.toggle_select("BAKE-001")
    assert engine.selected == {"PROD-001", "BAKE-001"}
    engine.toggle_select("PROD-001")
    assert engine.selected == {"BAKE-001"}
    assert engine.selected_count == 1


def test_select_all_replaces_selection_with_filtered_view(engine: ReviewEngine) -> None:
    engine.toggle_select("PROD-001")
    engine.toggle_select("BAKE-001")

    engine.set_filters(category_filter="Dairy")
    engine.select_all(True)

    assert engine.selected == {"DAIRY-001"}
    assert engine.is_all_selected

    engine.select_all(False)
    assert engine.selected == frozenset()
    assert not engine.is_all_selected


def test_filter_change_drops_hidden_selections(engine: ReviewEngine) -> None:
    engine.select_all(True)
    assert engine.selected_count == 4

    engine.set_filters(category_filter="Produce")
    assert engine.selected == {"PROD-001", "PROD-002"}

    engine.set_filters(status_filter=APPROVED)
    assert engine.selected == frozenset()


def test_selection_stays_within_view_after_status_change(engine: ReviewEngine) -> None:
    engine.set_filters(status_filter="Pending for Review")
    engine.select_all(True)
    engine.set_adjusted_qty("PROD-001", 99)

    visible = {rec.sku for rec in engine.filtered_view()}
    assert "PROD-001" not in visible
    assert engine.selected <= visible


def test_toggle_select_ignores_rows_hidden_by_filters(engine: ReviewEngine) -> None:
    engine.set_filters(category_filter="Bakery")
    engine.toggle_select("PROD-001")
    assert engine.selected == frozenset()


def test_is_all_selected_false_for_empty_view() -> None:
    engine = ReviewEngine.from_records([], PRODUCTS)
    engine.select_all(True)
    assert engine.selected == frozenset()
    assert engine.is_all_selected is False


def test_is_all_selected_requires_full_view(engine: ReviewEngine) -> None:
    engine.toggle_select("PROD-001")
    assert not engine.is_all_selected
    for sku in ("PROD-002", "DAIRY-001", "BAKE-001"):
        engine.toggle_select(sku)
    assert engine.is_all_selected


# ---------------------------------------------------------------------------
# Bulk approve


def test_approve_selected_clears_selection(engine: ReviewEngine) -> None:
    assert engine.approve_selected() == []
    assert engine.selected == frozenset()

    engine.select_all(True)
    approved = engine.approve_selected()
    assert approved == ["PROD-001", "PROD-002", "DAIRY-001", "BAKE-001"]
    assert engine.selected == frozenset()
    assert all(rec.status is APPROVED for rec in engine.recommendations)


def test_scenario_adjust_approve_and_bulk_approve() -> None:
    engine = ReviewEngine.from_records([_record("A", 20), _record("B", 10)])

    engine.set_adjusted_qty("A", 25)
    assert _status(engine, "A") is ADJUSTED

    engine.approve("A")
    assert _status(engine, "A") is ADJUSTED_AND_APPROVED
    a_before = engine.get("A")

    engine.toggle_select("B")
    engine.approve_selected()

    assert _status(engine, "B") is APPROVED
    assert engine.selected == frozenset()
    assert engine.get("A") == a_before


def test_scenario_select_all_under_dairy_filter(engine: ReviewEngine) -> None:
    engine.toggle_select("PROD-001")
    engine.toggle_select("BAKE-001")

    engine.set_filters(category_filter="Dairy")
    assert [rec.sku for rec in engine.filtered_view()] == ["DAIRY-001"]
    engine.select_all(True)

    assert engine.selected == {"DAIRY-001"}


def test_approve_selected_only_touches_selected_rows(engine: ReviewEngine) -> None:
    engine.set_adjusted_qty("PROD-002", 3)
    engine.toggle_select("PROD-002")
    engine.toggle_select("BAKE-001")
    engine.approve_selected()

    assert _status(engine, "PROD-002") is ADJUSTED_AND_APPROVED
    assert _status(engine, "BAKE-001") is APPROVED
    assert _status(engine, "PROD-001") is PENDING
    assert _status(engine, "DAIRY-001") is PENDING


def test_status_counts_and_summary(engine: ReviewEngine) -> None:
    engine.set_adjusted_qty("PROD-001", 1)
    engine.approve("DAIRY-001")
    counts = engine.status_counts()
    assert counts == {
        "Pending for Review": 2,
        "Adjusted": 1,
        "Approved": 1,
        "Adjusted and Approved": 0,
    }
    assert engine.summary() == (1, 4)


# ---------------------------------------------------------------------------
# Records and quantity input


def test_from_records_accepts_snake_case_and_skips_duplicates() -> None:
    engine = ReviewEngine.from_records(
        [
            {"sku": "X", "product_name": "Thing", "recommended_qty": "7", "target_delivery_date": "2024-08-02"},
            {"sku": "X", "productName": "Duplicate", "recommendedQty": 1},
            {"productName": "No SKU"},
        ]
    )
    assert len(engine.recommendations) == 1
    rec = engine.get("X")
    assert rec is not None
    assert rec.product_name == "Thing"
    assert rec.recommended_qty == rec.adjusted_qty == 7


def test_from_records_skips_malformed_entries() -> None:
    engine = ReviewEngine.from_records(
        [
            {"sku": "A", "recommendedQty": 1},
            "garbage",
            None,
            {"sku": None, "recommendedQty": 2},
            {"sku": "  ", "recommendedQty": 3},
        ],
        [{"sku": "A", "category": "Produce"}, "not-a-product"],
    )
    assert [rec.sku for rec in engine.recommendations] == ["A"]
    assert engine.get("None") is None
    assert engine.category_of("A") == "Produce"


def test_as_row_uses_display_labels() -> None:
    rec = OrderRecommendation(
        sku="S",
        product_name="Item",
        current_inventory=1,
        forecasted_qty=2,
        recommended_qty=3,
        target_delivery_date="2024-08-01",
        adjusted_qty=4,
    )
    row = rec.as_row()
    assert row["status"] == "Adjusted"
    assert row["adjustedQty"] == 4


@pytest.mark.parametrize(
    "raw, expected",
    [
        (12, 12),
        ("25", 25),
        (" 7 ", 7),
        ("3.9", 3),
        (4.0, 4),
        ("", 0),
        ("abc", 0),
        ("12abc", 12),
        ("1e3", 1),
        ("-4", -4),
        (None, 0),
        (float("nan"), 0),
        (float("inf"), 0),
    ],
)
def test_parse_quantity(raw: Any, expected: int) -> None:
    assert parse_quantity(raw) == expected


def test_non_numeric_quantity_counts_as_zero(engine: ReviewEngine) -> None:
    engine.set_adjusted_qty("PROD-001", "twenty")
    rec = engine.get("PROD-001")
    assert rec is not None
    assert rec.adjusted_qty == 0
    assert rec.status is ADJUSTED
