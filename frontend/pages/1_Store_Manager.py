r"""frontend/pages/1_Store_Manager.py

Store manager workspace: review AI-suggested order quantities, browse order
history, analyse spoilage and read notifications.

The recommendation batch lives in a :class:`~utils.review.ReviewEngine`
kept in ``st.session_state``.  Widgets call engine methods from their
callbacks, and every widget's displayed state is re-synced from the engine
before it is drawn so the engine stays the single source of truth.

A sidebar selector switches between the stores of the manager's region;
switching replaces the review batch wholesale.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from utils.api import ROLE_STORE_MANAGER, get_api_token, get_data_source, require_role
from utils.data_source import FetchError, FetchResult, RefreshSequencer
from utils.review import STATUS_FILTER_OPTIONS, RecommendationStatus, ReviewEngine

STATUS_BADGES: Dict[str, str] = {
    RecommendationStatus.PENDING_FOR_REVIEW.value: "🔵",
    RecommendationStatus.ADJUSTED.value: "🟡",
    RecommendationStatus.APPROVED.value: "🟢",
    RecommendationStatus.ADJUSTED_AND_APPROVED.value: "🟢",
}
SPOILAGE_REASONS = ["Expired", "Damaged", "Overstock", "Theft"]
NOTIFICATION_ICONS = {"Alert": "⚠️", "Info": "ℹ️", "Reminder": "⏰"}

user = require_role(ROLE_STORE_MANAGER)
data_source = get_data_source()


# ---------------------------------------------------------------------------
# Cached reads
#
# Failed reads raise so Streamlit does not cache them; _read turns the error
# back into an empty result for the page.

@st.cache_data(ttl=300)
def _stores_in_region(region: str, api_token: str = "") -> List[Dict[str, Any]]:
    return data_source.fetch_stores(region).unwrap()


@st.cache_data(ttl=300)
def _product_catalog(api_token: str = "") -> List[Dict[str, Any]]:
    return data_source.fetch_product_catalog().unwrap()


@st.cache_data(ttl=300)
def _justification_reasons(api_token: str = "") -> List[str]:
    return data_source.fetch_justification_reasons().unwrap()


@st.cache_data(ttl=300)
def _order_history(store: str, api_token: str = "") -> List[Dict[str, Any]]:
    return data_source.fetch_order_history(store).unwrap()


@st.cache_data(ttl=300)
def _spoilage(store: str, api_token: str = "") -> List[Dict[str, Any]]:
    return data_source.fetch_spoilage(store).unwrap()


@st.cache_data(ttl=300)
def _notifications(store: str, api_token: str = "") -> List[Dict[str, Any]]:
    return data_source.fetch_notifications(store).unwrap()


def _read(reader: Callable[..., Any], *args: Any) -> FetchResult:
    try:
        return FetchResult(reader(*args, api_token=get_api_token()))
    except FetchError as exc:
        return FetchResult([], str(exc))


def _switch_store(stores: List[Dict[str, Any]]) -> None:
    name = st.session_state["store_selector"]
    match = next((s for s in stores if s.get("name") == name), None)
    if match is not None:
        st.session_state["viewing_store"] = match


store: Optional[Dict[str, Any]] = st.session_state.get("viewing_store")
if not store:
    st.error("No store is assigned to your account.")
    st.stop()

region = user.get("region") or store.get("region")
region_stores = _read(_stores_in_region, region).data if region else []
if len(region_stores) > 1:
    store_names = [s.get("name") for s in region_stores]
    if store.get("name") in store_names:
        st.session_state["store_selector"] = store.get("name")
    st.sidebar.selectbox(
        "Viewing store",
        options=store_names,
        key="store_selector",
        on_change=_switch_store,
        args=(region_stores,),
    )

store_name: str = store["name"]


# ---------------------------------------------------------------------------
# Recommendation batch


def _load_batch(products: List[Dict[str, Any]]) -> None:
    """Fetch a fresh batch for the store and replace the current review state."""

    sequencer: RefreshSequencer = st.session_state.setdefault("refresh_sequencer", RefreshSequencer())
    result = sequencer.run(
        f"recommendations::{store_name}",
        lambda: data_source.fetch_recommendations(store_name),
    )
    if result is None:
        return
    generation = int(st.session_state.get("review_generation", 0)) + 1
    st.session_state["review_generation"] = generation
    st.session_state["review"] = {
        "store": store_name,
        "engine": ReviewEngine.from_records(result.data, products),
        "error": result.error,
        "generation": generation,
    }


def _request_refresh() -> None:
    st.session_state["review_refresh"] = True
    for reader in (_product_catalog, _justification_reasons, _order_history, _spoilage, _notifications):
        reader.clear()


def _widget_key(kind: str, generation: int, sku: str = "") -> str:
    return f"{kind}::{generation}::{sku}"


def _render_manual_inventory_form(products: List[Dict[str, Any]]) -> None:
    st.markdown("#### Manual inventory update")
    with st.form("manual_inventory_form", clear_on_submit=True):
        col_sku, col_count, col_submit = st.columns([2, 1, 1])
        sku = col_sku.selectbox(
            "Product",
            options=[p.get("sku") for p in products],
            format_func=lambda value: next((p.get("name") for p in products if p.get("sku") == value), value),
            index=None,
            placeholder="Select a product...",
        )
        count = col_count.number_input("Current count", min_value=0, step=1, value=0)
        submitted = col_submit.form_submit_button("Update count")
    if submitted:
        if not sku:
            st.warning("Select a product before submitting a count.")
            return
        result = data_source.submit_inventory_count(store_name, sku, int(count))
        if result.error:
            st.error(f"Failed to record the count: {result.error}")
        else:
            st.success(result.data.get("message", "Inventory count recorded."))


def _render_recommendations(products: List[Dict[str, Any]], reasons: List[str]) -> None:
    review = st.session_state.get("review")
    if st.session_state.pop("review_refresh", False) or not review or review.get("store") != store_name:
        with st.spinner(f"Generating order recommendations for {store_name}…"):
            _load_batch(products)
        review = st.session_state.get("review")
    if not review:
        st.info("Recommendations are still loading. Please retry in a moment.")
        return

    engine: ReviewEngine = review["engine"]
    generation: int = review["generation"]

    header, actions = st.columns([3, 2])
    header.subheader(f"Order Recommendations for {store_name}")
    header.caption("Review and adjust AI-powered order suggestions.")
    refresh_col, approve_col = actions.columns(2)
    refresh_col.button("🔄 Refresh", on_click=_request_refresh, key="refresh_recommendations")
    if engine.selected_count > 0:
        approve_col.button(
            f"✅ Approve Selected ({engine.selected_count})",
            on_click=engine.approve_selected,
            type="primary",
            key="approve_selected",
        )

    if review.get("error"):
        st.error(f"Failed to fetch order recommendations. {review['error']}")

    _render_manual_inventory_form(products)

    st.markdown("#### Pending orders")
    approved, total = engine.summary()
    st.progress(approved / total if total else 0.0, text=f"{approved} of {total} approved")

    status_key = _widget_key("status_filter", generation)
    category_key = _widget_key("category_filter", generation)
    filter_status, filter_category = st.columns(2)
    filter_status.selectbox(
        "Filter by status",
        options=STATUS_FILTER_OPTIONS,
        key=status_key,
        on_change=lambda: engine.set_filters(status_filter=st.session_state[status_key]),
    )
    filter_category.selectbox(
        "Filter by category",
        options=engine.categories,
        key=category_key,
        on_change=lambda: engine.set_filters(category_filter=st.session_state[category_key]),
    )

    view = engine.filtered_view()

    select_all_key = _widget_key("select_all", generation)
    st.session_state[select_all_key] = engine.is_all_selected
    widths = [0.5, 2.5, 1, 1, 1, 1.3, 2, 1.8, 1]
    head = st.columns(widths)
    head[0].checkbox(
        "Select all",
        key=select_all_key,
        label_visibility="collapsed",
        on_change=lambda: engine.select_all(bool(st.session_state[select_all_key])),
    )
    for col, title in zip(
        head[1:],
        ["Product", "Current inv.", "Forecasted", "Recommended", "Adjusted qty", "Justification", "Status", ""],
    ):
        col.markdown(f"**{title}**")

    justification_options = [""] + list(reasons)
    for rec in view:
        sku = rec.sku
        cols = st.columns(widths)

        select_key = _widget_key("select", generation, sku)
        st.session_state[select_key] = sku in engine.selected
        cols[0].checkbox(
            f"Select {rec.product_name}",
            key=select_key,
            label_visibility="collapsed",
            on_change=engine.toggle_select,
            args=(sku,),
        )
        cols[1].write(rec.product_name)
        cols[2].write(rec.current_inventory)
        cols[3].write(rec.forecasted_qty)
        cols[4].write(rec.recommended_qty)

        qty_key = _widget_key("qty", generation, sku)
        st.session_state[qty_key] = int(rec.adjusted_qty)
        cols[5].number_input(
            f"Adjusted quantity for {rec.product_name}",
            key=qty_key,
            min_value=0,
            step=1,
            label_visibility="collapsed",
            on_change=lambda sku=sku, key=qty_key: engine.set_adjusted_qty(sku, st.session_state[key]),
        )

        reason_key = _widget_key("reason", generation, sku)
        options = justification_options if rec.justification in justification_options else (
            justification_options + [rec.justification]
        )
        st.session_state[reason_key] = rec.justification
        cols[6].selectbox(
            f"Justification for {rec.product_name}",
            options=options,
            key=reason_key,
            format_func=lambda value: value or "Select a reason...",
            label_visibility="collapsed",
            on_change=lambda sku=sku, key=reason_key: engine.set_justification(sku, st.session_state[key]),
        )

        cols[7].write(f"{STATUS_BADGES.get(rec.status.value, '')} {rec.status.value}")
        cols[8].button(
            "Approve",
            key=_widget_key("approve", generation, sku),
            disabled=rec.approved,
            on_click=engine.approve,
            args=(sku,),
        )

    if not view:
        st.info("No orders match the current filters.")
    else:
        rows = pd.DataFrame(engine.rows())
        st.download_button(
            "Download CSV",
            rows.to_csv(index=False).encode("utf-8"),
            file_name=f"order-recommendations_{store_name}_{date.today().isoformat()}.csv",
            mime="text/csv",
        )


# ---------------------------------------------------------------------------
# Other tabs


def _render_order_history() -> None:
    st.subheader("Order History")
    st.caption(f"Past 90 Days for {store_name}")
    with st.spinner("Loading order history…"):
        result = _read(_order_history, store_name)
    if result.error:
        st.error(f"Failed to fetch order history. {result.error}")
    if not result.data:
        st.info("No order history found.")
        return
    df = pd.DataFrame(result.data)
    columns = ["orderDate", "productName", "sku", "quantityOrdered", "currentInventory", "shelfLifeDays"]
    st.dataframe(df[[c for c in columns if c in df.columns]], use_container_width=True, hide_index=True)


def _render_spoilage(products: List[Dict[str, Any]]) -> None:
    st.subheader(f"Spoilage Analysis for {store_name}")
    with st.spinner(f"Loading spoilage data for {store_name}…"):
        result = _read(_spoilage, store_name)
    if result.error:
        st.error(f"Failed to fetch spoilage data. {result.error}")

    logged: List[Dict[str, Any]] = st.session_state.setdefault(f"logged_waste::{store_name}", [])
    records = sorted(logged + list(result.data), key=lambda r: str(r.get("recordedDate", "")), reverse=True)

    if records:
        df = pd.DataFrame(records)
        by_reason = df.groupby("reason", as_index=False)["quantity"].sum()
        by_product = df.groupby("productName", as_index=False)["quantity"].sum()

        col_reason, col_product = st.columns(2)
        col_reason.markdown("**Spoilage by reason**")
        col_reason.altair_chart(
            alt.Chart(by_reason).mark_arc(innerRadius=40).encode(
                theta="quantity:Q", color="reason:N", tooltip=["reason", "quantity"]
            ),
            use_container_width=True,
        )
        col_product.markdown("**Spoilage by product**")
        col_product.altair_chart(
            alt.Chart(by_product).mark_bar().encode(
                x=alt.X("productName:N", sort="-y", title="Product"),
                y=alt.Y("quantity:Q", title="Units"),
                tooltip=["productName", "quantity"],
            ),
            use_container_width=True,
        )
    else:
        st.info("No spoilage recorded yet.")

    st.markdown("#### Log waste")
    with st.form("log_waste_form", clear_on_submit=True):
        c1, c2, c3, c4 = st.columns(4)
        sku = c1.selectbox(
            "Product",
            options=[p.get("sku") for p in products],
            format_func=lambda value: next((p.get("name") for p in products if p.get("sku") == value), value),
        )
        quantity = c2.number_input("Quantity", min_value=1, step=1, value=1)
        reason = c3.selectbox("Reason", options=SPOILAGE_REASONS)
        recorded = c4.date_input("Date", value=date.today())
        submitted = st.form_submit_button("Log waste")
    if submitted and sku:
        product_name = next((p.get("name") for p in products if p.get("sku") == sku), "Unknown Product")
        logged.insert(
            0,
            {
                "sku": sku,
                "productName": product_name,
                "quantity": int(quantity),
                "reason": reason,
                "recordedDate": (recorded or date.today()).isoformat(),
            },
        )
        st.success("Waste logged successfully!")
        st.rerun()

    if records:
        st.markdown("#### Recent entries")
        st.dataframe(pd.DataFrame(records[:10]), use_container_width=True, hide_index=True)


def _render_mailbox() -> None:
    st.subheader("Mailbox")
    with st.spinner(f"Loading notifications for {store_name}…"):
        result = _read(_notifications, store_name)
    if result.error:
        st.error(f"Failed to fetch notifications. {result.error}")
    if not result.data:
        st.info("No notifications.")
        return

    read_state: Dict[str, bool] = st.session_state.setdefault(f"read_state::{store_name}", {})
    notifications = sorted(result.data, key=lambda n: str(n.get("date", "")), reverse=True)
    unread = sum(1 for n in notifications if not read_state.get(str(n.get("id")), bool(n.get("read"))))
    st.caption(f"{unread} unread")

    for notification in notifications:
        notification_id = str(notification.get("id"))
        is_read = read_state.get(notification_id, bool(notification.get("read")))
        with st.container(border=True):
            body, action = st.columns([5, 1])
            icon = NOTIFICATION_ICONS.get(notification.get("type", ""), "")
            title = notification.get("title", "")
            body.markdown(f"{icon} {title}" if is_read else f"{icon} **{title}**")
            body.write(notification.get("message", ""))
            body.caption(str(notification.get("date", "")))
            if action.button(
                "Mark as Unread" if is_read else "Mark as Read",
                key=f"toggle_read::{notification_id}",
            ):
                read_state[notification_id] = not is_read
                st.rerun()


# ---------------------------------------------------------------------------

st.title(f"🏪 {store_name}")

products_result = _read(_product_catalog)
reasons_result = _read(_justification_reasons)
if products_result.error:
    st.warning(f"Product catalog unavailable; category filters are limited. {products_result.error}")

tab_orders, tab_history, tab_spoilage, tab_mailbox = st.tabs(
    ["Order Recommendations", "Order History", "Spoilage Analysis", "Mailbox"]
)

with tab_orders:
    _render_recommendations(products_result.data, reasons_result.data)

with tab_history:
    _render_order_history()

with tab_spoilage:
    _render_spoilage(products_result.data)

with tab_mailbox:
    _render_mailbox()
