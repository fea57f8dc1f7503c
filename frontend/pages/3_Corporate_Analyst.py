"""
Corporate dashboard page displaying chain-wide KPIs.

KPI cards summarise sales, spoilage rate, order accuracy and inventory
turnover; the charts break sales and spoilage down by product category.
"""

import altair as alt
import pandas as pd
import streamlit as st

from utils.api import ROLE_CORPORATE_ANALYST, get_data_source, require_role

require_role(ROLE_CORPORATE_ANALYST)
data_source = get_data_source()

st.title("📊 Corporate Dashboard")

with st.spinner("Loading corporate KPIs…"):
    result = data_source.fetch_corporate_dashboard()
if result.error:
    st.error(f"Failed to fetch corporate data. {result.error}")

kpis = result.data["kpis"]
if kpis:
    for col, kpi in zip(st.columns(len(kpis)), kpis):
        trend = kpi.get("trend", "neutral")
        col.metric(
            kpi.get("name", ""),
            kpi.get("value", ""),
            kpi.get("change") if trend != "neutral" else None,
        )
else:
    st.info("No KPIs available.")

performance = pd.DataFrame(result.data["performance"])
if performance.empty:
    st.info("No category performance data available.")
else:
    col_sales, col_spoilage = st.columns(2)
    col_sales.altair_chart(
        alt.Chart(performance).mark_arc(innerRadius=50).encode(
            theta="sales:Q", color="category:N", tooltip=["category", "sales"]
        ).properties(title="Sales by category"),
        use_container_width=True,
    )
    melted = performance.melt(id_vars=["category"], value_vars=["sales", "spoilage"], var_name="measure")
    col_spoilage.altair_chart(
        alt.Chart(melted).mark_bar().encode(
            x=alt.X("category:N", title="Category"),
            y=alt.Y("value:Q", title="USD"),
            color="measure:N",
            xOffset="measure:N",
            tooltip=["category", "measure", "value"],
        ).properties(title="Sales vs spoilage"),
        use_container_width=True,
    )
    sales = performance["sales"].where(performance["sales"] > 0)
    performance["spoilage_rate_pct"] = (performance["spoilage"] / sales * 100).round(2)
    st.dataframe(performance, use_container_width=True, hide_index=True)
