"""
Regional performance page.

Regional managers compare spoilage, order accuracy and inventory turnover
across the stores in a region.  Store managers can open the page for
context on their own region.
"""

from datetime import date

import altair as alt
import pandas as pd
import streamlit as st

from utils.api import ROLE_REGIONAL_MANAGER, ROLE_STORE_MANAGER, get_data_source, require_role

user = require_role(ROLE_REGIONAL_MANAGER, ROLE_STORE_MANAGER)
data_source = get_data_source()

st.title("🗺️ Regional Performance")

stores_result = data_source.fetch_stores()
if stores_result.error:
    st.error(f"Failed to load stores: {stores_result.error}")
stores = stores_result.data

regions = list(dict.fromkeys(s.get("region") for s in stores if s.get("region")))
if not regions:
    st.info("No regions available.")
    st.stop()

if not user.get("region"):
    st.error("Error: No region assigned to the current user.")
    st.stop()

default_region = user.get("region") if user.get("region") in regions else regions[0]
col_region, col_store = st.columns(2)
selected_region = col_region.selectbox("Region", options=regions, index=regions.index(default_region))
stores_in_region = [s.get("name") for s in stores if s.get("region") == selected_region]
# Options change with the region so the store choice resets to "All".
selected_store = col_store.selectbox(
    "Store", options=["All", *stores_in_region], key=f"regional_store::{selected_region}"
)

with st.spinner(f"Loading performance data for {selected_region}…"):
    performance = data_source.fetch_regional_performance(selected_region)
if performance.error:
    st.error(f"Failed to fetch regional performance. {performance.error}")

df = pd.DataFrame(performance.data)
if df.empty:
    st.info("No performance data available for this region.")
    st.stop()

if selected_store != "All":
    df = df[df["storeName"] == selected_store]

title = (
    f"Regional Performance: {selected_region}"
    if selected_store == "All"
    else f"Store Performance: {selected_store}"
)
st.subheader(title)

c1, c2, c3 = st.columns(3)
c1.metric("Total spoilage (units)", f"{int(df['totalSpoilage'].sum()):,}")
c2.metric("Avg. order accuracy", f"{df['orderAccuracy'].mean():.1f}%")
c3.metric("Avg. inventory turnover", f"{df['inventoryTurnover'].mean():.1f}x")

chart_spoilage, chart_accuracy = st.columns(2)
chart_spoilage.altair_chart(
    alt.Chart(df).mark_bar().encode(
        x=alt.X("storeName:N", title="Store"),
        y=alt.Y("totalSpoilage:Q", title="Spoilage (units)"),
        tooltip=["storeName", "totalSpoilage"],
    ).properties(title="Total spoilage"),
    use_container_width=True,
)
melted = df.melt(
    id_vars=["storeName"],
    value_vars=["orderAccuracy", "inventoryTurnover"],
    var_name="metric",
    value_name="value",
)
chart_accuracy.altair_chart(
    alt.Chart(melted).mark_bar().encode(
        x=alt.X("storeName:N", title="Store"),
        y=alt.Y("value:Q"),
        color="metric:N",
        xOffset="metric:N",
        tooltip=["storeName", "metric", "value"],
    ).properties(title="Accuracy (%) and turnover"),
    use_container_width=True,
)

st.dataframe(df, use_container_width=True, hide_index=True)
st.download_button(
    "Download CSV",
    df.to_csv(index=False).encode("utf-8"),
    file_name=f"regional-performance_{selected_region}_{selected_store}_{date.today().isoformat()}.csv",
    mime="text/csv",
)
