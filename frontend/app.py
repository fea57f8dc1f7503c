r"""frontend/app.py

Streamlit multipage application for the GreenGrocer ordering dashboard.

This file configures global options and provides the sign-in page.  Role
specific views live in the ``pages/`` subdirectory; Streamlit will
automatically load them.  To run the app locally use:

```bash
streamlit run app.py
```
"""

import logging
import os
from typing import Any, Dict, Final, List

import streamlit as st

from utils.api import (
    ROLE_CORPORATE_ANALYST,
    ROLE_REGIONAL_MANAGER,
    ROLE_STORE_MANAGER,
    current_user,
    get_data_source,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

st.set_page_config(page_title="GreenGrocer Ordering", layout="wide")

st.title("🥬 GreenGrocer Ordering")

API_URL: Final[str] = os.getenv("API_URL", "http://localhost:8000/api/v1")

ROLE_PAGES: Final[Dict[str, str]] = {
    ROLE_STORE_MANAGER: "pages/1_Store_Manager.py",
    ROLE_REGIONAL_MANAGER: "pages/2_Regional_Manager.py",
    ROLE_CORPORATE_ANALYST: "pages/3_Corporate_Analyst.py",
}

with st.sidebar.expander("Auth", expanded=False):
    default_token = st.session_state.get("api_token") or os.getenv("API_TOKEN", "")
    token = st.text_input("API token", value=default_token, type="password")
    st.session_state["api_token"] = token

data_source = get_data_source()


def _sign_in(user: Dict[str, Any], stores: List[Dict[str, Any]]) -> None:
    st.session_state["user"] = user
    if user.get("role") == ROLE_STORE_MANAGER and user.get("storeId") is not None:
        store = next((s for s in stores if s.get("id") == user.get("storeId")), None)
        st.session_state["viewing_store"] = store
    else:
        st.session_state["viewing_store"] = None
    # A new session starts with no review batch loaded.
    st.session_state.pop("review", None)


def _sign_out() -> None:
    for key in ("user", "viewing_store", "review"):
        st.session_state.pop(key, None)


user = current_user()

if user is None:
    users_result = data_source.fetch_users()
    if users_result.error:
        st.caption(f"Backend API: ⚠️ not reachable — {API_URL}  ·  Set `API_URL` if needed.")
        st.error("Failed to load application data. Please try refreshing the page.")
        st.stop()

    st.caption(f"Backend API: ✅ healthy — {API_URL}")
    st.subheader("Sign in")

    with st.form("login_form"):
        email = st.text_input("Email address", value=st.session_state.get("login_email", ""))
        st.text_input("Password", type="password", help="Any password is accepted in the pilot.")
        submitted = st.form_submit_button("Sign in")

    if submitted:
        login_result = data_source.login(email)
        if login_result.error or not login_result.data:
            st.error("Invalid credentials. Please try again.")
        else:
            _sign_in(login_result.data, data_source.fetch_stores().data)
            st.rerun()

    st.markdown("**Demo accounts**")
    cols = st.columns(max(len(users_result.data), 1))
    for col, demo_user in zip(cols, users_result.data):
        if col.button(f"{demo_user.get('role')}\n\n{demo_user.get('email')}", key=f"prefill::{demo_user.get('id')}"):
            st.session_state["login_email"] = demo_user.get("email", "")
            st.rerun()
else:
    st.sidebar.markdown(f"Signed in as **{user.get('name')}**  \n{user.get('role')}")
    if st.sidebar.button("Log out"):
        _sign_out()
        st.rerun()

    role = user.get("role", "")
    store = st.session_state.get("viewing_store")
    st.subheader(f"Welcome, {user.get('name')}")
    if role == ROLE_STORE_MANAGER:
        if store:
            st.write(f"You are managing **{store.get('name')}** ({store.get('region')} region).")
        else:
            st.warning("No store is assigned to your account.")
    elif user.get("region"):
        st.write(f"Region: **{user.get('region')}**")

    page = ROLE_PAGES.get(role)
    if page is None:
        st.info("No view available for this role.")
    else:
        st.page_link(page, label=f"Open the {role} view", icon="➡️")
        if role == ROLE_STORE_MANAGER:
            st.page_link(ROLE_PAGES[ROLE_REGIONAL_MANAGER], label="Regional context", icon="🗺️")
