r"""frontend\utils\api.py"""

import os
from typing import Any, Dict, Optional

import streamlit as st

from utils.data_source import DataSource

ROLE_STORE_MANAGER = "Store Manager"
ROLE_REGIONAL_MANAGER = "Regional Manager"
ROLE_CORPORATE_ANALYST = "Corporate Analyst"


def get_api_token() -> str:
    """Return the API token from session state or the environment."""

    return (st.session_state.get("api_token") or os.getenv("API_TOKEN", "")).strip()


def get_headers(token: Optional[str] = None) -> dict:
    """Return default headers for API requests.

    If an API token is present in Streamlit's session state or the
    ``API_TOKEN`` environment variable, include it as a bearer token in the
    ``Authorization`` header.

    Parameters
    ----------
    token:
        Optional explicit token to use. When ``None`` (the default), the token
        is looked up via :func:`get_api_token`.
    """

    resolved_token = token.strip() if isinstance(token, str) else get_api_token()
    return {"Authorization": f"Bearer {resolved_token}"} if resolved_token else {}


def get_data_source() -> DataSource:
    """Return the per-session API client."""

    client = st.session_state.get("data_source")
    if not isinstance(client, DataSource):
        client = DataSource(headers=get_headers)
        st.session_state["data_source"] = client
    return client


def current_user() -> Optional[Dict[str, Any]]:
    user = st.session_state.get("user")
    return user if isinstance(user, dict) else None


def require_role(*roles: str) -> Dict[str, Any]:
    """Stop rendering the page unless the signed-in user holds one of ``roles``."""

    user = current_user()
    if user is None:
        st.warning("Please sign in from the home page first.")
        st.stop()
    if roles and user.get("role") not in roles:
        st.error(f"The {user.get('role', 'current')} role cannot open this page.")
        st.stop()
    return user
