"""
Route handling for the Streamlit portal.

Pages are addressed by a `route` query parameter (?route=/customer/wallet).
Redirects requested by the portal services are queued and applied on the
script thread by apply_pending_redirect(), because the dashboard issues its
REST calls from worker threads where Streamlit calls are not allowed.
"""

import threading
from typing import Dict, Optional
from urllib.parse import parse_qsl, urlsplit

import streamlit as st

from portal.navigation import CUSTOMER_DASHBOARD_PATH

ROUTE_PARAM = "route"


class StreamlitNavigator:
    """Navigator over st.query_params."""

    def __init__(self):
        self._path = CUSTOMER_DASHBOARD_PATH
        self._pending: Optional[str] = None
        self._lock = threading.Lock()

    def sync(self, path: str) -> None:
        """Record the route the script is rendering this run."""
        self._path = path

    def current_path(self) -> str:
        return self._path

    def redirect(self, url: str) -> None:
        with self._lock:
            self._pending = url

    def take_pending(self) -> Optional[str]:
        with self._lock:
            url, self._pending = self._pending, None
        return url


def current_route(default: str = CUSTOMER_DASHBOARD_PATH) -> str:
    return st.query_params.get(ROUTE_PARAM) or default


def go(url: str) -> None:
    """
    Switch to `url` (a route path, optionally with its own query string)
    and rerun. Other query parameters are dropped.
    """
    parts = urlsplit(url)
    params: Dict[str, str] = dict(parse_qsl(parts.query))
    params[ROUTE_PARAM] = parts.path or CUSTOMER_DASHBOARD_PATH
    st.query_params.clear()
    st.query_params.update(params)
    st.rerun()


def apply_pending_redirect(navigator: StreamlitNavigator) -> None:
    url = navigator.take_pending()
    if url:
        go(url)
