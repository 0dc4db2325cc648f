"""Per-browser-session objects kept in st.session_state."""

import extra_streamlit_components as stx
import streamlit as st

from config.settings import settings
from frontend.navigation import StreamlitNavigator
from portal.client import PortalClient, build_portal_client
from portal.storage import BrowserSessionRepository


def get_navigator() -> StreamlitNavigator:
    if st.session_state.get("navigator") is None:
        st.session_state.navigator = StreamlitNavigator()
    return st.session_state.navigator


def get_portal() -> PortalClient:
    """Get the PortalClient for this browser session."""
    if st.session_state.get("portal") is None:
        # Tokens live in this browser's cookies, never in server-wide storage
        repository = BrowserSessionRepository(
            st.context.cookies,
            max_age_days=settings.SESSION_COOKIE_DAYS,
        )
        st.session_state.portal = build_portal_client(get_navigator(), repository=repository)
    return st.session_state.portal


def persist_session():
    """Write queued token changes to the browser's cookies."""
    repository = get_portal().repository
    if isinstance(repository, BrowserSessionRepository) and repository.has_pending:
        repository.flush(stx.CookieManager(key="portal_cookies"))


def init_page_state():
    """Initialize page-level session state."""
    defaults = {
        "wizard_state": None,        # current VerificationWizard state
        "wizard_errors": {},         # field -> message for the current step
        "topup_session": None,       # TopUpSession while redirecting
        "callback_outcome": None,    # CallbackOutcome once verification ended
        "created_key_token": None,   # shown once after key creation
        "flash": None,               # (kind, message) shown on the next render
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def flash(kind: str, message: str):
    st.session_state.flash = (kind, message)


def show_flash():
    pending = st.session_state.get("flash")
    if not pending:
        return
    kind, message = pending
    st.session_state.flash = None
    getattr(st, kind, st.info)(message)
