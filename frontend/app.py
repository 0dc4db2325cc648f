"""
Business Verification Portal - Streamlit entry point.

    streamlit run frontend/app.py

Routes (?route=...):
- /customer/login, /customer/signup, /customer/forgot-password,
  /customer/reset-password
- /customer/dashboard, /customer/verification, /customer/wallet,
  /customer/wallet/callback, /customer/usage, /customer/api-keys,
  /customer/profile
- /admin/login
"""

import logging
import sys
from pathlib import Path

import streamlit as st

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import settings, validate_settings
from frontend.auth_pages import (
    render_admin_login,
    render_forgot_password,
    render_login,
    render_reset_password,
    render_signup,
)
from frontend.dashboard_pages import render_api_keys, render_dashboard, render_profile, render_usage
from frontend.navigation import apply_pending_redirect, current_route, go
from frontend.state import get_navigator, get_portal, init_page_state, persist_session, show_flash
from frontend.ui import ICONS, inject_styles, render_header
from frontend.verification_pages import render_verification
from frontend.wallet_pages import render_wallet, render_wallet_callback
from portal.errors import SessionExpired
from portal.navigation import (
    ADMIN_LOGIN_PATH,
    CUSTOMER_DASHBOARD_PATH,
    CUSTOMER_LOGIN_PATH,
    CUSTOMER_VERIFICATION_PATH,
    CUSTOMER_WALLET_CALLBACK_PATH,
    CUSTOMER_WALLET_PATH,
    login_redirect_url,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Business Verification Portal",
    page_icon=ICONS["shield"],
    layout="centered",
    initial_sidebar_state="expanded",
)


# =============================================================================
# ROUTES
# =============================================================================

PUBLIC_ROUTES = {
    CUSTOMER_LOGIN_PATH: render_login,
    "/customer/signup": render_signup,
    "/customer/forgot-password": render_forgot_password,
    "/customer/reset-password": render_reset_password,
    # Verification is public and keyed by reference only
    CUSTOMER_WALLET_CALLBACK_PATH: render_wallet_callback,
    ADMIN_LOGIN_PATH: render_admin_login,
}

CUSTOMER_ROUTES = {
    CUSTOMER_DASHBOARD_PATH: ("Dashboard", render_dashboard),
    CUSTOMER_VERIFICATION_PATH: ("Verification", render_verification),
    CUSTOMER_WALLET_PATH: ("Wallet", render_wallet),
    "/customer/usage": ("Usage", render_usage),
    "/customer/api-keys": ("API Keys", render_api_keys),
    "/customer/profile": ("Profile", render_profile),
}


def render_sidebar(route: str):
    portal = get_portal()

    with st.sidebar:
        st.markdown(f"""
        <div style="text-align:center;padding:10px 0 20px;">
            {ICONS['shield']}
            <h3 style="margin:8px 0 0;color:#2563eb;">Verification Portal</h3>
            <p style="color:#888;font-size:0.8rem;margin:2px 0 0;">{'Sandbox mode' if settings.DEMO_MODE else ''}</p>
        </div>
        """, unsafe_allow_html=True)

        if not portal.session.is_authenticated:
            return

        for path, (label, _) in CUSTOMER_ROUTES.items():
            if st.button(label, key=f"nav_{path}", use_container_width=True,
                         type="primary" if path == route else "secondary"):
                go(path)

        st.markdown("---")
        if portal.session.profile:
            st.caption(portal.session.profile.email)
        if st.button("Log out", key="logout_btn", use_container_width=True):
            portal.session.logout()
            st.session_state.dashboard_loaded = False
            st.session_state.wizard_state = None
            go(CUSTOMER_LOGIN_PATH)


def render_route(route: str):
    portal = get_portal()

    if route in PUBLIC_ROUTES:
        PUBLIC_ROUTES[route]()
        return

    if route not in CUSTOMER_ROUTES:
        st.error(f"Page not found: {route}")
        if st.button("Go to Dashboard"):
            go(CUSTOMER_DASHBOARD_PATH)
        return

    if not portal.session.is_authenticated:
        go(login_redirect_url(route))

    _, render = CUSTOMER_ROUTES[route]
    render()


# =============================================================================
# MAIN APP
# =============================================================================

def main():
    """Main application entry point."""
    init_page_state()
    inject_styles()

    is_valid, issues = validate_settings()
    if not is_valid:
        for issue in issues:
            st.error(issue)
        st.stop()

    navigator = get_navigator()
    route = current_route()
    navigator.sync(route)

    render_sidebar(route)
    render_header("Business Verification", "Verify your business, manage your wallet and API access")
    show_flash()

    try:
        render_route(route)
    except SessionExpired as e:
        logger.info(f"[Portal] Session expired on {route}")
        st.session_state.dashboard_loaded = False
        apply_pending_redirect(navigator)
        go(e.redirect_to or login_redirect_url(route))

    # Redirects requested from worker threads (dashboard refresh)
    apply_pending_redirect(navigator)

    # Runs cut short by a rerun never get here; their writes wait for the next run
    persist_session()

    st.markdown("---")
    st.caption("Business verification and KYC APIs")


if __name__ == "__main__":
    main()
