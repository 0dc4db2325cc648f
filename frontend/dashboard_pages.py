"""
Customer dashboard, usage, API keys and profile pages.
"""

from datetime import timedelta

import streamlit as st

from config.settings import settings
from frontend.navigation import apply_pending_redirect, go
from frontend.state import get_navigator, get_portal
from frontend.ui import card, section_header, status_badge
from portal.errors import PortalError, SessionExpired
from portal.navigation import CUSTOMER_VERIFICATION_PATH, CUSTOMER_WALLET_PATH
from portal.usage import UsageLevel

LEVEL_COLORS = {
    UsageLevel.GREEN: "#28a745",
    UsageLevel.YELLOW: "#f59e0b",
    UsageLevel.RED: "#dc3545",
}


# =============================================================================
# DASHBOARD
# =============================================================================

@st.fragment(run_every=timedelta(seconds=settings.BALANCE_REFRESH_SECONDS))
def render_balance_card():
    """Wallet balance, re-fetched on its own timer."""
    portal = get_portal()
    portal.refresh_balance()
    # A 401 here leaves a queued redirect to the login page
    apply_pending_redirect(get_navigator())
    balance = portal.balance
    st.metric("Wallet Balance", balance.formatted if balance else "N/A")
    if portal.balance_error:
        st.caption(f":orange[{portal.balance_error}]")


def render_verification_banner():
    cache = get_portal().verification
    if cache.is_verified:
        return
    if cache.needs_verification or cache.is_rejected:
        card("warning", "alert", "Complete your business verification to access all features.")
        if st.button("Verify my business", type="primary"):
            go(CUSTOMER_VERIFICATION_PATH)
    elif cache.is_pending:
        card("info", "clock", f"Verification in progress {status_badge(cache.status)}")


def render_dashboard():
    portal = get_portal()

    if not st.session_state.get("dashboard_loaded"):
        with st.spinner("Loading your dashboard..."):
            errors = portal.load_dashboard()
        st.session_state.dashboard_loaded = True
        for name, error in errors.items():
            if error:
                st.warning(f"{name.title()}: {error}")

    profile = portal.session.profile
    name = (profile.company or profile.full_name or profile.email) if profile else "there"
    st.markdown(f"### Welcome, {name}")

    render_verification_banner()

    stats = portal.usage.stats
    col1, col2, col3 = st.columns(3)
    with col1:
        render_balance_card()
    with col2:
        st.metric("Requests Today", f"{stats.requests_today:,}")
    with col3:
        st.metric("Requests This Month", f"{stats.requests_this_month:,}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Top up wallet", use_container_width=True):
            go(CUSTOMER_WALLET_PATH)
    with col2:
        if st.button("Refresh", use_container_width=True):
            st.session_state.dashboard_loaded = False
            st.rerun()


# =============================================================================
# USAGE
# =============================================================================

def render_usage():
    portal = get_portal()
    usage = portal.usage

    with st.spinner("Loading usage..."):
        usage.refresh()
    if usage.error:
        st.warning(usage.error)

    stats = usage.stats
    section_header("clipboard", "API Usage")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Today", f"{stats.requests_today:,}")
    col2.metric("This Month", f"{stats.requests_this_month:,}")
    col3.metric("Total Calls", f"{stats.total_calls:,}")
    col4.metric("Success Rate", f"{stats.success_rate:.1f}%")

    color = LEVEL_COLORS[usage.level]
    st.markdown(
        f'<span class="status-badge" style="background:{color};">Error rate {stats.error_rate:.1f}%</span>',
        unsafe_allow_html=True,
    )

    if stats.popular_endpoints:
        st.markdown("#### Most used endpoints")
        st.bar_chart({e.endpoint: e.count for e in stats.popular_endpoints})
    if stats.last_call_at:
        st.caption(f"Last call: {stats.last_call_at}")


# =============================================================================
# API KEYS
# =============================================================================

def render_api_keys():
    portal = get_portal()
    section_header("key", "API Keys")

    token = st.session_state.get("created_key_token")
    if token:
        card("success", "check_circle", "Key created. Copy it now, it will not be shown again.")
        st.code(token)
        if st.button("I have copied it"):
            st.session_state.created_key_token = None
            st.rerun()

    with st.form("create_key_form", clear_on_submit=True):
        name = st.text_input("Key name (optional)")
        submitted = st.form_submit_button("Create key", type="primary")
    if submitted:
        try:
            _, new_token = portal.api_keys.create_key(name)
        except SessionExpired:
            raise
        except PortalError as e:
            st.error(e.message)
        else:
            st.session_state.created_key_token = new_token
            st.rerun()

    try:
        keys = portal.api_keys.list_keys()
    except SessionExpired:
        raise
    except PortalError as e:
        st.error(e.message)
        return

    if not keys:
        st.caption("No API keys yet")
        return

    for key in keys:
        col1, col2, col3 = st.columns([3, 1, 1])
        with col1:
            st.markdown(f"**{key.name or key.id}**  `{key.prefix or ''}...`")
            st.caption(f"Created {key.created_at or 'n/a'} · Last used {key.last_used_at or 'never'}")
        with col2:
            st.markdown(key.status.title())
        with col3:
            if key.status == "active" and st.button("Revoke", key=f"revoke_{key.id}"):
                try:
                    portal.api_keys.revoke_key(key.id)
                except SessionExpired:
                    raise
                except PortalError as e:
                    st.error(e.message)
                else:
                    st.rerun()


# =============================================================================
# PROFILE
# =============================================================================

def render_profile():
    portal = get_portal()
    session = portal.session

    if session.profile is None:
        session.load_me()
    profile = session.profile

    section_header("user", "Profile")
    if profile is None:
        st.warning("Could not load your profile")
        return

    st.markdown(f"**Email:** {profile.email}")
    st.markdown(f"**Plan:** {(profile.plan or 'basic').title()}")
    st.markdown(f"**Member since:** {profile.created_at or 'n/a'}")

    with st.form("profile_form"):
        company = st.text_input("Company", value=profile.company or "")
        phone_number = st.text_input("Phone Number", value=profile.phone_number or "")
        submitted = st.form_submit_button("Save changes", type="primary")

    if submitted:
        result = session.update_profile(company=company.strip(), phone_number=phone_number.strip())
        if result.ok:
            st.success("Profile updated")
        else:
            st.error(result.message)
