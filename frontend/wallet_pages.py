"""
Wallet page and the payment callback page.

A top-up leaves the portal for the hosted payment page (full browser
redirect) and comes back to ?route=/customer/wallet/callback&reference=...
"""

import html
import json

import streamlit as st
import streamlit.components.v1 as components

from config.pricing import WALLET_TIERS
from frontend.navigation import go
from frontend.state import get_portal
from frontend.ui import card, section_header
from portal.errors import PaymentVerificationError, PortalError, SessionExpired, ValidationError
from portal.navigation import CUSTOMER_DASHBOARD_PATH, CUSTOMER_WALLET_PATH
from portal.wallet import (
    CallbackOutcome,
    CallbackState,
    callback_url,
    format_naira,
    require_reference,
    validate_topup_amount,
)


# =============================================================================
# REDIRECT
# =============================================================================

def redirect_browser(url: str):
    """Send the whole browser window (not the component iframe) to `url`."""
    components.html(
        f"<script>window.top.location.href = {json.dumps(url)};</script>",
        height=0,
    )
    st.info("Redirecting to the payment page...")
    st.link_button("Continue to payment", url, type="primary")


# =============================================================================
# WALLET
# =============================================================================

def render_tiers():
    section_header("wallet", "Choose an amount")
    cols = st.columns(3)
    for i, tier in enumerate(WALLET_TIERS):
        with cols[i % 3]:
            popular = " popular" if tier.popular else ""
            bonus = f"+{format_naira(tier.bonus)} bonus" if tier.bonus else "No bonus"
            st.markdown(f'''<div class="tier-card{popular}">
                <div style="font-size:1.3rem;font-weight:700;">{format_naira(tier.amount)}</div>
                <div style="color:#28a745;font-size:0.85rem;">{bonus}</div>
                <div style="color:#6c757d;font-size:0.8rem;">{format_naira(tier.total_credits)} in credits</div>
            </div>''', unsafe_allow_html=True)
            if st.button("Select", key=f"tier_{tier.amount}", use_container_width=True):
                st.session_state.topup_amount = float(tier.amount)
                st.rerun()


def render_topup_form():
    portal = get_portal()

    amount = st.number_input(
        "Amount (₦)",
        min_value=0.0,
        step=500.0,
        key="topup_amount",
    )
    is_valid, error = validate_topup_amount(amount)
    if amount and not is_valid:
        st.caption(f":red[{error}]")

    if st.button("Top Up Wallet", type="primary", use_container_width=True):
        if not is_valid:
            st.error(error)
            return
        try:
            with st.spinner("Preparing payment..."):
                session = portal.wallet.initiate_topup(amount, callback_url())
        except ValidationError as e:
            st.error(e.message)
        except SessionExpired:
            raise
        except PortalError as e:
            st.error(e.message)
        else:
            st.session_state.topup_session = session
            st.session_state.callback_outcome = None
            st.rerun()


def render_transactions():
    portal = get_portal()
    section_header("clipboard", "Transaction history")

    if "tx_offset" not in st.session_state:
        st.session_state.tx_offset = 0

    try:
        page = portal.wallet.get_transactions(limit=20, offset=st.session_state.tx_offset)
    except SessionExpired:
        raise
    except PortalError as e:
        st.error(e.message)
        return

    if page.summary:
        summary = page.summary
        net = summary.net_change
        col1, col2, col3 = st.columns(3)
        col1.metric("Total Credits", summary.total_credits.formatted or format_naira(summary.total_credits.naira))
        col2.metric("Total Debits", summary.total_debits.formatted or format_naira(summary.total_debits.naira))
        col3.metric("Net Change", f"{'+' if net.kobo >= 0 else ''}{net.formatted or format_naira(net.naira)}")

    if not page.transactions:
        st.caption("No transactions yet")
        return

    rows = [
        {
            "Date": t.created_at or "",
            "Description": t.description,
            "Reference": t.reference,
            "Amount": t.amount.formatted or format_naira(t.amount.naira),
            "Status": t.status.title(),
        }
        for t in page.transactions
    ]
    st.dataframe(rows, use_container_width=True, hide_index=True)

    col1, _, col3 = st.columns([1, 2, 1])
    with col1:
        if page.offset > 0 and st.button("Previous", use_container_width=True):
            st.session_state.tx_offset = max(0, page.offset - page.limit)
            st.rerun()
    with col3:
        if page.has_more and st.button("Next", use_container_width=True):
            st.session_state.tx_offset = page.offset + page.limit
            st.rerun()


def render_wallet():
    portal = get_portal()

    pending = st.session_state.get("topup_session")
    if pending is not None:
        st.session_state.topup_session = None
        redirect_browser(pending.payment_url)
        return

    portal.refresh_balance()
    balance = portal.balance
    st.metric("Wallet Balance", balance.formatted if balance else "N/A")
    if portal.balance_error:
        st.warning(portal.balance_error)

    render_tiers()
    render_topup_form()
    st.markdown("---")
    render_transactions()


# =============================================================================
# PAYMENT CALLBACK
# =============================================================================

def render_outcome(outcome):
    if outcome.state == CallbackState.SUCCESS:
        card("success", "check_circle", f"<strong>Payment Successful!</strong> {html.escape(outcome.message)}")
        if outcome.formatted_amount:
            st.metric("Amount credited", outcome.formatted_amount)
    elif outcome.state == CallbackState.TIMED_OUT:
        card("warning", "clock", html.escape(outcome.message))
        if outcome.reference and st.button("Check again", use_container_width=True):
            st.session_state.callback_outcome = None
            st.rerun()
    else:
        card("warning", "alert", f"<strong>Payment Failed.</strong> {html.escape(outcome.message)}")

    if outcome.reference:
        st.caption(f"Reference: {outcome.reference}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Go to Wallet", type="primary", use_container_width=True):
            st.session_state.callback_outcome = None
            go(CUSTOMER_WALLET_PATH)
    with col2:
        if st.button("Back to Dashboard", use_container_width=True):
            st.session_state.callback_outcome = None
            go(CUSTOMER_DASHBOARD_PATH)


def render_wallet_callback():
    portal = get_portal()
    try:
        reference = require_reference(st.query_params.to_dict())
    except PaymentVerificationError as e:
        render_outcome(CallbackOutcome(CallbackState.FAILED, e.message))
        return

    outcome = st.session_state.get("callback_outcome")
    if outcome is None or outcome.reference != reference:
        verifier = portal.topup_verifier()
        with st.status("Verifying your payment...", expanded=True) as status:
            progress = st.empty()

            def on_progress(step):
                progress.write(f"Attempt {step.attempts}: {step.message}")

            outcome = verifier.run(reference, on_progress=on_progress)
            label = {
                CallbackState.SUCCESS: "Payment verified",
                CallbackState.TIMED_OUT: "Still processing",
            }.get(outcome.state, "Verification failed")
            status.update(label=label, state="complete" if outcome.state == CallbackState.SUCCESS else "error")
        st.session_state.callback_outcome = outcome
        if outcome.state == CallbackState.SUCCESS:
            portal.refresh_balance()

    render_outcome(outcome)
