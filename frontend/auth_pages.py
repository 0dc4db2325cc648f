"""
Sign-in related pages: customer login, signup, password reset, admin login.
"""

import streamlit as st

from frontend.navigation import go
from frontend.state import flash, get_portal
from frontend.ui import card, section_header
from portal.auth import MIN_PASSWORD_LENGTH
from portal.navigation import ADMIN_LOGIN_PATH, CUSTOMER_DASHBOARD_PATH, CUSTOMER_LOGIN_PATH


# =============================================================================
# CUSTOMER LOGIN
# =============================================================================

def render_login():
    portal = get_portal()
    params = st.query_params
    return_to = params.get("from") or CUSTOMER_DASHBOARD_PATH

    if portal.session.is_authenticated:
        go(return_to)

    section_header("user", "Sign in to your account")
    if params.get("auth") == "1":
        card("warning", "clock", "Your session has expired. Please sign in again.")

    with st.form("login_form"):
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)

    if submitted:
        if not email.strip() or not password:
            st.error("Email and password are required")
        else:
            with st.spinner("Signing in..."):
                result = portal.session.login(email.strip(), password)
            if result.ok:
                go(return_to)
            else:
                st.error(result.message or "Login failed")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Create an account", use_container_width=True):
            go("/customer/signup")
    with col2:
        if st.button("Forgot password?", use_container_width=True):
            go("/customer/forgot-password")


# =============================================================================
# SIGNUP
# =============================================================================

def render_signup():
    portal = get_portal()
    section_header("building", "Create your business account")

    with st.form("signup_form"):
        company = st.text_input("Company Name")
        full_name = st.text_input("Full Name")
        email = st.text_input("Email *")
        phone_number = st.text_input("Phone Number")
        plan = st.selectbox("Plan", ["basic", "pro"], format_func=str.title)
        password = st.text_input("Password *", type="password")
        confirm = st.text_input("Confirm Password *", type="password")
        submitted = st.form_submit_button("Create account", type="primary", use_container_width=True)

    if submitted:
        if not email.strip() or not password:
            st.error("Email and password are required")
        elif len(password) < MIN_PASSWORD_LENGTH:
            st.error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        elif password != confirm:
            st.error("Passwords do not match")
        else:
            result = portal.session.signup(
                email.strip(),
                password,
                company=company.strip() or None,
                plan=plan,
                full_name=full_name.strip() or None,
                phone_number=phone_number.strip() or None,
            )
            if result.ok:
                flash("success", result.message)
                go(CUSTOMER_LOGIN_PATH)
            else:
                st.error(result.message)

    if st.button("Already have an account? Sign in"):
        go(CUSTOMER_LOGIN_PATH)


# =============================================================================
# PASSWORD RESET
# =============================================================================

def render_forgot_password():
    portal = get_portal()
    section_header("key", "Reset your password")

    with st.form("forgot_form"):
        email = st.text_input("Email")
        submitted = st.form_submit_button("Send reset link", type="primary", use_container_width=True)

    if submitted:
        result = portal.session.request_password_reset(email)
        if not result.ok:
            st.error(result.message)
        elif result.message and result.message.startswith("http"):
            # Backend without email delivery hands the link back directly
            st.success("Reset link generated.")
            st.link_button("Open reset link", result.message)
        else:
            st.success(result.message)

    if st.button("Back to sign in"):
        go(CUSTOMER_LOGIN_PATH)


def render_reset_password():
    portal = get_portal()
    token = st.query_params.get("token")
    section_header("key", "Choose a new password")

    if not token:
        st.error("Reset token is missing or invalid")

    with st.form("reset_form"):
        password = st.text_input("New Password", type="password")
        confirm = st.text_input("Confirm Password", type="password")
        submitted = st.form_submit_button("Update password", type="primary", use_container_width=True)

    if submitted:
        result = portal.session.reset_password(token, password, confirm)
        if result.ok:
            flash("success", result.message)
            go(CUSTOMER_LOGIN_PATH)
        else:
            st.error(result.message)


# =============================================================================
# ADMIN
# =============================================================================

def render_admin_login():
    portal = get_portal()
    admin = portal.admin

    if admin.is_authenticated:
        section_header("shield", "Admin")
        card("success", "check_circle", f"Signed in as <strong>{admin.user.email}</strong> ({admin.user.role})")
        if admin.user.permissions:
            st.caption("Permissions: " + ", ".join(admin.user.permissions))
        if st.button("Sign out", key="admin_logout_btn"):
            admin.logout()
            go(ADMIN_LOGIN_PATH)
        return

    section_header("shield", "Admin sign in")
    if st.query_params.get("auth") == "1":
        card("warning", "clock", "Your admin session has expired. Please sign in again.")

    with st.form("admin_login_form"):
        email = st.text_input("Email", key="admin_email")
        password = st.text_input("Password", type="password", key="admin_pwd")
        submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)

    if submitted:
        result = admin.login(email.strip(), password)
        if result.ok:
            st.rerun()
        else:
            st.error(result.message or "Incorrect email or password")
