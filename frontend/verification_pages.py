"""
Business verification page.

Inactive or rejected customers get the four-step wizard; everyone else gets
the read-only status screen. The wizard state object lives in
st.session_state.wizard_state and is only ever replaced by the wizard's own
transitions.
"""

import streamlit as st

from config.schemas import BusinessInfo, ComplianceAnswers, ContactPerson, VerificationStatus
from frontend.navigation import apply_pending_redirect, go
from frontend.state import flash, get_navigator, get_portal
from frontend.ui import ICONS, card, render_step_indicator, section_header, status_badge
from portal.errors import PortalError, SessionExpired, ValidationError
from portal.navigation import CUSTOMER_DASHBOARD_PATH, CUSTOMER_VERIFICATION_PATH
from portal.verification_wizard import (
    BUSINESS_INFO_LABELS,
    COMPLIANCE_QUESTIONS,
    CONTACT_PERSON_LABELS,
    STEPS,
    BusinessInfoStep,
    ComplianceStep,
    ContactPersonStep,
    ReviewStep,
    VerificationWizard,
    WizardEntry,
    status_summary,
)

STEP_ICONS = ["building", "clipboard", "user", "check"]

# Fields rendered as multi-line inputs
TEXT_AREAS = {"business_address", "nature_of_business"}


# =============================================================================
# STEP FORMS
# =============================================================================

def _field_error(field_id: str):
    message = st.session_state.wizard_errors.get(field_id)
    if message:
        st.caption(f":red[{message}]")


def render_business_info(draft: BusinessInfo) -> BusinessInfo:
    section_header("building", "Business Information")
    st.caption("All fields are required")

    values = {}
    for field_id, label in BUSINESS_INFO_LABELS.items():
        widget = st.text_area if field_id in TEXT_AREAS else st.text_input
        values[field_id] = widget(f"{label} *", value=getattr(draft, field_id), key=f"biz_{field_id}")
        _field_error(field_id)
    return BusinessInfo(**values)


def render_compliance(draft: ComplianceAnswers) -> ComplianceAnswers:
    section_header("clipboard", "Compliance Questions")
    st.caption("Answer each question. Unanswered questions are submitted as No.")

    values = {}
    for field_id, question in COMPLIANCE_QUESTIONS.items():
        answer = st.radio(
            question,
            ["No", "Yes"],
            index=1 if getattr(draft, field_id) else 0,
            horizontal=True,
            key=f"cmp_{field_id}",
        )
        values[field_id] = answer == "Yes"

    values["countries_of_operation"] = st.text_input(
        "Countries of operation *",
        value=draft.countries_of_operation,
        placeholder="e.g. Nigeria, Ghana",
        key="cmp_countries_of_operation",
    )
    _field_error("countries_of_operation")
    return ComplianceAnswers(**values)


def render_contact_person(draft: ContactPerson) -> ContactPerson:
    section_header("user", "Contact Person")

    values = {}
    for field_id, label in CONTACT_PERSON_LABELS.items():
        values[field_id] = st.text_input(f"{label} *", value=getattr(draft, field_id), key=f"cnt_{field_id}")
        _field_error(field_id)
    values["website"] = st.text_input("Website (optional)", value=draft.website or "", key="cnt_website")
    return ContactPerson(**values)


def render_review(state: ReviewStep):
    section_header("check", "Review & Submit")
    draft = state.draft

    with st.expander("Business Information", expanded=True):
        for field_id, label in BUSINESS_INFO_LABELS.items():
            st.markdown(f"**{label}:** {getattr(draft.business_info, field_id)}")

    with st.expander("Compliance Answers"):
        for field_id, question in COMPLIANCE_QUESTIONS.items():
            st.markdown(f"- {question} **{'Yes' if getattr(draft.compliance, field_id) else 'No'}**")
        st.markdown(f"**Countries of operation:** {draft.compliance.countries_of_operation}")

    with st.expander("Contact Person"):
        for field_id, label in CONTACT_PERSON_LABELS.items():
            st.markdown(f"**{label}:** {getattr(draft.contact_person, field_id)}")
        if draft.contact_person.website:
            st.markdown(f"**Website:** {draft.contact_person.website}")

    card("info", "info", "Your CAC registration will be checked automatically before admin review.")


# =============================================================================
# WIZARD
# =============================================================================

def _set_state(state):
    st.session_state.wizard_state = state
    st.session_state.wizard_errors = {}
    st.rerun()


def render_wizard(wizard: VerificationWizard):
    state = st.session_state.wizard_state
    if state is None:
        state = wizard.start()
        st.session_state.wizard_state = state

    render_step_indicator(state.number, [step.title for step in STEPS], STEP_ICONS)

    if isinstance(state, BusinessInfoStep):
        step_input = render_business_info(state.draft.business_info)
    elif isinstance(state, ComplianceStep):
        step_input = render_compliance(state.draft.compliance)
    elif isinstance(state, ContactPersonStep):
        step_input = render_contact_person(state.draft.contact_person)
    else:
        step_input = None
        render_review(state)

    st.markdown("---")
    col1, col2, col3 = st.columns([1, 1, 1])

    with col1:
        if not isinstance(state, BusinessInfoStep):
            if st.button("Back", use_container_width=True):
                kept = wizard.record(state, step_input) if step_input is not None else state
                _set_state(wizard.back(kept))

    with col3:
        if isinstance(state, ReviewStep):
            if st.button("Submit Verification", type="primary", use_container_width=True):
                try:
                    with st.spinner("Submitting verification..."):
                        message = wizard.complete(state)
                except SessionExpired:
                    raise
                except PortalError as e:
                    st.error(e.message)
                else:
                    st.session_state.wizard_state = None
                    flash("success", message)
                    go(CUSTOMER_VERIFICATION_PATH)
        elif wizard.can_advance(state, step_input):
            if st.button("Next", type="primary", use_container_width=True):
                try:
                    with st.spinner("Saving..."):
                        next_state = wizard.advance(state, step_input)
                except ValidationError as e:
                    st.session_state.wizard_errors = e.errors
                    st.rerun()
                except SessionExpired:
                    raise
                except PortalError as e:
                    st.error(e.message)
                else:
                    _set_state(next_state)
        else:
            st.button("Next", disabled=True, use_container_width=True)
            st.caption("Complete all required fields to continue")


# =============================================================================
# STATUS SCREEN
# =============================================================================

def render_status_screen(status: VerificationStatus, record):
    title, body = status_summary(status, record.rejection_reason if record else None)
    icon = "check_circle" if status == VerificationStatus.VERIFIED else "clock"

    st.markdown(f'''<div style="text-align:center;padding:24px 0;">
        {ICONS[icon]}
        <h2 style="margin:8px 0;">{title}</h2>
        {status_badge(status)}
        <p style="color:#6c757d;margin-top:12px;">{body}</p>
    </div>''', unsafe_allow_html=True)

    if record and record.cac_verification and record.cac_verification.verified:
        cac = record.cac_verification
        card("success", "check_circle", f"CAC verified: <strong>{cac.company_name or ''}</strong> (RC {cac.rc_number or 'n/a'})")
    if record and record.submitted_at:
        st.caption(f"Submitted: {record.submitted_at}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Refresh status", use_container_width=True):
            get_portal().verification.refresh()
            st.rerun()
    with col2:
        if st.button("Back to Dashboard", use_container_width=True):
            go(CUSTOMER_DASHBOARD_PATH)


def render_verification():
    portal = get_portal()
    cache = portal.verification

    if cache.data is None:
        with st.spinner("Loading verification status..."):
            cache.refresh()
        # A 401 during the refresh leaves a queued redirect to the login page
        apply_pending_redirect(get_navigator())

    if cache.error:
        st.warning(cache.error)

    status = cache.status
    if VerificationWizard.entry_view(status) == WizardEntry.STATUS:
        st.session_state.wizard_state = None
        render_status_screen(status, cache.data)
        return

    if cache.is_rejected and st.session_state.wizard_state is None:
        _, reason = status_summary(status, cache.data.rejection_reason if cache.data else None)
        card("warning", "alert", f"Previous submission rejected: {reason}")

    render_wizard(portal.wizard)
