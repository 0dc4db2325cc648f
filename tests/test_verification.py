"""
Test Suite: Verification Status Cache and Wizard

Tests:
1. Status cache refresh and derived flags
2. Status cache failure handling
3. Entry guard (form vs status screen)
4. Empty required field: no call, Next disabled
5. advance() walks the four steps in order
6. A rejected step keeps the wizard where it was
7. back() keeps the draft without calls
8. complete() only from review, refreshes status
9. Status screen summaries
"""

from support import make_portal

from config.schemas import BusinessInfo, ComplianceAnswers, ContactPerson, VerificationStatus
from portal.errors import HttpError, ValidationError
from portal.verification_wizard import (
    BusinessInfoStep,
    ComplianceStep,
    ContactPersonStep,
    ReviewStep,
    VerificationWizard,
    WizardEntry,
    status_summary,
    validate_business_info,
    validate_compliance,
    validate_contact_person,
)

STATUS = "/api/v1/customer/verification/status"
BUSINESS = "/api/v1/customer/verification/submit-business-info"
COMPLIANCE = "/api/v1/customer/verification/submit-compliance"
CONTACT = "/api/v1/customer/verification/submit-contact-person"
COMPLETE = "/api/v1/customer/verification/complete"

OK = {"success": True, "data": {"message": "saved"}}


def _business(**overrides) -> BusinessInfo:
    values = dict(
        rc_number="RC1234567",
        company_name="Acme Ltd",
        business_address="12 Marina, Lagos",
        business_email="info@acme.ng",
        business_phone="08012345678",
        director_name="Ada Obi",
        year_of_incorporation="2015",
        nature_of_business="Fintech",
    )
    values.update(overrides)
    return BusinessInfo(**values)


def _contact(**overrides) -> ContactPerson:
    values = dict(full_name="Chidi Eze", email="chidi@acme.ng", phone="08098765432", job_title="CTO")
    values.update(overrides)
    return ContactPerson(**values)


def test_status_cache_refresh():
    print("\nTEST 1: Status Cache Refresh")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("GET", STATUS, body={"success": True, "data": {
        "status": "admin_review",
        "submittedAt": "2026-01-05T10:00:00Z",
        "cacVerification": {"verified": True, "companyName": "Acme Ltd", "rcNumber": "RC1234567"},
    }})

    cache = portal.verification
    cache.refresh()

    assert cache.status == VerificationStatus.ADMIN_REVIEW
    assert cache.is_pending and not cache.is_verified and not cache.needs_verification
    assert cache.data.cac_verification.company_name == "Acme Ltd"
    assert cache.error is None
    print(f"   Status: {cache.status.value}")

    # Missing status means not started
    http.routes.clear()
    http.add("GET", STATUS, body={"success": True, "data": {}})
    cache.refresh()
    assert cache.needs_verification

    print(" PASSED: Status cache refresh")


def test_status_cache_failures():
    print("\nTEST 2: Status Cache Failures")
    print("-" * 40)

    # No token: nothing fetched, nothing cached
    portal, http, _ = make_portal()
    portal.verification.refresh()
    assert portal.verification.data is None and http.calls == []

    # Server error: error recorded, status falls back to inactive
    portal, http, _ = make_portal(token="T1")
    http.add("GET", STATUS, status=500, body={"success": False, "error": {"message": "db down"}})
    portal.verification.refresh()
    assert portal.verification.error == "db down"
    assert portal.verification.status == VerificationStatus.INACTIVE
    print(f"   Error recorded: {portal.verification.error}")

    # 401: cache cleared, never raised
    portal, http, navigator = make_portal(token="T1", path="/customer/verification")
    http.add("GET", STATUS, status=401, body={})
    portal.verification.refresh()
    assert portal.verification.data is None
    assert navigator.last_redirect == "/customer/login?auth=1&from=%2Fcustomer%2Fverification"

    print(" PASSED: Status cache failures")


def test_entry_guard():
    print("\nTEST 3: Entry Guard")
    print("-" * 40)

    expected = {
        VerificationStatus.INACTIVE: WizardEntry.FORM,
        VerificationStatus.REJECTED: WizardEntry.FORM,
        VerificationStatus.PENDING: WizardEntry.STATUS,
        VerificationStatus.CAC_PENDING: WizardEntry.STATUS,
        VerificationStatus.ADMIN_REVIEW: WizardEntry.STATUS,
        VerificationStatus.VERIFIED: WizardEntry.STATUS,
    }
    for status, entry in expected.items():
        assert VerificationWizard.entry_view(status) == entry
        print(f"   {status.value:>12} -> {entry.value}")

    print(" PASSED: Entry guard")


def test_empty_field_blocks_advance():
    """A single blank field: Next disabled and nothing sent."""
    print("\nTEST 4: Empty Field Blocks Advance")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    wizard = portal.wizard
    state = wizard.start()

    for field_id in BusinessInfo.model_fields:
        info = _business(**{field_id: "   "})
        assert not wizard.can_advance(state, info)
        try:
            wizard.advance(state, info)
            assert False, "expected ValidationError"
        except ValidationError as e:
            assert field_id in e.errors
    assert http.calls == []
    print(f"   {len(BusinessInfo.model_fields)} fields checked, 0 requests")

    is_valid, errors = validate_compliance(ComplianceAnswers())
    assert not is_valid and list(errors) == ["countries_of_operation"]

    is_valid, errors = validate_contact_person(_contact(job_title=""))
    assert not is_valid and errors == {"job_title": "Job Title/Designation is required"}

    # Website is optional
    assert validate_contact_person(_contact(website=""))[0]
    assert validate_business_info(_business())[0]

    print(" PASSED: Empty field blocks advance")


def test_advance_through_steps():
    print("\nTEST 5: Advance Through Steps")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    for path in (BUSINESS, COMPLIANCE, CONTACT):
        http.add("POST", path, body=OK)
    wizard = portal.wizard

    state = wizard.start()
    assert isinstance(state, BusinessInfoStep)

    state = wizard.advance(state, _business())
    assert isinstance(state, ComplianceStep)

    answers = ComplianceAnswers(aml_compliance=True, countries_of_operation="Nigeria")
    state = wizard.advance(state, answers)
    assert isinstance(state, ContactPersonStep)

    state = wizard.advance(state, _contact(website="https://acme.ng"))
    assert isinstance(state, ReviewStep)
    assert not wizard.can_advance(state, None)

    assert http.paths("POST") == [BUSINESS, COMPLIANCE, CONTACT]
    assert http.calls[0]["json"]["rcNumber"] == "RC1234567"
    assert http.calls[1]["json"]["amlCompliance"] is True
    assert http.calls[1]["json"]["requiresLicense"] is False
    assert http.calls[1]["json"]["countriesOfOperation"] == "Nigeria"
    assert state.draft.business_info.company_name == "Acme Ltd"
    assert state.draft.contact_person.website == "https://acme.ng"
    print(f"   Posted: {http.paths('POST')}")

    # Input type must match the step
    try:
        wizard.advance(wizard.start(), _contact())
        assert False, "expected TypeError"
    except TypeError:
        pass

    print(" PASSED: Advance through steps")


def test_rejected_step_stays():
    print("\nTEST 6: Rejected Step Stays")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("POST", BUSINESS, status=400, body={
        "success": False, "error": {"code": "VALIDATION_ERROR", "message": "RC number not found"},
    })
    wizard = portal.wizard
    state = wizard.start()

    try:
        wizard.advance(state, _business())
        assert False, "expected HttpError"
    except HttpError as e:
        assert e.code == "VALIDATION_ERROR"
        assert e.message == "RC number not found"

    # The caller still holds the original state; nothing moved
    assert isinstance(state, BusinessInfoStep)
    assert state.draft.business_info == BusinessInfo()

    print(" PASSED: Rejected step stays")


def test_back_keeps_draft():
    print("\nTEST 7: Back Keeps Draft")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("POST", BUSINESS, body=OK)
    wizard = portal.wizard

    state = wizard.advance(wizard.start(), _business())
    calls = len(http.calls)

    edited = ComplianceAnswers(countries_of_operation="Ghana")
    previous = wizard.back(wizard.record(state, edited))

    assert isinstance(previous, BusinessInfoStep)
    assert previous.draft.business_info.rc_number == "RC1234567"
    assert previous.draft.compliance.countries_of_operation == "Ghana"
    assert len(http.calls) == calls
    assert wizard.back(previous) is previous

    print(" PASSED: Back keeps draft")


def test_complete():
    print("\nTEST 8: Complete")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    for path in (BUSINESS, COMPLIANCE, CONTACT):
        http.add("POST", path, body=OK)
    http.add("POST", COMPLETE, body={"success": True, "data": {"message": "Submitted for review"}})
    http.add("GET", STATUS, body={"success": True, "data": {"status": "admin_review"}})
    wizard = portal.wizard

    try:
        wizard.complete(wizard.start())
        assert False, "expected ValueError"
    except ValueError:
        pass

    state = wizard.advance(wizard.start(), _business())
    state = wizard.advance(state, ComplianceAnswers(countries_of_operation="Nigeria"))
    state = wizard.advance(state, _contact())
    message = wizard.complete(state)

    assert message == "Submitted for review"
    assert portal.verification.status == VerificationStatus.ADMIN_REVIEW
    assert VerificationWizard.entry_view(portal.verification.status) == WizardEntry.STATUS
    assert http.paths()[-2:] == [COMPLETE, STATUS]
    print(f"   {message}")

    print(" PASSED: Complete")


def test_status_summaries():
    print("\nTEST 9: Status Summaries")
    print("-" * 40)

    for status in VerificationStatus:
        title, body = status_summary(status)
        assert title and body

    assert status_summary(VerificationStatus.REJECTED, "RC mismatch")[1] == "RC mismatch"
    assert status_summary(VerificationStatus.ADMIN_REVIEW)[0] == "Under Review"

    print(" PASSED: Status summaries")
