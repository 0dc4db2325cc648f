"""
Business verification wizard.

Four steps, each its own state:

    BusinessInfoStep -> ComplianceStep -> ContactPersonStep -> ReviewStep

advance() is the only forward transition. It validates the step's input
locally and then persists it to the step's endpoint; the next state is only
returned once the backend has accepted the step, so a later step can never
be submitted before an earlier one. complete() finalises from ReviewStep.

The draft lives only inside the state objects. Nothing is persisted on the
client: a returning user gets the server's status, not the draft.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from config.schemas import (
    BusinessInfo,
    ComplianceAnswers,
    ContactPerson,
    VerificationStatus,
)
from portal.api_client import ApiClient
from portal.envelopes import extract_message
from portal.errors import ValidationError
from portal.verification_status import VerificationStatusCache

logger = logging.getLogger(__name__)


BUSINESS_INFO_PATH = "/api/v1/customer/verification/submit-business-info"
COMPLIANCE_PATH = "/api/v1/customer/verification/submit-compliance"
CONTACT_PERSON_PATH = "/api/v1/customer/verification/submit-contact-person"
COMPLETE_PATH = "/api/v1/customer/verification/complete"

# Statuses from which a new submission may be started
SUBMITTABLE_STATUSES = frozenset({VerificationStatus.INACTIVE, VerificationStatus.REJECTED})


# ============================================================================
# FIELD RULES
# ============================================================================

BUSINESS_INFO_LABELS = {
    "rc_number": "CAC Registration Number (RC Number)",
    "company_name": "Company Name",
    "business_address": "Business Address",
    "business_email": "Business Email",
    "business_phone": "Business Phone",
    "director_name": "Director/Owner Name",
    "year_of_incorporation": "Year of Incorporation",
    "nature_of_business": "Nature of Business",
}

CONTACT_PERSON_LABELS = {
    "full_name": "Full Name",
    "email": "Email Address",
    "phone": "Phone Number",
    "job_title": "Job Title/Designation",
}

COMPLIANCE_QUESTIONS = {
    "requires_license": "Do you require a license to conduct your business?",
    "aml_compliance": "Does your organization comply with anti-money laundering and anti-corruption laws?",
    "aml_sanctions": "Are there sanctions for staff who breach AML/anti-corruption laws?",
    "data_protection_policies": "Has your organization established data protection policies?",
    "data_security_measures": "Do you adopt security measures to reduce data breach risks?",
    "international_data_transfer": "Will you transfer personal data to other countries?",
    "alternate_database": "Do you intend to create an alternate database of verification reports?",
    "regulated_by_authority": "Are you/your services regulated by any authority?",
    "fraud_prevention_policies": "Do you have fraud prevention policies and procedures?",
    "nda_with_employees": "Do you have non-disclosure agreements with employees and contractors?",
    "data_breach_sanctions": "Are there sanctions for staff who breach data protection obligations?",
    "other_purpose_usage": "Will you use data for purposes other than KYC verification?",
    "regulatory_sanctions": "Have you been sanctioned for data breach in the last 2 years?",
}


def _missing(model, labels: Dict[str, str]) -> Dict[str, str]:
    errors = {}
    for field_id, label in labels.items():
        value = getattr(model, field_id)
        if not isinstance(value, str) or not value.strip():
            errors[field_id] = f"{label} is required"
    return errors


def validate_business_info(info: BusinessInfo) -> Tuple[bool, Dict[str, str]]:
    """All eight business fields are required; no format rules."""
    errors = _missing(info, BUSINESS_INFO_LABELS)
    return len(errors) == 0, errors


def validate_compliance(answers: ComplianceAnswers) -> Tuple[bool, Dict[str, str]]:
    """
    Only the countries field can be missing. Yes/no answers are booleans
    that start as No, so they are always answered.
    """
    errors = {}
    if not answers.countries_of_operation.strip():
        errors["countries_of_operation"] = "Countries of operation is required"
    return len(errors) == 0, errors


def validate_contact_person(contact: ContactPerson) -> Tuple[bool, Dict[str, str]]:
    """Four required contact fields; website is optional."""
    errors = _missing(contact, CONTACT_PERSON_LABELS)
    return len(errors) == 0, errors


# ============================================================================
# STATES
# ============================================================================

@dataclass(frozen=True)
class WizardDraft:
    business_info: BusinessInfo = field(default_factory=BusinessInfo)
    compliance: ComplianceAnswers = field(default_factory=ComplianceAnswers)
    contact_person: ContactPerson = field(default_factory=ContactPerson)


@dataclass(frozen=True)
class BusinessInfoStep:
    draft: WizardDraft = field(default_factory=WizardDraft)
    number = 1
    title = "Business Information"


@dataclass(frozen=True)
class ComplianceStep:
    draft: WizardDraft
    number = 2
    title = "Compliance Questions"


@dataclass(frozen=True)
class ContactPersonStep:
    draft: WizardDraft
    number = 3
    title = "Contact Person"


@dataclass(frozen=True)
class ReviewStep:
    draft: WizardDraft
    number = 4
    title = "Review & Submit"


WizardState = Union[BusinessInfoStep, ComplianceStep, ContactPersonStep, ReviewStep]
StepInput = Union[BusinessInfo, ComplianceAnswers, ContactPerson]

STEPS = (BusinessInfoStep, ComplianceStep, ContactPersonStep, ReviewStep)


class WizardEntry(str, Enum):
    """What the verification page shows on arrival."""
    FORM = "form"
    STATUS = "status"


# state type -> (expected input, draft attribute, validator, endpoint, next state)
_TRANSITIONS = {
    BusinessInfoStep: (BusinessInfo, "business_info", validate_business_info, BUSINESS_INFO_PATH, ComplianceStep),
    ComplianceStep: (ComplianceAnswers, "compliance", validate_compliance, COMPLIANCE_PATH, ContactPersonStep),
    ContactPersonStep: (ContactPerson, "contact_person", validate_contact_person, CONTACT_PERSON_PATH, ReviewStep),
}

_PREVIOUS = {
    ComplianceStep: BusinessInfoStep,
    ContactPersonStep: ComplianceStep,
    ReviewStep: ContactPersonStep,
}


def _transition_for(state: WizardState, step_input: StepInput):
    try:
        transition = _TRANSITIONS[type(state)]
    except KeyError:
        raise ValueError(f"{type(state).__name__} has no form to submit; use complete()") from None

    expected = transition[0]
    if not isinstance(step_input, expected):
        raise TypeError(f"{type(state).__name__} expects {expected.__name__}, got {type(step_input).__name__}")
    return transition


# ============================================================================
# WIZARD
# ============================================================================

class VerificationWizard:
    """Drives the wizard states against the backend."""

    def __init__(self, api: ApiClient, status_cache: VerificationStatusCache):
        self.api = api
        self.status_cache = status_cache

    @staticmethod
    def entry_view(status: VerificationStatus) -> WizardEntry:
        """Only inactive or rejected customers may (re)submit."""
        return WizardEntry.FORM if status in SUBMITTABLE_STATUSES else WizardEntry.STATUS

    @staticmethod
    def start() -> BusinessInfoStep:
        return BusinessInfoStep()

    @staticmethod
    def record(state: WizardState, step_input: StepInput) -> WizardState:
        """Keep unsent edits in the draft (used before going back)."""
        _, attribute, _, _, _ = _transition_for(state, step_input)
        return replace(state, draft=replace(state.draft, **{attribute: step_input}))

    @staticmethod
    def can_advance(state: WizardState, step_input: StepInput) -> bool:
        """Whether the Next control should be enabled."""
        if isinstance(state, ReviewStep):
            return False
        _, _, validator, _, _ = _transition_for(state, step_input)
        is_valid, _ = validator(step_input)
        return is_valid

    def advance(self, state: WizardState, step_input: StepInput) -> WizardState:
        """
        Validate and persist the current step, then move forward.

        Raises:
            ValidationError: a required field is empty (nothing was sent)
            HttpError / NetworkError / SessionExpired: the backend did not
                accept the step; the caller stays on `state`
        """
        _, attribute, validator, path, next_state = _transition_for(state, step_input)

        is_valid, errors = validator(step_input)
        if not is_valid:
            raise ValidationError(errors)

        self.api.post(path, step_input.to_payload())
        logger.info(f"[Verification] Step {state.number} ({state.title}) accepted")

        return next_state(draft=replace(state.draft, **{attribute: step_input}))

    @staticmethod
    def back(state: WizardState) -> WizardState:
        previous = _PREVIOUS.get(type(state))
        if previous is None:
            return state
        return previous(draft=state.draft)

    def complete(self, state: WizardState) -> str:
        """
        Finalise the submission from the review step.

        The status cache is refreshed afterwards; the status screen takes
        over from there. Returns the backend's confirmation message.
        """
        if not isinstance(state, ReviewStep):
            raise ValueError("Verification can only be completed from the review step")

        data = self.api.post(COMPLETE_PATH)
        self.status_cache.refresh()
        logger.info(f"[Verification] Submission complete, status now {self.status_cache.status.value}")
        return extract_message(data, "Verification submitted successfully!")


def status_summary(status: VerificationStatus, rejection_reason: Optional[str] = None) -> Tuple[str, str]:
    """(title, body) for the read-only status screen."""
    summaries = {
        VerificationStatus.VERIFIED: ("Already Verified", "Your business is already verified and active."),
        VerificationStatus.PENDING: (
            "Verification Submitted",
            "Your verification has been submitted and is being processed.",
        ),
        VerificationStatus.ADMIN_REVIEW: (
            "Under Review",
            "Your verification is being reviewed by our team. CAC Verified - average review time: 24-48 hours.",
        ),
        VerificationStatus.CAC_PENDING: (
            "CAC Verification in Progress",
            "We're verifying your CAC registration. This usually takes a few minutes.",
        ),
        VerificationStatus.REJECTED: (
            "Verification Rejected",
            rejection_reason or "Your verification was not approved. Please review your details and resubmit.",
        ),
        VerificationStatus.INACTIVE: (
            "Verification Required",
            "Complete your business verification to access all features.",
        ),
    }
    return summaries[status]
