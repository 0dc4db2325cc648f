"""
Session stores for the customer and admin portals.

A session is nothing more than a bearer token in the SessionRepository plus
a cached profile. `is_authenticated` is derived from the token, never stored
separately, so the two can not disagree.
"""

import json
import logging
from typing import Callable, List, Optional

from config.schemas import AdminUser, AuthResult, CustomerProfile
from portal.api_client import ApiClient
from portal.envelopes import (
    extract_admin_login,
    extract_error_message,
    extract_message,
    extract_profile,
    extract_token,
    unwrap_data,
)
from portal.errors import HttpError, PortalError, SessionExpired
from portal.storage import ADMIN_TOKEN_KEY, ADMIN_USER_KEY

logger = logging.getLogger(__name__)


LOGIN_PATH = "/api/v1/customer/auth/login"
SIGNUP_PATH = "/api/v1/customer/auth/signup"
FORGOT_PASSWORD_PATH = "/api/v1/customer/auth/forgot-password"
RESET_PASSWORD_PATH = "/api/v1/customer/auth/reset-password"
ME_PATH = "/api/v1/customer/me"
ADMIN_LOGIN_PATH = "/api/v1/admin/auth/login"

MIN_PASSWORD_LENGTH = 8


def _failure_message(error: PortalError, action: str) -> str:
    """Message for a failed auth call, preferring what the backend said."""
    if isinstance(error, HttpError):
        return extract_error_message(
            error.payload,
            fallback=f"{action} failed (HTTP {error.status_code})",
        )
    return error.message or f"{action} failed"


# ============================================================================
# CUSTOMER SESSION
# ============================================================================

class CustomerSession:
    """
    Customer auth state.

    Listeners registered with subscribe() are told whenever
    is_authenticated flips, including when a 401 anywhere in the portal
    ends the session.
    """

    def __init__(self, api: ApiClient):
        self.api = api
        self.profile: Optional[CustomerProfile] = None
        self.loading = False
        self._listeners: List[Callable[[bool], None]] = []
        api.add_unauthorized_listener(self._on_session_expired)

    # -- state ---------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self.api.token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def subscribe(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def _notify(self, is_authenticated: bool) -> None:
        for callback in list(self._listeners):
            callback(is_authenticated)

    def _on_session_expired(self) -> None:
        self.profile = None
        self._notify(False)

    # -- actions -------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Sign in. Failures come back as AuthResult(ok=False), never raised."""
        self.loading = True
        try:
            data = self.api.post(LOGIN_PATH, {"email": email, "password": password}, auth=False)
        except PortalError as e:
            logger.info(f"[CustomerAuth] Login rejected: {e.code}")
            return AuthResult(ok=False, message=_failure_message(e, "Login"))
        finally:
            self.loading = False

        token = extract_token(data)
        if not token:
            message = extract_error_message(data, fallback="Login succeeded but no token returned")
            return AuthResult(ok=False, message=message)

        was_authenticated = self.is_authenticated
        self.api.repository.set(self.api.token_key, token)
        self.load_me()
        if not was_authenticated:
            self._notify(True)
        logger.info("[CustomerAuth] Login succeeded")
        return AuthResult(ok=True)

    def logout(self) -> None:
        """Clear token and profile. Safe to call repeatedly."""
        was_authenticated = self.is_authenticated
        self.api.repository.clear(self.api.token_key)
        self.profile = None
        if was_authenticated:
            self._notify(False)

    def load_me(self) -> None:
        """Best-effort profile refresh; keeps the stale profile on failure."""
        if not self.is_authenticated:
            return
        try:
            data = self.api.get(ME_PATH)
        except SessionExpired:
            return
        except PortalError as e:
            logger.error(f"[CustomerAuth] loadMe error: {e}")
            return

        profile = extract_profile(data)
        if profile is not None:
            self.profile = profile
            logger.info(f"[CustomerAuth] loadMe: verificationStatus={profile.verification_status}")

    def signup(
        self,
        email: str,
        password: str,
        company: Optional[str] = None,
        plan: Optional[str] = None,
        full_name: Optional[str] = None,
        nin_bvn: Optional[str] = None,
        phone_number: Optional[str] = None,
        id_document: Optional[str] = None,
    ) -> AuthResult:
        """Create an account. Does not sign in; the user logs in afterwards."""
        payload = {"email": email, "password": password}
        optional = {
            "company": company,
            "plan": plan,
            "full_name": full_name,
            "nin_bvn": nin_bvn,
            "phone_number": phone_number,
            "id_document": id_document,
        }
        payload.update({k: v for k, v in optional.items() if v})

        self.loading = True
        try:
            self.api.post(SIGNUP_PATH, payload, auth=False)
        except PortalError as e:
            return AuthResult(ok=False, message=_failure_message(e, "Signup"))
        finally:
            self.loading = False

        return AuthResult(ok=True, message="Account created successfully. Please log in.")

    def update_profile(self, company: Optional[str] = None, phone_number: Optional[str] = None) -> AuthResult:
        if not self.is_authenticated:
            return AuthResult(ok=False, message="Not authenticated")

        payload = {}
        if company is not None:
            payload["company"] = company
        if phone_number is not None:
            payload["phoneNumber"] = phone_number

        self.loading = True
        try:
            self.api.put(ME_PATH, payload)
        except PortalError as e:
            return AuthResult(ok=False, message=_failure_message(e, "Update"))
        finally:
            self.loading = False

        self.load_me()
        return AuthResult(ok=True)

    def request_password_reset(self, email: str) -> AuthResult:
        """
        Ask for a reset link. When the backend runs without email delivery it
        returns the link directly; the message then carries it.
        """
        if not email or not email.strip():
            return AuthResult(ok=False, message="Email is required")

        try:
            data = self.api.post(FORGOT_PASSWORD_PATH, {"email": email.strip()}, auth=False)
        except PortalError as e:
            return AuthResult(ok=False, message=_failure_message(e, "Password reset request"))

        reset_link = unwrap_data(data).get("resetLink")
        if reset_link:
            return AuthResult(ok=True, message=reset_link)
        return AuthResult(ok=True, message="If this email exists in our system, a password reset link will be sent.")

    def reset_password(self, token: Optional[str], password: str, confirm: str) -> AuthResult:
        if not token:
            return AuthResult(ok=False, message="Reset token is missing or invalid")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return AuthResult(ok=False, message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if password != confirm:
            return AuthResult(ok=False, message="Passwords do not match")

        try:
            data = self.api.post(RESET_PASSWORD_PATH, {"token": token, "password": password}, auth=False)
        except PortalError as e:
            return AuthResult(ok=False, message=_failure_message(e, "Password reset"))

        return AuthResult(ok=True, message=extract_message(data, "Password updated successfully. You can now log in."))


# ============================================================================
# ADMIN SESSION
# ============================================================================

class AdminSession:
    """
    Admin auth state. Uses its own token key so customer and admin sessions
    never share credentials.
    """

    def __init__(self, api: ApiClient):
        self.api = api
        self.user: Optional[AdminUser] = None
        self._restore()
        api.add_unauthorized_listener(self._on_session_expired)

    def _restore(self) -> None:
        token = self.api.repository.get(ADMIN_TOKEN_KEY)
        stored_user = self.api.repository.get(ADMIN_USER_KEY)
        if not token or not stored_user:
            return
        try:
            self.user = AdminUser.model_validate(json.loads(stored_user))
        except ValueError:
            logger.warning("[AdminAuth] Stored admin profile is corrupt, clearing session")
            self.api.repository.clear(ADMIN_TOKEN_KEY)
            self.api.repository.clear(ADMIN_USER_KEY)
            self.user = None

    def _on_session_expired(self) -> None:
        self.api.repository.clear(ADMIN_USER_KEY)
        self.user = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.api.repository.get(ADMIN_TOKEN_KEY)) and self.user is not None

    def login(self, email: str, password: str) -> AuthResult:
        try:
            data = self.api.post(ADMIN_LOGIN_PATH, {"email": email, "password": password}, auth=False)
        except PortalError as e:
            logger.error(f"[AdminAuth] Login error: {e}")
            return AuthResult(ok=False, message=_failure_message(e, "Login"))

        parsed = extract_admin_login(data)
        if parsed is None:
            return AuthResult(ok=False, message="Login succeeded but no token returned")

        token, user = parsed
        self.api.repository.set(ADMIN_TOKEN_KEY, token)
        self.api.repository.set(ADMIN_USER_KEY, json.dumps(user.model_dump(by_alias=True)))
        self.user = user
        return AuthResult(ok=True)

    def logout(self) -> None:
        self.api.repository.clear(ADMIN_TOKEN_KEY)
        self.api.repository.clear(ADMIN_USER_KEY)
        self.user = None
