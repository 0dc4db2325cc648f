"""
REST client for the verification platform API.

Wraps a requests.Session with:
- Bearer token injection from the SessionRepository
- JSON envelope decoding (raw-text fallback when the body is not JSON)
- Failure detection for both non-2xx answers and success:false envelopes
- The 401 side effect: drop the token, send the user to login with a
  `from` parameter, and raise SessionExpired so the caller stops
"""

import json
import logging
from typing import Callable, List, Optional

import requests

from config.settings import settings
from portal.envelopes import (
    extract_error_code,
    extract_error_details,
    extract_error_message,
)
from portal.errors import HttpError, NetworkError, SessionExpired
from portal.navigation import CUSTOMER_LOGIN_PATH, Navigator, login_redirect_url
from portal.storage import CUSTOMER_TOKEN_KEY, SessionRepository

logger = logging.getLogger(__name__)


def decode_body(text: str) -> dict:
    """Decode a response body; non-JSON text is wrapped as {"raw": text}."""
    if not text:
        return {}
    try:
        data = json.loads(text)
    except ValueError:
        return {"raw": text}
    return data if isinstance(data, dict) else {"data": data}


class ApiClient:
    """
    Authenticated JSON client for one portal (customer or admin).

    `http` is anything with requests.Session's request() signature; the
    demo mode and the tests pass FastAPI's TestClient here.
    """

    def __init__(
        self,
        repository: SessionRepository,
        token_key: str = CUSTOMER_TOKEN_KEY,
        base_url: Optional[str] = None,
        http=None,
        navigator: Optional[Navigator] = None,
        login_path: str = CUSTOMER_LOGIN_PATH,
        timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.token_key = token_key
        self.base_url = (base_url if base_url is not None else settings.api_root).rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.navigator = navigator
        self.login_path = login_path
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self._unauthorized_listeners: List[Callable[[], None]] = []

    @property
    def token(self) -> Optional[str]:
        return self.repository.get(self.token_key)

    def add_unauthorized_listener(self, callback: Callable[[], None]) -> None:
        """Called after the token has been cleared because of a 401."""
        self._unauthorized_listeners.append(callback)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{'' if path.startswith('/') else '/'}{path}"

    def _handle_unauthorized(self) -> SessionExpired:
        self.repository.clear(self.token_key)
        for callback in list(self._unauthorized_listeners):
            callback()

        redirect_to = None
        if self.navigator is not None:
            redirect_to = login_redirect_url(self.navigator.current_path(), self.login_path)
            self.navigator.redirect(redirect_to)

        logger.info(f"[ApiClient] Session expired, redirecting to {redirect_to}")
        return SessionExpired(redirect_to=redirect_to)

    def request(
        self,
        path: str,
        method: str = "GET",
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> dict:
        """
        Issue a request and return the decoded body.

        Raises:
            NetworkError: the transport failed
            SessionExpired: 401 on an authenticated call
            HttpError: any other failure (non-2xx or success:false)
        """
        headers = {"Content-Type": "application/json"}
        token = self.token if auth else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.http.request(
                method,
                self._url(path),
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"[ApiClient] {method} {path} failed: {e}")
            raise NetworkError(str(e) or "Network error occurred") from e

        status = response.status_code
        data = decode_body(response.text)
        logger.debug(f"[ApiClient] {method} {path} -> {status}")

        if status == 401 and auth:
            raise self._handle_unauthorized()

        if not 200 <= status < 300 or data.get("success") is False:
            reason = getattr(response, "reason", None) or getattr(response, "reason_phrase", "")
            fallback = f"HTTP {status}: {reason}".strip().rstrip(":") if status >= 300 else "Request failed"
            message = extract_error_message(data, fallback=fallback)
            logger.warning(f"[ApiClient] {method} {path} rejected ({status}): {message}")
            raise HttpError(
                message,
                status_code=status,
                code=extract_error_code(data),
                details=extract_error_details(data),
                payload=data,
            )

        return data

    def get(self, path: str, params: Optional[dict] = None, auth: bool = True) -> dict:
        return self.request(path, "GET", params=params, auth=auth)

    def post(self, path: str, body: Optional[dict] = None, auth: bool = True) -> dict:
        return self.request(path, "POST", json=body, auth=auth)

    def put(self, path: str, body: Optional[dict] = None, auth: bool = True) -> dict:
        return self.request(path, "PUT", json=body, auth=auth)

    def delete(self, path: str, auth: bool = True) -> dict:
        return self.request(path, "DELETE", auth=auth)
