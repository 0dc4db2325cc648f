"""
Navigation seam between the portal services and whatever renders them.

Services only need two things from the UI: the path the user is currently
on, and a way to send them somewhere else. The Streamlit implementation
lives in frontend/navigation.py.
"""

from typing import List, Optional, Protocol
from urllib.parse import quote


CUSTOMER_LOGIN_PATH = "/customer/login"
CUSTOMER_DASHBOARD_PATH = "/customer/dashboard"
CUSTOMER_WALLET_PATH = "/customer/wallet"
CUSTOMER_WALLET_CALLBACK_PATH = "/customer/wallet/callback"
CUSTOMER_VERIFICATION_PATH = "/customer/verification"
ADMIN_LOGIN_PATH = "/admin/login"

# Characters encodeURIComponent leaves alone besides letters, digits and -_.~
_URI_COMPONENT_SAFE = "!*'()"


class Navigator(Protocol):
    def current_path(self) -> str: ...

    def redirect(self, url: str) -> None: ...


def login_redirect_url(current_path: str, login_path: str = CUSTOMER_LOGIN_PATH) -> str:
    """
    Login URL that brings the user back to `current_path` afterwards.

    Encoded the same way a browser's encodeURIComponent would, so
    /customer/usage becomes %2Fcustomer%2Fusage.
    """
    return f"{login_path}?auth=1&from={quote(current_path or '/', safe=_URI_COMPONENT_SAFE)}"


class RecordingNavigator:
    """Navigator that only records where it was sent. Used headless and in tests."""

    def __init__(self, path: str = CUSTOMER_DASHBOARD_PATH):
        self.path = path
        self.redirects: List[str] = []

    def current_path(self) -> str:
        return self.path

    def redirect(self, url: str) -> None:
        self.redirects.append(url)
        self.path = url

    @property
    def last_redirect(self) -> Optional[str]:
        return self.redirects[-1] if self.redirects else None
