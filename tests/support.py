"""
Shared helpers for the test suite: a scripted HTTP session and portal
builders over it or over the sandbox backend.
"""

import json
import os
import sys
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import settings
from portal.api_client import ApiClient
from portal.client import PortalClient
from portal.navigation import RecordingNavigator
from portal.storage import InMemorySessionRepository

BASE_URL = "http://api.test"
SANDBOX_URL = "http://testserver"

DEMO_EMAIL = settings.SANDBOX_DEMO_EMAIL
DEMO_PASSWORD = settings.SANDBOX_DEMO_PASSWORD


class FakeResponse:
    """The parts of requests.Response the ApiClient reads."""

    def __init__(self, status_code: int = 200, body=None, reason: str = "OK"):
        self.status_code = status_code
        self.reason = reason
        if body is None:
            self.text = ""
        elif isinstance(body, str):
            self.text = body
        else:
            self.text = json.dumps(body)


class FakeHttp:
    """
    Scripted stand-in for requests.Session.

    Responses are queued per (METHOD, path); the last queued response for a
    route is repeated once the queue runs dry. Queue an exception instance
    to make the transport fail.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List] = {}
        self.calls: List[dict] = []

    def add(self, method: str, path: str, status: int = 200, body=None, reason: str = "OK"):
        self.routes.setdefault((method.upper(), path), []).append(FakeResponse(status, body, reason))
        return self

    def fail(self, method: str, path: str, error: Exception):
        self.routes.setdefault((method.upper(), path), []).append(error)
        return self

    def request(self, method, url, json=None, params=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append({
            "method": method,
            "path": path,
            "json": json,
            "params": params,
            "headers": dict(headers or {}),
        })
        queue = self.routes.get((method.upper(), path))
        if not queue:
            return FakeResponse(404, {"success": False, "error": {"code": "NOT_FOUND", "message": "No route"}}, "Not Found")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c["path"] for c in self.calls if method is None or c["method"] == method]


class FakeCookieJar:
    """
    Stand-in for the browser cookie component: applies set/delete to a
    dict of cookies and records the component keys it was given.
    """

    def __init__(self, cookies: Optional[Dict[str, str]] = None):
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.keys: List[str] = []

    def set(self, cookie, val, expires_at=None, key=None):
        self.keys.append(key)
        self.cookies[cookie] = val

    def delete(self, cookie, key=None):
        self.keys.append(key)
        self.cookies.pop(cookie, None)


def make_api(token: Optional[str] = None, path: str = "/customer/dashboard"):
    """ApiClient over FakeHttp with a recording navigator."""
    repository = InMemorySessionRepository({"customerToken": token} if token else None)
    http = FakeHttp()
    navigator = RecordingNavigator(path)
    api = ApiClient(repository, base_url=BASE_URL, http=http, navigator=navigator)
    return api, http, navigator


def make_portal(token: Optional[str] = None, path: str = "/customer/dashboard"):
    """PortalClient over FakeHttp."""
    repository = InMemorySessionRepository({"customerToken": token} if token else None)
    http = FakeHttp()
    navigator = RecordingNavigator(path)
    portal = PortalClient(repository, navigator=navigator, http=http, base_url=BASE_URL)
    return portal, http, navigator


def make_sandbox_portal(pending_polls: int = 1, path: str = "/customer/dashboard", navigator=None):
    """PortalClient wired to a fresh in-process sandbox backend."""
    from fastapi.testclient import TestClient
    from portal.sandbox import create_sandbox_app

    app = create_sandbox_app(pending_polls=pending_polls)
    navigator = navigator or RecordingNavigator(path)
    portal = PortalClient(
        InMemorySessionRepository(),
        navigator=navigator,
        http=TestClient(app),
        base_url=SANDBOX_URL,
    )
    return portal, app.state.sandbox, navigator


def run_suite(title: str, tests) -> bool:
    """Run test functions outside pytest (python tests/test_x.py)."""
    print("=" * 60)
    print(f"{title} - TEST SUITE")
    print("=" * 60)

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            failed += 1
            print(f" FAILED: {test.__name__}")
            print(f"   Error: {e}")
            import traceback
            traceback.print_exc()

    print("\n" + "=" * 60)
    if failed == 0:
        print(f"All {title} tests passed!")
    else:
        print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0
