"""
Test Suite: Per-Browser Session Storage

Tests:
1. Two browsers stay isolated
2. A reload restores the session from cookies, logout removes it
3. Cookie values are URL-safe; unreadable and foreign cookies are ignored
4. Writes from a worker thread wait for the next flush
"""

import base64
import json
import re
import threading

from support import BASE_URL, FakeCookieJar, FakeHttp

from portal.client import PortalClient
from portal.navigation import RecordingNavigator
from portal.storage import (
    ADMIN_USER_KEY,
    CUSTOMER_TOKEN_KEY,
    BrowserSessionRepository,
    decode_cookie_value,
    encode_cookie_value,
)

LOGIN = "/api/v1/customer/auth/login"
ME = "/api/v1/customer/me"
TOKEN_COOKIE = "bvp_customerToken"


def _browser(http, cookies=None, path="/customer/dashboard"):
    """One browser: its own cookie jar, repository and PortalClient."""
    jar = FakeCookieJar(cookies)
    repository = BrowserSessionRepository(jar.cookies)
    portal = PortalClient(repository, navigator=RecordingNavigator(path), http=http, base_url=BASE_URL)
    return portal, jar


def test_browsers_are_isolated():
    print("\nTEST 1: Browser Isolation")
    print("-" * 40)

    http = FakeHttp()
    http.add("POST", LOGIN, body={"success": True, "data": {"token": "ALICE"}})
    http.add("GET", ME, body={"data": {"customer": {"id": "c1", "email": "alice@acme.ng"}}})

    alice, alice_jar = _browser(http)
    bob, bob_jar = _browser(http)

    assert alice.session.login("alice@acme.ng", "secret123").ok
    alice.repository.flush(alice_jar)

    assert alice.session.is_authenticated
    assert not bob.session.is_authenticated
    assert bob.api.token is None
    assert TOKEN_COOKIE in alice_jar.cookies
    assert bob_jar.cookies == {}

    # Bob signing out leaves Alice alone
    bob.session.logout()
    bob.repository.flush(bob_jar)
    assert alice.session.is_authenticated
    print(f"   alice={alice.session.is_authenticated} bob={bob.session.is_authenticated}")

    print(" PASSED: Browser isolation")


def test_reload_restores_session():
    print("\nTEST 2: Reload Restores Session")
    print("-" * 40)

    http = FakeHttp()
    http.add("POST", LOGIN, body={"token": "T1"})
    http.add("GET", ME, body={"data": {"customer": {"id": "c1", "email": "ada@acme.ng"}}})

    portal, jar = _browser(http)
    portal.session.login("ada@acme.ng", "secret123")
    assert portal.repository.flush(jar) == 1

    # Same browser, new Streamlit session (reload, return from payment page)
    reloaded, _ = _browser(http, jar.cookies)
    assert reloaded.session.is_authenticated
    assert reloaded.api.token == "T1"

    reloaded.session.logout()
    reloaded.repository.flush(jar)
    assert TOKEN_COOKIE not in jar.cookies

    signed_out, _ = _browser(http, jar.cookies)
    assert not signed_out.session.is_authenticated

    # Component keys never repeat
    assert len(jar.keys) == len(set(jar.keys))

    print(" PASSED: Reload restores session")


def test_cookie_values():
    print("\nTEST 3: Cookie Values")
    print("-" * 40)

    admin = json.dumps({"id": "adm_1", "email": "ops@acme.ng", "role": "super_admin"})
    encoded = encode_cookie_value(admin)
    assert re.fullmatch(r"[A-Za-z0-9_-]+", encoded)
    assert decode_cookie_value(encoded) == admin

    repository = BrowserSessionRepository({
        "bvp_adminUser": encoded,
        TOKEN_COOKIE: base64.urlsafe_b64encode(b"\xff\xfe").decode("ascii").rstrip("="),
        "customerToken": encode_cookie_value("not-ours"),
    })

    assert json.loads(repository.get(ADMIN_USER_KEY))["role"] == "super_admin"
    assert repository.get(CUSTOMER_TOKEN_KEY) is None
    assert not repository.has_pending

    # Clearing an absent key queues nothing
    repository.clear(CUSTOMER_TOKEN_KEY)
    assert not repository.has_pending

    print(" PASSED: Cookie values")


def test_worker_thread_write_waits_for_flush():
    print("\nTEST 4: Worker Thread Writes")
    print("-" * 40)

    http = FakeHttp()
    http.add("GET", "/api/v1/customer/wallet/balance", status=401, body={"success": False})

    portal, jar = _browser(http, {TOKEN_COOKIE: encode_cookie_value("T1")}, path="/customer/wallet")
    assert portal.session.is_authenticated

    worker = threading.Thread(target=portal.refresh_balance)
    worker.start()
    worker.join()

    # Signed out in this session at once, cookie untouched until the flush
    assert not portal.session.is_authenticated
    assert portal.repository.has_pending
    assert TOKEN_COOKIE in jar.cookies

    assert portal.repository.flush(jar) == 1
    assert TOKEN_COOKIE not in jar.cookies
    assert portal.repository.flush(jar) == 0

    print(" PASSED: Worker thread writes")


if __name__ == "__main__":
    import sys

    from support import run_suite

    ok = run_suite("SESSION STORAGE", [
        test_browsers_are_isolated,
        test_reload_restores_session,
        test_cookie_values,
        test_worker_thread_write_waits_for_flush,
    ])
    sys.exit(0 if ok else 1)
