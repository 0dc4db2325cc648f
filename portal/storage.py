"""
Session repositories - durable storage for portal tokens.

The portal never reads tokens from a global. Every component that needs the
customer or admin token receives a SessionRepository and asks it by key.

- BrowserSessionRepository: one per browser, backed by cookies (the UI)
- FileSessionRepository: one per process (headless scripts)
- InMemorySessionRepository: tests
"""

import base64
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union

logger = logging.getLogger(__name__)


# Storage keys, scoped per portal
CUSTOMER_TOKEN_KEY = "customerToken"
ADMIN_TOKEN_KEY = "adminToken"
ADMIN_USER_KEY = "adminUser"


class SessionRepository(Protocol):
    """get/set/clear over string values."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class InMemorySessionRepository:
    """Process-local repository. Used by tests and by the sandbox demo."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def clear(self, key: str) -> None:
        self._values.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)


class FileSessionRepository:
    """
    JSON-file repository that survives restarts.

    Every client built over the same path shares one session, so this is
    for headless use only; the Streamlit UI keeps tokens per browser.
    Writes go to a temp file in the same directory and replace the target,
    so a reader never sees a half-written file. Two processes sharing the
    file follow last-write-wins.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[SessionStorage] Ignoring unreadable {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def clear(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


# ============================================================================
# BROWSER COOKIES
# ============================================================================

COOKIE_PREFIX = "bvp_"


def encode_cookie_value(value: str) -> str:
    """URL-safe base64 without padding, so no cookie or URI escaping applies."""
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cookie_value(raw: str) -> Optional[str]:
    try:
        padded = raw + "=" * (-len(raw) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (ValueError, UnicodeError):
        return None


class CookieWriter(Protocol):
    """The write half of a browser cookie component."""

    def set(self, cookie: str, val: str, expires_at: datetime, key: str) -> Any: ...

    def delete(self, cookie: str, key: str) -> Any: ...


class BrowserSessionRepository:
    """
    Per-browser repository backed by cookies.

    Reads come from the cookies the browser sent when the session opened,
    plus the writes made since. Writes are queued and reach the browser on
    flush(), which must run on the Streamlit script thread; a write made from
    a worker thread waits for the next flush. Tabs of one browser share the
    cookies and follow last-write-wins.
    """

    def __init__(self, cookies: Mapping[str, str], prefix: str = COOKIE_PREFIX, max_age_days: int = 7):
        self.prefix = prefix
        self.max_age = timedelta(days=max_age_days)
        self._values: Dict[str, str] = {}
        self._pending: Dict[str, Optional[str]] = {}  # key -> value, None = delete
        self._flushes = 0
        self._lock = threading.Lock()

        for name, raw in cookies.items():
            if not name.startswith(prefix):
                continue
            value = decode_cookie_value(raw)
            if value is None:
                logger.warning(f"[SessionStorage] Ignoring unreadable cookie {name}")
                continue
            self._values[name[len(prefix):]] = value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            self._pending[key] = value

    def clear(self, key: str) -> None:
        with self._lock:
            if key not in self._values and key not in self._pending:
                return
            self._values.pop(key, None)
            self._pending[key] = None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def flush(self, writer: CookieWriter) -> int:
        """Push queued writes to the browser. Returns how many were sent."""
        with self._lock:
            pending, self._pending = self._pending, {}
            self._flushes += 1
            run = self._flushes

        expires_at = datetime.now() + self.max_age
        for key, value in pending.items():
            cookie = self.prefix + key
            # Component keys must be unique within a script run
            if value is None:
                writer.delete(cookie=cookie, key=f"{cookie}_delete_{run}")
            else:
                writer.set(cookie=cookie, val=encode_cookie_value(value), expires_at=expires_at, key=f"{cookie}_set_{run}")

        if pending:
            logger.info(f"[SessionStorage] Flushed {len(pending)} cookie write(s)")
        return len(pending)
