"""Shared fixtures.

Browser-backed tests need Chromium for Playwright:
    pip install -e .[test] && python -m playwright install chromium
They are skipped when the browser cannot be launched.
"""

import json
import socket
from pathlib import Path

import pytest

from capture.browser import launch_browser
from capture.bundle import build_bundle
from capture.errors import SetupError
from capture.server import serve_assets

TESTS_DIR = Path(__file__).parent
HTML_DIR = TESTS_DIR / "html"
STUB_LIBRARY = TESTS_DIR / "lib" / "snapshot-stub.js"


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("localhost", 0))
        return s.getsockname()[1]


class FakeServer:
    base_url = "http://localhost:3030"

    def url(self, path=""):
        return f"{self.base_url}/{path.lstrip('/')}"


class FakeCDPSession:
    """Answers Runtime.evaluate from the owning page's results, like Chromium would."""

    def __init__(self, page):
        self.page = page
        self.detached = False

    def send(self, method, params):
        expression = params["expression"]
        self.page.calls.append(("evaluate", expression))
        self.page.cdp_params.append(params)
        self.page._raise_for("evaluate")
        for key, description in self.page.thrown.items():
            if key in expression:
                if description is None:
                    return {"result": {"type": "object"}, "exceptionDetails": {"text": "Uncaught"}}
                return {
                    "result": {"type": "object"},
                    "exceptionDetails": {"text": "Uncaught", "exception": {"description": description}},
                }
        value = self.page._lookup(expression)
        return {"result": {"type": "undefined"} if value is None else {"type": "string", "value": value}}

    def detach(self):
        self.detached = True


class FakeContext:
    def __init__(self, page):
        self.page = page

    def new_cdp_session(self, page):
        session = FakeCDPSession(page)
        page.cdp_sessions.append(session)
        return session


class FakePage:
    """Records calls; ``results`` maps script substrings to evaluate() results.

    ``thrown`` maps script substrings to the exception description the page
    reports for them (None for a terminated script).
    """

    def __init__(self, results=None, errors=None, thrown=None):
        self.results = results or {}
        self.errors = errors or {}
        self.thrown = thrown or {}
        self.calls = []
        self.cdp_params = []
        self.cdp_sessions = []
        self.frames = []
        self.waits = []
        self.closed = False
        self.context = FakeContext(self)

    def _raise_for(self, method):
        if method in self.errors:
            raise self.errors[method]

    def _lookup(self, script):
        for key, value in self.results.items():
            if key in script:
                return value
        return None

    def goto(self, url, wait_until=None):
        self.calls.append(("goto", url, wait_until))
        self._raise_for("goto")

    def set_content(self, html, wait_until=None):
        self.calls.append(("set_content", html, wait_until))
        self._raise_for("set_content")

    def evaluate(self, script):
        self.calls.append(("evaluate", script))
        self._raise_for("evaluate")
        return self._lookup(script)

    def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, page, timeout=5000):
        self.page = page
        self.timeout = timeout
        self.closed_pages = []

    def new_page(self):
        return self.page

    def close_page(self, page):
        page.close()
        self.closed_pages.append(page)


def roundtrip_result(markup, namespaced=False):
    return json.dumps({"markup": markup, "namespaced": namespaced})


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture(scope="module")
def asset_server():
    with serve_assets(TESTS_DIR, port=0) as server:
        yield server


@pytest.fixture(scope="module")
def session():
    try:
        s = launch_browser(headless=True, timeout=5000)
    except SetupError as e:
        pytest.skip(f"chromium unavailable: {e}")
    try:
        yield s
    finally:
        s.close()


@pytest.fixture(scope="session")
def stub_bundle():
    return build_bundle(STUB_LIBRARY)


@pytest.fixture
def chromium():
    """Skip unless Chromium launches; closes it again so callers can start their own."""
    try:
        s = launch_browser(headless=True)
    except SetupError as e:
        pytest.skip(f"chromium unavailable: {e}")
    s.close()
