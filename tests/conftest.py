"""
Pytest configuration and shared fixtures for qastell tests.
"""

import os
import time
from collections.abc import Generator
from types import SimpleNamespace
from typing import Any

import pytest

from qastell.adapters.snapshot import Snapshot, build_snapshot, normalize_cookie
from qastell.licensing import reset_license


# Tests never pick up a developer's license key
os.environ.pop("QASTELL_LICENSE", None)


SAMPLE_HTML = """<!DOCTYPE html>
<html>
<head><title>Shop</title></head>
<body>
<a href="https://partner.example.org/" target="_blank">Partner</a>
<form action="/login" method="post">
  <input type="text" name="username">
  <input type="password" name="password">
</form>
<button onclick="buy()">Buy</button>
</body>
</html>"""

SECURE_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; object-src 'none'; frame-ancestors 'none'",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=()",
}


class FakeAPIResponse:
    """Playwright APIResponse double; records ``dispose()`` calls."""

    def __init__(self, headers: dict[str, str]):
        self._headers = headers
        self.disposed = False

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def dispose(self) -> None:
        self.disposed = True


class FakePlaywrightPage:
    """Async Playwright Page double; ``url``, ``main_frame``, ``context`` and
    ``request`` are properties as on the real Page."""

    def __init__(
        self,
        url: str = "https://shop.example.com/",
        html: str = SAMPLE_HTML,
        headers: dict[str, str] | None = None,
        cookies: list[dict[str, Any]] | None = None,
    ):
        self._url = url
        self._html = html
        self._headers = headers if headers is not None else {}
        self._cookies = cookies or []
        self.content_calls = 0
        self.responses: list[FakeAPIResponse] = []

        page = self

        class _Context:
            async def cookies(self) -> list[dict[str, Any]]:
                return page._cookies

        class _Request:
            async def get(self, url: str) -> FakeAPIResponse:
                response = FakeAPIResponse(page._headers)
                page.responses.append(response)
                return response

        self._context = _Context()
        self._request: Any = _Request()

    @property
    def url(self) -> str:
        return self._url

    @property
    def main_frame(self) -> object:
        return object()

    @property
    def context(self) -> Any:
        return self._context

    @property
    def request(self) -> Any:
        return self._request

    async def content(self) -> str:
        self.content_calls += 1
        return self._html


class FakePuppeteerPage:
    """pyppeteer Page double; ``url`` and ``mainFrame`` are properties."""

    def __init__(
        self,
        url: str = "https://shop.example.com/",
        html: str = SAMPLE_HTML,
        headers: dict[str, str] | None = None,
        cookies: list[dict[str, Any]] | None = None,
    ):
        self._url = url
        self._html = html
        self._headers = headers if headers is not None else {}
        self._cookies = cookies or []

    @property
    def url(self) -> str:
        return self._url

    @property
    def mainFrame(self) -> object:  # noqa: N802
        return SimpleNamespace(name="main")

    async def content(self) -> str:
        return self._html

    async def cookies(self) -> list[dict[str, Any]]:
        return self._cookies

    async def evaluate(self, script: str) -> dict[str, str]:
        return self._headers


class FakeWebDriver:
    """Blocking Selenium WebDriver double; has no access to response headers.

    ``latency`` makes every wire call sleep, like a driver waiting on a
    stuck browser.
    """

    def __init__(
        self,
        url: str = "https://shop.example.com/",
        html: str = SAMPLE_HTML,
        cookies: list[dict[str, Any]] | None = None,
        latency: float = 0.0,
    ):
        self._url = url
        self._html = html
        self._cookies = cookies or []
        self.latency = latency

    def _wire_call(self) -> None:
        if self.latency:
            time.sleep(self.latency)

    @property
    def current_url(self) -> str:
        self._wire_call()
        return self._url

    @property
    def page_source(self) -> str:
        self._wire_call()
        return self._html

    def execute_script(self, script: str, *args: Any) -> Any:
        self._wire_call()
        return None

    def get_cookies(self) -> list[dict[str, Any]]:
        self._wire_call()
        return self._cookies


def make_cypress_window(
    url: str = "https://shop.example.com/", html: str = SAMPLE_HTML, cookie: str = ""
) -> SimpleNamespace:
    """Window-like object as yielded by cy.window()."""
    document = SimpleNamespace(
        documentElement=SimpleNamespace(outerHTML=html),
        cookie=cookie,
    )
    return SimpleNamespace(document=document, location=SimpleNamespace(href=url))


def make_snapshot(
    html: str = "<html><body></body></html>",
    url: str = "https://shop.example.com/",
    headers: dict[str, str] | None = None,
    cookies: list[dict[str, Any]] | None = None,
) -> Snapshot:
    """Build a snapshot directly, bypassing any adapter."""
    return build_snapshot(
        url=url,
        html=html,
        headers=headers,
        cookies=[normalize_cookie(c) for c in cookies or []],
        framework="playwright",
    )


@pytest.fixture(autouse=True)
def clean_license(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Every test starts with an uninitialized, key-less license session."""
    monkeypatch.delenv("QASTELL_LICENSE", raising=False)
    reset_license()
    yield
    reset_license()


@pytest.fixture
def playwright_page() -> FakePlaywrightPage:
    return FakePlaywrightPage(headers=dict(SECURE_HEADERS))


@pytest.fixture
def puppeteer_page() -> FakePuppeteerPage:
    return FakePuppeteerPage(headers=dict(SECURE_HEADERS))


@pytest.fixture
def webdriver() -> FakeWebDriver:
    return FakeWebDriver()


@pytest.fixture
def cypress_window() -> SimpleNamespace:
    return make_cypress_window(cookie="theme=dark; session_id=abc123")


@pytest.fixture
def snapshot_factory() -> Any:
    return make_snapshot


@pytest.fixture
def page_factory() -> SimpleNamespace:
    """Constructors for each framework's host double."""
    return SimpleNamespace(
        playwright=FakePlaywrightPage,
        puppeteer=FakePuppeteerPage,
        webdriver=FakeWebDriver,
        cypress=make_cypress_window,
        secure_headers=SECURE_HEADERS,
    )
