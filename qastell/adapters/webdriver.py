"""Selenium WebDriver session adapter."""
import asyncio
from typing import Any

from qastell.adapters.base import FrameworkAdapter, FrameworkName, has_callable, resolve
from qastell.adapters.snapshot import Snapshot, build_snapshot, normalize_cookie


class WebDriverAdapter(FrameworkAdapter):
    """Adapter for wire-protocol driver sessions (Selenium ``WebDriver``).

    A plain driver session has no network interception, so the snapshot is
    built without response headers. Driver calls block on the wire, so they
    run in a worker thread and the capture timeout can still fire.
    """

    name = FrameworkName.WEBDRIVER

    def matches(self, handle: Any) -> bool:
        return has_callable(handle, "execute_script") and has_callable(handle, "get_cookies")

    async def capture(self, handle: Any) -> Snapshot:
        url, html, raw_cookies = await asyncio.to_thread(self._read_page, handle)
        raw_cookies = await resolve(raw_cookies)
        return build_snapshot(
            url=str(url),
            html=html,
            headers=None,
            cookies=[normalize_cookie(c) for c in raw_cookies or []],
            framework=self.name.value,
        )

    @staticmethod
    def _read_page(handle: Any) -> tuple[Any, Any, Any]:
        return handle.current_url, handle.page_source, handle.get_cookies()
