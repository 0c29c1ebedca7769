"""Playwright page adapter."""
import logging
from typing import Any

from qastell.adapters.base import FrameworkAdapter, FrameworkName, has_callable, resolve
from qastell.adapters.snapshot import Snapshot, build_snapshot, normalize_cookie

logger = logging.getLogger(__name__)


class PlaywrightAdapter(FrameworkAdapter):
    """Adapter for Playwright ``Page`` objects (sync or async API).

    Headers come from re-requesting the current URL through the page's
    ``APIRequestContext``, which shares the browser context's cookies.
    """

    name = FrameworkName.PLAYWRIGHT

    def matches(self, handle: Any) -> bool:
        return (
            hasattr(handle, "main_frame")
            and hasattr(handle, "context")
            and has_callable(handle, "content")
        )

    async def capture(self, handle: Any) -> Snapshot:
        url = str(handle.url)
        html = await resolve(handle.content())
        raw_cookies = await resolve(handle.context.cookies())
        headers = await self._fetch_headers(handle, url)
        return build_snapshot(
            url=url,
            html=html,
            headers=headers,
            cookies=[normalize_cookie(c) for c in raw_cookies or []],
            framework=self.name.value,
        )

    async def _fetch_headers(self, handle: Any, url: str) -> dict[str, str] | None:
        request = getattr(handle, "request", None)
        if request is None or not url.startswith(("http://", "https://")):
            return None
        try:
            response = await resolve(request.get(url))
            try:
                return dict(response.headers)
            finally:
                await resolve(response.dispose())
        except Exception as e:  # noqa: BLE001
            logger.warning("Could not retrieve response headers for %s: %s", url, e)
            return None
