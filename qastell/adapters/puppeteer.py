"""Puppeteer (pyppeteer) page adapter."""
import logging
from typing import Any

from qastell.adapters.base import FrameworkAdapter, FrameworkName, has_callable, resolve
from qastell.adapters.snapshot import Snapshot, build_snapshot, normalize_cookie

logger = logging.getLogger(__name__)

# Re-requests the document from inside the page so the response carries the
# same cookies and origin as the original navigation.
FETCH_HEADERS_JS = """
async () => {
    const response = await fetch(window.location.href, {credentials: 'include'});
    const headers = {};
    response.headers.forEach((value, key) => { headers[key] = value; });
    return headers;
}
"""


class PuppeteerAdapter(FrameworkAdapter):
    """Adapter for Puppeteer-style pages (pyppeteer ``Page``)."""

    name = FrameworkName.PUPPETEER

    def matches(self, handle: Any) -> bool:
        return (
            hasattr(handle, "mainFrame")
            and has_callable(handle, "content")
            and has_callable(handle, "cookies")
            and has_callable(handle, "evaluate")
        )

    async def capture(self, handle: Any) -> Snapshot:
        url = str(handle.url)
        html = await resolve(handle.content())
        raw_cookies = await resolve(handle.cookies())
        headers = await self._fetch_headers(handle, url)
        return build_snapshot(
            url=url,
            html=html,
            headers=headers,
            cookies=[normalize_cookie(c) for c in raw_cookies or []],
            framework=self.name.value,
        )

    async def _fetch_headers(self, handle: Any, url: str) -> dict[str, str] | None:
        if not url.startswith(("http://", "https://")):
            return None
        try:
            headers = await resolve(handle.evaluate(FETCH_HEADERS_JS))
        except Exception as e:  # noqa: BLE001
            logger.warning("Could not retrieve response headers for %s: %s", url, e)
            return None
        return dict(headers) if isinstance(headers, dict) else None
