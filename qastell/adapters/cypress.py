"""Cypress window adapter."""
from typing import Any

from qastell.adapters.base import FrameworkAdapter, FrameworkName
from qastell.adapters.snapshot import Snapshot, build_snapshot, parse_document_cookie


class CypressAdapter(FrameworkAdapter):
    """Adapter for window-like handles (the object yielded by ``cy.window()``).

    The window exposes the live document but no network layer, so response
    headers are never available and cookie flags other than HttpOnly are
    unknown.
    """

    name = FrameworkName.CYPRESS

    def matches(self, handle: Any) -> bool:
        if getattr(handle, "Cypress", None) is not None:
            return True
        return hasattr(handle, "document") and hasattr(handle, "location")

    async def capture(self, handle: Any) -> Snapshot:
        document = handle.document
        html = document.documentElement.outerHTML
        cookies = parse_document_cookie(getattr(document, "cookie", "") or "")
        return build_snapshot(
            url=str(handle.location.href),
            html=html,
            headers=None,
            cookies=cookies,
            framework=self.name.value,
        )
