"""Adapter capability contract.

Presents one snapshot-capture surface over Cypress windows, Playwright and
Puppeteer pages, and WebDriver sessions.
"""
from qastell.adapters.base import FrameworkAdapter, FrameworkName
from qastell.adapters.detection import (
    ADAPTERS,
    capture_snapshot,
    detect_framework,
    get_adapter,
)
from qastell.adapters.snapshot import (
    CookieInfo,
    ElementInfo,
    FormInfo,
    ScriptInfo,
    Snapshot,
    build_snapshot,
)

__all__ = [
    "ADAPTERS",
    "CookieInfo",
    "ElementInfo",
    "FormInfo",
    "FrameworkAdapter",
    "FrameworkName",
    "ScriptInfo",
    "Snapshot",
    "build_snapshot",
    "capture_snapshot",
    "detect_framework",
    "get_adapter",
]
