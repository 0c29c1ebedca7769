"""Adapter capability contract shared by every host framework."""
import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from qastell.adapters.snapshot import Snapshot

logger = logging.getLogger(__name__)


class FrameworkName(Enum):
    """Host frameworks an auditor can be bound to."""

    CYPRESS = "cypress"
    PLAYWRIGHT = "playwright"
    PUPPETEER = "puppeteer"
    WEBDRIVER = "webdriver"
    UNKNOWN = "unknown"


async def resolve(value: Any) -> Any:
    """Await ``value`` when the host returned an awaitable.

    Playwright and Selenium expose synchronous APIs, Playwright async and
    pyppeteer return coroutines; adapters call through this helper so one
    implementation serves both.
    """
    if inspect.isawaitable(value):
        return await value
    return value


def has_callable(handle: Any, name: str) -> bool:
    return callable(getattr(handle, name, None))


class FrameworkAdapter(ABC):
    """Uniform snapshot extraction over one family of host handles."""

    name: FrameworkName

    @abstractmethod
    def matches(self, handle: Any) -> bool:
        """Return True if ``handle`` carries this framework's structural markers."""

    @abstractmethod
    async def capture(self, handle: Any) -> Snapshot:
        """Capture one immutable Snapshot of the page behind ``handle``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
