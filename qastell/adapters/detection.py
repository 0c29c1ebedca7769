"""Framework detection and bounded snapshot capture."""
import asyncio
import logging
from typing import Any

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from qastell.adapters.base import FrameworkAdapter, FrameworkName
from qastell.adapters.cypress import CypressAdapter
from qastell.adapters.playwright import PlaywrightAdapter
from qastell.adapters.puppeteer import PuppeteerAdapter
from qastell.adapters.snapshot import Snapshot
from qastell.adapters.webdriver import WebDriverAdapter
from qastell.errors import CaptureTimeoutError, FrameworkDetectionError, QastellError

logger = logging.getLogger(__name__)

# Most specific markers first; the window-like check is the loosest.
ADAPTERS: tuple[FrameworkAdapter, ...] = (
    PlaywrightAdapter(),
    PuppeteerAdapter(),
    WebDriverAdapter(),
    CypressAdapter(),
)

_ADAPTERS_BY_NAME = {adapter.name: adapter for adapter in ADAPTERS}

TRANSIENT_CAPTURE_MARKERS = (
    "execution context was destroyed",
    "most likely because of a navigation",
    "target closed",
    "stale element reference",
)


def detect_framework(handle: Any) -> FrameworkName:
    """Inspect the structural markers of ``handle``.

    Returns:
        The matching framework, or ``FrameworkName.UNKNOWN``
    """
    for adapter in ADAPTERS:
        if adapter.matches(handle):
            return adapter.name
    return FrameworkName.UNKNOWN


def get_adapter(framework: FrameworkName | str | None, handle: Any) -> FrameworkAdapter:
    """Resolve the adapter for an explicit override or by detection."""
    if framework is not None:
        try:
            name = FrameworkName(framework) if isinstance(framework, str) else framework
        except ValueError as e:
            raise FrameworkDetectionError(
                f"Unknown framework override {framework!r}; expected one of "
                f"{', '.join(n.value for n in _ADAPTERS_BY_NAME)}"
            ) from e
        if name in _ADAPTERS_BY_NAME:
            return _ADAPTERS_BY_NAME[name]

    detected = detect_framework(handle)
    if detected is FrameworkName.UNKNOWN:
        raise FrameworkDetectionError(
            f"Could not detect a supported framework for {type(handle).__name__}; "
            "pass framework='playwright'|'puppeteer'|'webdriver'|'cypress'",
            handle_type=type(handle).__name__,
        )
    logger.debug("Detected %s for %s", detected.value, type(handle).__name__)
    return _ADAPTERS_BY_NAME[detected]


def should_retry_capture(exception: BaseException) -> bool:
    if isinstance(exception, QastellError | asyncio.TimeoutError):
        return False
    if isinstance(exception, ConnectionError):
        return True
    message = str(exception).lower()
    return any(marker in message for marker in TRANSIENT_CAPTURE_MARKERS)


async def capture_snapshot(
    adapter: FrameworkAdapter,
    handle: Any,
    timeout: float = 30.0,
    attempts: int = 3,
) -> Snapshot:
    """Capture a snapshot, retrying transient host errors within ``timeout``.

    Raises:
        CaptureTimeoutError: if capture (including retries) exceeds ``timeout``
    """

    async def _capture_with_retries() -> Snapshot:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.25, min=0.25, max=2),
            retry=retry_if_exception(should_retry_capture),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug(
                        "Retrying %s capture (attempt %d)",
                        adapter.name.value,
                        attempt.retry_state.attempt_number,
                    )
                return await adapter.capture(handle)
        raise RuntimeError("Unreachable code")

    try:
        return await asyncio.wait_for(_capture_with_retries(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise CaptureTimeoutError(adapter.name.value, timeout) from e
