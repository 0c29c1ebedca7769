"""License tiers, daily scan quota and premium-feature gating.

The session is the one piece of mutable state shared across ``audit()`` calls;
every read-modify-write happens under a lock so concurrent audits cannot
overrun the daily quota.
"""
import logging
import os
import re
import threading
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from qastell.errors import LicenseError

logger = logging.getLogger(__name__)

LICENSE_ENV_VAR = "QASTELL_LICENSE"

_KEY_PATTERN = re.compile(r"^QASTELL-(ENT|CORP)-[A-Z0-9]{8,}$")


class LicenseTier(Enum):
    """License levels, lowest first."""

    FREE = "free"
    ENTERPRISE = "enterprise"
    CORPORATE = "corporate"

    @property
    def rank(self) -> int:
        return {"free": 0, "enterprise": 1, "corporate": 2}[self.value]

    @property
    def daily_limit(self) -> int:
        return {"free": 10, "enterprise": 1000, "corporate": 10000}[self.value]


class LicenseState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


# Report features and the lowest tier that unlocks them
FEATURE_TIERS: dict[str, LicenseTier] = {
    "html": LicenseTier.FREE,
    "summary_html": LicenseTier.FREE,
    "json": LicenseTier.ENTERPRISE,
    "sarif": LicenseTier.CORPORATE,
}

TIER_DISPLAY_NAMES: dict[LicenseTier, str] = {
    LicenseTier.FREE: "Free",
    LicenseTier.ENTERPRISE: "Enterprise",
    LicenseTier.CORPORATE: "Corporate",
}


@dataclass(frozen=True)
class LicenseUsage:
    """Point-in-time view of a license session."""

    tier: LicenseTier
    remaining: int
    daily_limit: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tier": self.tier.value,
            "remaining": self.remaining,
            "dailyLimit": self.daily_limit,
        }


def tier_for_key(key: str | None) -> LicenseTier:
    """Map a license key to its tier; anything unrecognized is the free tier."""
    if not key:
        return LicenseTier.FREE
    match = _KEY_PATTERN.match(key.strip())
    if not match:
        logger.warning("Invalid license key format, falling back to Free tier")
        return LicenseTier.FREE
    return LicenseTier.ENTERPRISE if match.group(1) == "ENT" else LicenseTier.CORPORATE


class LicenseSession:
    """State machine: uninitialized -> active(tier, remaining) -> exhausted."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = LicenseState.UNINITIALIZED
        self._tier = LicenseTier.FREE
        self._remaining = LicenseTier.FREE.daily_limit
        self._day: date | None = None

    def _today(self) -> date:
        return datetime.now(UTC).date()

    def activate(self, key: str | None = None) -> "LicenseSession":
        """Bind a key (or the environment's) and start a fresh daily quota."""
        with self._lock:
            tier = self._activate_locked(key)
        logger.info("License initialized: %s tier, %d scans/day", tier.value, tier.daily_limit)
        return self

    def _activate_locked(self, key: str | None) -> LicenseTier:
        if key is None:
            key = os.getenv(LICENSE_ENV_VAR)
        tier = tier_for_key(key)
        self._tier = tier
        self._remaining = tier.daily_limit
        self._state = LicenseState.ACTIVE
        self._day = self._today()
        return tier

    def reset(self) -> None:
        with self._lock:
            self._state = LicenseState.UNINITIALIZED
            self._tier = LicenseTier.FREE
            self._remaining = LicenseTier.FREE.daily_limit
            self._day = None

    @property
    def state(self) -> LicenseState:
        return self._state

    @property
    def tier(self) -> LicenseTier:
        return self._tier

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def daily_limit(self) -> int:
        return self._tier.daily_limit

    def is_exhausted(self) -> bool:
        with self._lock:
            if self._state is LicenseState.EXHAUSTED and self._day != self._today():
                return False
            return self._state is LicenseState.EXHAUSTED

    def try_consume(self) -> bool:
        """Atomically take one scan from the quota.

        Returns:
            True if a scan was granted, False if the quota is exhausted
        """
        with self._lock:
            if self._state is LicenseState.UNINITIALIZED:
                self._activate_locked(None)
            today = self._today()
            if self._day != today:
                self._day = today
                self._remaining = self._tier.daily_limit
                self._state = LicenseState.ACTIVE
            if self._remaining <= 0:
                self._state = LicenseState.EXHAUSTED
                return False
            self._remaining -= 1
            if self._remaining == 0:
                self._state = LicenseState.EXHAUSTED
                logger.warning(
                    "Daily scan quota of %d reached for %s tier; further audits are skipped",
                    self._tier.daily_limit,
                    self._tier.value,
                )
            return True

    def usage(self) -> LicenseUsage:
        with self._lock:
            return LicenseUsage(tier=self._tier, remaining=self._remaining, daily_limit=self._tier.daily_limit)


def require_feature(tier: LicenseTier, feature: str) -> None:
    """Raise LicenseError unless ``tier`` unlocks ``feature``."""
    required = FEATURE_TIERS[feature]
    if tier.rank < required.rank:
        raise LicenseError(
            feature=feature.upper(),
            tier=get_tier_display_name(tier),
            required=get_tier_display_name(required),
        )


def get_tier_display_name(tier: LicenseTier | str) -> str:
    if isinstance(tier, str):
        tier = LicenseTier(tier)
    return TIER_DISPLAY_NAMES[tier]


# Process-wide session
_session: LicenseSession | None = None
_session_lock = threading.Lock()


def get_license_session() -> LicenseSession:
    """Get the process-wide LicenseSession instance."""
    global _session  # noqa: PLW0603
    with _session_lock:
        if _session is None:
            _session = LicenseSession()
        return _session


def init_license(key: str | None = None) -> LicenseSession:
    """Activate the process-wide license.

    Reads ``QASTELL_LICENSE`` when ``key`` is None. A missing or invalid key
    yields the free tier rather than an error.
    """
    return get_license_session().activate(key)


def get_license_usage() -> LicenseUsage:
    return get_license_session().usage()


def reset_license() -> None:
    """Return the process-wide session to the uninitialized state."""
    get_license_session().reset()
