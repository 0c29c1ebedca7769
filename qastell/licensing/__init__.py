"""License gate.

Tier-based daily scan quota and premium report gating, consulted once per
audit.
"""
from qastell.licensing.license_gate import (
    FEATURE_TIERS,
    LICENSE_ENV_VAR,
    LicenseSession,
    LicenseState,
    LicenseTier,
    LicenseUsage,
    get_license_session,
    get_license_usage,
    get_tier_display_name,
    init_license,
    require_feature,
    reset_license,
    tier_for_key,
)

__all__ = [
    "FEATURE_TIERS",
    "LICENSE_ENV_VAR",
    "LicenseSession",
    "LicenseState",
    "LicenseTier",
    "LicenseUsage",
    "get_license_session",
    "get_license_usage",
    "get_tier_display_name",
    "init_license",
    "require_feature",
    "reset_license",
    "tier_for_key",
]
