import os

from qastell.errors import ConfigurationError


def env_number(name: str, default: str, cast: type) -> int | float:
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


class AuditorConfig:
    def __init__(
        self,
        capture_timeout: float | None = None,
        capture_retries: int | None = None,
        rule_workers: int | None = None,
    ):
        self.capture_timeout = capture_timeout or env_number(
            "QASTELL_CAPTURE_TIMEOUT", "30", float
        )
        self.capture_retries = capture_retries or env_number(
            "QASTELL_CAPTURE_RETRIES", "3", int
        )
        self.rule_workers = rule_workers or env_number("QASTELL_RULE_WORKERS", "1", int)
