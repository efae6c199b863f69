"""Validator configuration (env/ConfigMap driven)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ValidatorConfig:
    # Deadline for every remote call (SSAR, role reads, discovery).
    request_timeout_seconds: float = 10.0
    # Fan-out width for escalation checks.
    max_concurrent_checks: int = 8
    # Check every resourceName instead of the first-name proxy.
    check_all_resource_names: bool = False
    preferred_version: str = ""
    use_discovery: bool = True


def load_validator_config() -> ValidatorConfig:
    """
    Load validator settings from env.

    Recommended vars:
    - BINDGUARD_REQUEST_TIMEOUT_SECONDS=10
    - BINDGUARD_MAX_CONCURRENT_CHECKS=8
    - BINDGUARD_CHECK_ALL_RESOURCE_NAMES=0
    - BINDGUARD_PREFERRED_VERSION=v1
    - BINDGUARD_USE_DISCOVERY=1
    """
    return ValidatorConfig(
        request_timeout_seconds=max(1.0, min(_env_float("BINDGUARD_REQUEST_TIMEOUT_SECONDS", 10.0), 300.0)),
        max_concurrent_checks=max(1, min(_env_int("BINDGUARD_MAX_CONCURRENT_CHECKS", 8), 64)),
        check_all_resource_names=_env_bool("BINDGUARD_CHECK_ALL_RESOURCE_NAMES", False),
        preferred_version=(os.getenv("BINDGUARD_PREFERRED_VERSION", "") or "").strip(),
        use_discovery=_env_bool("BINDGUARD_USE_DISCOVERY", True),
    )


@lru_cache(maxsize=1)
def get_validator_config() -> ValidatorConfig:
    """Process-wide cached config; tests call `load_validator_config()` directly."""
    return load_validator_config()
