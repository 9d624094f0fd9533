"""Conversions from the compose model to container engine settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from .model import HealthCheckConfig, MappingWithEquals


@dataclass
class HealthConfig:
    """Health check settings as the container engine expects them."""

    test: list[str] = field(default_factory=list)
    interval: timedelta = timedelta(0)
    timeout: timedelta = timedelta(0)
    start_period: timedelta = timedelta(0)
    retries: int = 0


def to_moby_env(environment: MappingWithEquals) -> list[str]:
    """Render an environment mapping as ``KEY=VALUE`` or bare ``KEY`` entries."""
    return [key if value is None else f"{key}={value}" for key, value in environment.items()]


def to_moby_health_check(check: Optional[HealthCheckConfig]) -> Optional[HealthConfig]:
    """Convert a service health check; a disabled check tests ``NONE``."""
    if check is None:
        return None
    return HealthConfig(
        test=["NONE"] if check.disable else list(check.test),
        interval=check.interval or timedelta(0),
        timeout=check.timeout or timedelta(0),
        start_period=check.start_period or timedelta(0),
        retries=check.retries or 0,
    )


def to_seconds(duration: Optional[timedelta]) -> Optional[int]:
    """Whole seconds in ``duration``, truncated toward zero."""
    if duration is None:
        return None
    return int(duration.total_seconds())