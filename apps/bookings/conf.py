"""Booking engine settings.

Values come from ``settings.BOOKING_ENGINE`` and fall back to the defaults
below. They are read on every access so ``override_settings`` works in
tests.
"""

from __future__ import annotations

from datetime import time
from typing import Any

from django.conf import settings  # type: ignore
from django.core.exceptions import ImproperlyConfigured  # type: ignore

DEFAULTS: dict[str, Any] = {
    "TIMEZONE": "Asia/Manila",
    "NO_SHOW_GRACE_MINUTES": 15,
    "NO_SHOW_LOOKBACK_DAYS": 1,
    "NO_SHOW_SWEEP_INTERVAL_SECONDS": 60,
    "AUTO_CONFIRM": False,
    "MAX_PENDING_PER_PLAYER": 5,
    "CANCELLATION_CUTOFF_MINUTES": 0,
    "DEFAULT_OPENING_TIME": "08:00",
    "DEFAULT_CLOSING_TIME": "18:00",
    "SLOT_MINUTES": 60,
}


def get_setting(name: str) -> Any:
    if name not in DEFAULTS:
        raise ImproperlyConfigured(f"Unknown booking engine setting: {name}")
    overrides = getattr(settings, "BOOKING_ENGINE", None) or {}
    return overrides.get(name, DEFAULTS[name])


def get_time_setting(name: str) -> time:
    """Parse an ``HH:MM`` setting into a ``time``."""

    value = get_setting(name)
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as exc:
        raise ImproperlyConfigured(f"{name} must be HH:MM, got {value!r}") from exc
