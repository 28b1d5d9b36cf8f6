# cuhzbot/platforms/twitch/utils.py
import math
import time
from typing import Any

from cuhzbot.core.constants import HttpStatus, JoinConfig


def normalize_channel(channel: Any) -> str:
    """Lowercase, trimmed, without the leading '#'. Every per-channel map is keyed by this."""
    name = str(channel or "").strip().lower()
    if name.startswith("#"):
        name = name[1:]
    return name


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


def clamp_int(value: Any, minimum: int, maximum: int) -> int | None:
    """Floor value into [minimum, maximum], or None if it is not a finite number."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return min(maximum, max(minimum, math.floor(number)))


def parse_on_off(value: Any) -> bool | None:
    """'on' -> True, 'off' -> False, anything else -> None."""
    word = str(value or "").lower()
    if word == "on":
        return True
    if word == "off":
        return False
    return None


def on_off(flag: bool) -> str:
    return "on" if flag else "off"


def is_rate_limited(error: BaseException) -> bool:
    """
    True when a join failure should back off longer.
    Prefers an HTTP status on the exception; falls back to the error text.
    """
    status = getattr(error, "status", None)
    if isinstance(status, int):
        return status == HttpStatus.TOO_MANY_REQUESTS
    return JoinConfig.RATE_LIMIT_HINT in str(error).lower()
