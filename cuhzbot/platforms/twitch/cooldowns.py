# cuhzbot/platforms/twitch/cooldowns.py
import logging
import math

from cuhzbot.core.models import CooldownResult
from cuhzbot.platforms.twitch.utils import normalize_channel, now_ms

log = logging.getLogger(__name__)


class CooldownTracker:
    """
    Tracks the last accepted generation per (channel, user).

    The window is per user per channel; there is no global cooldown.
    A rejected attempt leaves the anchor untouched, so spamming does not
    extend the wait.
    """

    def __init__(self):
        self._last: dict[tuple[str, str], float] = {}  # (channel, user_id) -> ms

    def check_and_consume(
        self,
        channel: str,
        user_id: str,
        window_ms: int,
        now: float | None = None,
    ) -> CooldownResult:
        """Accept and re-anchor the window, or report how long is left. Not idempotent."""
        now = now_ms() if now is None else now
        key = (normalize_channel(channel), str(user_id))
        last = self._last.get(key)

        if last is not None:
            elapsed = now - last
            if elapsed < window_ms:
                return CooldownResult(allowed=False, remaining_ms=math.ceil(window_ms - elapsed))

        self._last[key] = now
        return CooldownResult(allowed=True)

    def sweep(self, max_age_ms: int, now: float | None = None) -> int:
        """Drop entries older than max_age_ms. Returns how many were removed."""
        now = now_ms() if now is None else now
        stale = [key for key, last in self._last.items() if now - last >= max_age_ms]
        for key in stale:
            del self._last[key]
        if stale:
            log.debug("Swept %d stale cooldown entries.", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._last)


class PromoThrottle:
    """Rate-limits unsolicited dashboard links per channel, independent of command cooldowns."""

    def __init__(self, interval_ms: int = 30 * 60 * 1000):
        self.interval_ms = interval_ms
        self._last: dict[str, float] = {}

    def should_announce(self, channel: str, now: float | None = None) -> bool:
        """True (and re-anchored) if the interval has passed since the last promo here."""
        now = now_ms() if now is None else now
        ch = normalize_channel(channel)
        last = self._last.get(ch)
        if last is not None and now - last < self.interval_ms:
            return False
        self._last[ch] = now
        return True
