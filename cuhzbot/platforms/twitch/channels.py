# cuhzbot/platforms/twitch/channels.py
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Any

from cuhzbot.core.models import ChannelSettings, QueuedCommand
from cuhzbot.platforms.twitch.cooldowns import CooldownTracker, PromoThrottle
from cuhzbot.platforms.twitch.utils import normalize_channel

log = logging.getLogger(__name__)


class SettingsStore:
    """In-memory per-channel settings, created with defaults on first access."""

    def __init__(self, defaults: ChannelSettings | None = None):
        self._defaults = defaults or ChannelSettings()
        self._settings: dict[str, ChannelSettings] = {}

    def get(self, channel: str) -> ChannelSettings:
        ch = normalize_channel(channel)
        current = self._settings.get(ch)
        if current is None:
            current = self._defaults
            self._settings[ch] = current
        return current

    def set(self, channel: str, **patch: Any) -> ChannelSettings:
        """
        Merge patch over the channel's current settings and return the new snapshot.
        Callers range-check values before calling.
        """
        ch = normalize_channel(channel)
        updated = replace(self.get(ch), **patch)
        self._settings[ch] = updated
        log.info("Settings for '%s' updated: %s", ch, patch)
        return updated

    def __len__(self) -> int:
        return len(self._settings)


class ChannelQueues:
    """One FIFO of pending generation commands per channel. Unbounded; drained only by !cuhz next."""

    def __init__(self):
        self._queues: dict[str, deque[QueuedCommand]] = {}

    def _queue(self, channel: str) -> deque[QueuedCommand]:
        return self._queues.setdefault(normalize_channel(channel), deque())

    def enqueue(self, channel: str, item: QueuedCommand) -> int:
        """Append and return the new length, which is the item's 1-based position."""
        q = self._queue(channel)
        q.append(item)
        return len(q)

    def dequeue_one(self, channel: str) -> QueuedCommand | None:
        q = self._queue(channel)
        return q.popleft() if q else None

    def length(self, channel: str) -> int:
        return len(self._queues.get(normalize_channel(channel), ()))


@dataclass
class RelayState:
    """Everything the dispatcher and forwarder share. One per bot instance."""

    settings: SettingsStore = field(default_factory=SettingsStore)
    cooldowns: CooldownTracker = field(default_factory=CooldownTracker)
    queues: ChannelQueues = field(default_factory=ChannelQueues)
    promo: PromoThrottle = field(default_factory=PromoThrottle)
