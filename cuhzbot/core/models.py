# cuhzbot/core/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from cuhzbot.core.constants import Badge


@dataclass(frozen=True)
class ChannelSettings:
    """Per-channel relay configuration. Snapshots are immutable; the store swaps them."""

    queue_enabled: bool = False
    cooldown_ms: int = 30_000
    safe_mode: bool = True
    lockdown: bool = False
    max_prompt_len: int = 220

    def to_flags(self) -> dict[str, Any]:
        """Wire form sent to the command webhook."""
        return {
            "queueEnabled": self.queue_enabled,
            "cooldownMs": self.cooldown_ms,
            "safeMode": self.safe_mode,
            "lockdown": self.lockdown,
            "maxPromptLen": self.max_prompt_len,
        }


@dataclass(frozen=True)
class ChatInvoker:
    """Who sent a chat line, reduced to what admission control needs."""

    id: str
    name: str
    badges: frozenset[str] = frozenset()
    moderator: bool = False

    @property
    def is_broadcaster(self) -> bool:
        return Badge.BROADCASTER.value in self.badges

    @property
    def is_privileged(self) -> bool:
        return (
            self.is_broadcaster
            or self.moderator
            or Badge.MODERATOR.value in self.badges
        )


@dataclass(frozen=True)
class QueuedCommand:
    channel: str
    invoker: ChatInvoker
    text: str
    enqueued_at: float


@dataclass(frozen=True)
class CooldownResult:
    allowed: bool
    remaining_ms: int = 0


@dataclass
class ApiResult:
    """Outcome of a dashboard/webhook call. status is None when no response arrived."""

    ok: bool
    status: int | None
    data: Any = field(default_factory=dict)

    def first_of(self, *names: str) -> Any:
        """First truthy value among the named body fields, or None."""
        if not isinstance(self.data, dict):
            return None
        for name in names:
            value = self.data.get(name)
            if value:
                return value
        return None


class DirectoryShape(str, Enum):
    LOGINS = "logins"
    ROWS = "rows"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class DirectoryListing:
    shape: DirectoryShape
    channels: frozenset[str] = frozenset()

    @property
    def recognized(self) -> bool:
        return self.shape is not DirectoryShape.UNRECOGNIZED


class ChatTransport(Protocol):
    """The chat connection the relay drives. Implemented by TwitchBot."""

    async def join(self, channel: str) -> None: ...

    async def part(self, channel: str) -> None: ...

    async def say(self, channel: str, message: str) -> None: ...
