# cuhzbot/core/constants.py
from enum import Enum


class Command(str, Enum):
    """Leading chat tokens the relay reacts to."""

    CUHZ = "!cuhz"
    CHAIN = "!chain"


class SubCommand(str, Enum):
    HELP = "help"
    VERIFY = "verify"
    STATUS = "status"
    QUEUE = "queue"
    NEXT = "next"
    COOLDOWN = "cooldown"
    SAFE = "safe"
    LOCKDOWN = "lockdown"


ADMIN_SUBCOMMANDS = frozenset(
    {
        SubCommand.STATUS.value,
        SubCommand.QUEUE.value,
        SubCommand.NEXT.value,
        SubCommand.COOLDOWN.value,
        SubCommand.SAFE.value,
        SubCommand.LOCKDOWN.value,
    }
)


class Badge(str, Enum):
    BROADCASTER = "broadcaster"
    MODERATOR = "moderator"


class CooldownLimits:
    MIN_SECONDS = 5
    MAX_SECONDS = 600
    # Entries older than the longest allowed window can never block anyone.
    SWEEP_MAX_AGE_MS = MAX_SECONDS * 1000
    SWEEP_INTERVAL_SECONDS = 10 * 60


class JoinConfig:
    RETRY_DELAY_SECONDS = 5.0
    RATE_LIMITED_RETRY_DELAY_SECONDS = 15.0
    RATE_LIMIT_HINT = "rate"


class ApiRoutes:
    CHANNELS = "/api/bot/channels"
    VERIFY = "/api/bot/verify"


class HttpStatus:
    TOO_MANY_REQUESTS = 429


class BotConfig:
    USER_AGENT = "CuhzBot/1.0"
    NAME = "CuhzBot"


class Messages:
    HELP = (
        "Use: !chain <prompt> | Verify: !cuhz verify <CODE> | Dashboard: {dashboard} | "
        "Mods: !cuhz status, !cuhz queue on|off, !cuhz next, !cuhz cooldown <sec>, "
        "!cuhz safe on|off, !cuhz lockdown on|off"
    )
    GENERATION_USAGE = "Usage: !chain <prompt> | Dashboard: {dashboard}"
    VERIFY_USAGE = "Usage: !cuhz verify <CODE>"
    VERIFIED = "Verified."
    VERIFY_FAILED = "Verification failed."

    STATUS = (
        "Status: queue={queue} cooldown={cooldown}s safe={safe} "
        "lockdown={lockdown} queued={queued}"
    )
    QUEUE_USAGE = "Usage: !cuhz queue on|off"
    QUEUE_SET = "Queue mode is now {state}."
    QUEUE_EMPTY = "Queue is empty."
    COOLDOWN_USAGE = "Usage: !cuhz cooldown <seconds> ({min}-{max})"
    COOLDOWN_SET = "Cooldown set to {seconds}s."
    SAFE_USAGE = "Usage: !cuhz safe on|off"
    SAFE_SET = "Safe mode is now {state}."
    LOCKDOWN_USAGE = "Usage: !cuhz lockdown on|off"
    LOCKDOWN_SET = "Lockdown is now {state}."

    RESTRICTED = "Commands are currently restricted to mods."
    PROMPT_TOO_LONG = "Prompt too long. Limit is {limit} characters."
    COOLDOWN_ACTIVE = "Cooldown active. Try again in {seconds}s."
    QUEUED = "Added to queue. Position: {position}."

    GENERATION_DONE = "Done."
    DAILY_LIMIT = "Daily limit reached."
    COMMAND_FAILED = "Command failed ({status})."

    WELCOME = "CuhzBot online. Manage settings: {dashboard}"
    PROMO = "Manage CuhzBot: {dashboard}"
