# cuhzbot/platforms/twitch/dispatcher.py
import logging
import math
from collections.abc import Callable

from cuhzbot.core.clients.cuhz import CuhzApiClient
from cuhzbot.core.constants import ADMIN_SUBCOMMANDS, Command, CooldownLimits, Messages, SubCommand
from cuhzbot.core.models import ChatInvoker, ChatTransport, QueuedCommand
from cuhzbot.platforms.twitch.channels import RelayState
from cuhzbot.platforms.twitch.forwarder import GenerationForwarder
from cuhzbot.platforms.twitch.utils import clamp_int, normalize_channel, now_ms, on_off, parse_on_off

log = logging.getLogger(__name__)

# Settings field toggled by each on|off admin command, with its usage and confirmation.
_TOGGLES = {
    SubCommand.QUEUE.value: ("queue_enabled", Messages.QUEUE_USAGE, Messages.QUEUE_SET),
    SubCommand.SAFE.value: ("safe_mode", Messages.SAFE_USAGE, Messages.SAFE_SET),
    SubCommand.LOCKDOWN.value: ("lockdown", Messages.LOCKDOWN_USAGE, Messages.LOCKDOWN_SET),
}


class CommandDispatcher:
    """
    Classifies each chat line and routes it. First match wins:

      !cuhz help                    usage summary
      !cuhz verify <code>           channel verification (anyone)
      !cuhz status|queue|next|cooldown|safe|lockdown ...
                                    mod-only; silent for everyone else
      !chain <prompt> / !cuhz <prompt>
                                    generation, through lockdown, length,
                                    cooldown and queue admission
      anything else                 ignored
    """

    def __init__(
        self,
        state: RelayState,
        api: CuhzApiClient,
        transport: ChatTransport,
        forwarder: GenerationForwarder,
        dashboard_url: str,
        on_verified: Callable[[], None] | None = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.state = state
        self.api = api
        self.transport = transport
        self.forwarder = forwarder
        self.dashboard_url = dashboard_url
        self.on_verified = on_verified
        self.clock = clock

    async def _reply(self, channel: str, invoker: ChatInvoker, message: str) -> None:
        await self.transport.say(channel, f"@{invoker.name} {message}")

    async def handle(self, channel: str, invoker: ChatInvoker, text: str) -> None:
        ch = normalize_channel(channel)
        text = str(text or "").strip()
        tokens = text.split()
        if not tokens:
            return

        command = tokens[0].lower()
        sub = tokens[1].lower() if len(tokens) > 1 else ""

        if command == Command.CUHZ.value:
            if sub == SubCommand.HELP.value and len(tokens) == 2:
                await self._reply(ch, invoker, Messages.HELP.format(dashboard=self.dashboard_url))
                return
            if sub == SubCommand.VERIFY.value:
                await self._verify(ch, invoker, tokens)
                return
            if sub in ADMIN_SUBCOMMANDS:
                if not invoker.is_privileged:
                    return
                await self._admin(ch, invoker, sub, tokens)
                return

        if command in (Command.CUHZ.value, Command.CHAIN.value) and len(tokens) > 1:
            await self._generate(ch, invoker, text, " ".join(tokens[1:]))

    # ------------------------------------------------------------------
    # !cuhz verify
    # ------------------------------------------------------------------

    async def _verify(self, channel: str, invoker: ChatInvoker, tokens: list[str]) -> None:
        if len(tokens) < 3:
            await self._reply(channel, invoker, Messages.VERIFY_USAGE)
            return

        result = await self.api.verify_channel(channel, tokens[2])
        if result.ok and result.first_of("success"):
            await self._reply(channel, invoker, result.first_of("message") or Messages.VERIFIED)
            log.info("Channel %s verified by %s.", channel, invoker.name)
            if self.on_verified:
                self.on_verified()
            return

        await self._reply(
            channel, invoker, result.first_of("message", "error") or Messages.VERIFY_FAILED
        )

    # ------------------------------------------------------------------
    # Mod commands
    # ------------------------------------------------------------------

    async def _admin(self, channel: str, invoker: ChatInvoker, sub: str, tokens: list[str]) -> None:
        arg = tokens[2] if len(tokens) > 2 else None

        if sub == SubCommand.STATUS.value:
            s = self.state.settings.get(channel)
            await self.transport.say(
                channel,
                Messages.STATUS.format(
                    queue=on_off(s.queue_enabled),
                    cooldown=round(s.cooldown_ms / 1000),
                    safe=on_off(s.safe_mode),
                    lockdown=on_off(s.lockdown),
                    queued=self.state.queues.length(channel),
                ),
            )
            return

        if sub == SubCommand.NEXT.value:
            if not await self.run_next(channel):
                await self.transport.say(channel, Messages.QUEUE_EMPTY)
            return

        if sub == SubCommand.COOLDOWN.value:
            seconds = clamp_int(arg, CooldownLimits.MIN_SECONDS, CooldownLimits.MAX_SECONDS)
            if seconds is None:
                await self._reply(
                    channel,
                    invoker,
                    Messages.COOLDOWN_USAGE.format(
                        min=CooldownLimits.MIN_SECONDS, max=CooldownLimits.MAX_SECONDS
                    ),
                )
                return
            self.state.settings.set(channel, cooldown_ms=seconds * 1000)
            await self.transport.say(channel, Messages.COOLDOWN_SET.format(seconds=seconds))
            return

        field_name, usage, confirmation = _TOGGLES[sub]
        enabled = parse_on_off(arg)
        if enabled is None:
            await self._reply(channel, invoker, usage)
            return
        updated = self.state.settings.set(channel, **{field_name: enabled})
        await self.transport.say(channel, confirmation.format(state=on_off(getattr(updated, field_name))))

    async def run_next(self, channel: str) -> bool:
        """Execute the oldest queued command. False if the queue was empty."""
        item = self.state.queues.dequeue_one(channel)
        if item is None:
            return False
        await self.forwarder.forward(item.channel, item.invoker, item.text)
        return True

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _generate(self, channel: str, invoker: ChatInvoker, text: str, prompt: str) -> None:
        s = self.state.settings.get(channel)

        if s.lockdown and not invoker.is_privileged:
            await self._reply(channel, invoker, Messages.RESTRICTED)
            return

        prompt = prompt.strip()
        if not prompt or prompt.lower() == SubCommand.HELP.value:
            await self._reply(
                channel, invoker, Messages.GENERATION_USAGE.format(dashboard=self.dashboard_url)
            )
            return

        if len(prompt) > s.max_prompt_len:
            await self._reply(channel, invoker, Messages.PROMPT_TOO_LONG.format(limit=s.max_prompt_len))
            return

        now = self.clock()
        cooldown = self.state.cooldowns.check_and_consume(channel, invoker.id, s.cooldown_ms, now)
        if not cooldown.allowed:
            seconds = math.ceil(cooldown.remaining_ms / 1000)
            await self._reply(channel, invoker, Messages.COOLDOWN_ACTIVE.format(seconds=seconds))
            return

        if s.queue_enabled and not invoker.is_privileged:
            position = self.state.queues.enqueue(
                channel, QueuedCommand(channel=channel, invoker=invoker, text=text, enqueued_at=now)
            )
            await self._reply(channel, invoker, Messages.QUEUED.format(position=position))
            return

        await self.forwarder.forward(channel, invoker, text)
