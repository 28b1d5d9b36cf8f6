# cuhzbot/platforms/twitch/main.py
import asyncio
import logging
import twitchio
from twitchio.ext import commands

import sentry_sdk
from cuhzbot.core.config import settings
from cuhzbot.core.logger import setup_logging
from cuhzbot.core.constants import CooldownLimits
from cuhzbot.core.models import ChannelSettings
from cuhzbot.core.clients.cuhz import CuhzApiClient
from cuhzbot.platforms.twitch.channels import RelayState, SettingsStore
from cuhzbot.platforms.twitch.cooldowns import PromoThrottle
from cuhzbot.platforms.twitch.dispatcher import CommandDispatcher
from cuhzbot.platforms.twitch.forwarder import GenerationForwarder
from cuhzbot.platforms.twitch.membership import MembershipSynchronizer
from cuhzbot.platforms.twitch.transport import EventSubChatTransport
from cuhzbot.platforms.twitch.components.commands import RelayCommands

if settings.SENTRY_DSN:
    sentry_sdk.init(dsn=settings.SENTRY_DSN)

setup_logging(webhook_url=settings.BOT_LOGS_WEBHOOK_URL, bot_name="cuhzbot")
log = logging.getLogger(__name__)


def build_state() -> RelayState:
    defaults = ChannelSettings(
        queue_enabled=False,
        cooldown_ms=settings.DEFAULT_COOLDOWN_MS,
        safe_mode=settings.DEFAULT_SAFE_MODE,
        lockdown=False,
        max_prompt_len=settings.MAX_PROMPT_LEN_DEFAULT,
    )
    return RelayState(
        settings=SettingsStore(defaults),
        promo=PromoThrottle(settings.PROMO_INTERVAL_MS),
    )


class TwitchBot(commands.Bot):
    def __init__(self):
        super().__init__(
            client_id=settings.TWITCH_CLIENT_ID,
            client_secret=settings.TWITCH_CLIENT_SECRET,
            bot_id=settings.TWITCH_BOT_ID,
            owner_id=settings.TWITCH_OWNER_ID,
            prefix="!",
        )
        self.api = CuhzApiClient()
        self.state = build_state()
        self.transport = EventSubChatTransport(self)
        self.membership = MembershipSynchronizer(
            self.api,
            self.transport,
            settings.DASHBOARD_URL,
            poll_interval=settings.POLL_INTERVAL_MS / 1000,
            join_delay=settings.JOIN_DELAY_MS / 1000,
        )
        self.forwarder = GenerationForwarder(
            self.api, self.transport, self.state, settings.DASHBOARD_URL
        )
        self.dispatcher = CommandDispatcher(
            self.state,
            self.api,
            self.transport,
            self.forwarder,
            settings.DASHBOARD_URL,
            on_verified=self.membership.request_sync,
        )
        self._sweep_task: asyncio.Task | None = None

    async def setup_hook(self) -> None:
        if settings.TWITCH_BOT_TOKEN and settings.TWITCH_BOT_REFRESH_TOKEN:
            await self.add_token(settings.TWITCH_BOT_TOKEN, settings.TWITCH_BOT_REFRESH_TOKEN)
            log.info("Seeded bot user token from settings.")

        await self.add_component(RelayCommands(self, self.dispatcher))

    async def event_ready(self) -> None:
        log.info("-" * 40)
        log.info("CuhzBot is ONLINE!")
        log.info(f"Using Bot ID:   {self.bot_id}")
        log.info(f"Bot login:      {settings.TWITCH_BOT_USERNAME or '(unset)'}")
        log.info(f"Dashboard:      {settings.DASHBOARD_URL}")
        log.info("-" * 40)
        self.membership.start()
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._run_cooldown_sweep())

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        # RelayCommands owns chat routing; there are no prefix commands to process.
        return

    async def event_oauth_authorized(
        self, payload: twitchio.authentication.UserTokenPayload
    ) -> None:
        """Called on first-time OAuth. Saves the token and resyncs so joins can succeed."""
        await self.add_token(payload.access_token, payload.refresh_token)
        log.info(f"✅ Authorization successful for User ID: {payload.user_id}! Tokens saved.")
        self.membership.request_sync()

    async def _run_cooldown_sweep(self) -> None:
        """Periodically forget cooldown entries too old to block anyone."""
        while True:
            await asyncio.sleep(CooldownLimits.SWEEP_INTERVAL_SECONDS)
            try:
                self.state.cooldowns.sweep(
                    max(CooldownLimits.SWEEP_MAX_AGE_MS, settings.DEFAULT_COOLDOWN_MS)
                )
            except Exception:
                log.error("Error in cooldown sweep loop", exc_info=True)

    async def close(self, **options) -> None:
        log.info("Shutting down...")
        self.membership.stop()
        if self._sweep_task:
            self._sweep_task.cancel()
            self._sweep_task = None
        await super().close(**options)


def main() -> None:
    bot = TwitchBot()
    bot.run()


if __name__ == "__main__":
    main()
