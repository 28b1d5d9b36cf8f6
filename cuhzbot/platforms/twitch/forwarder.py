# cuhzbot/platforms/twitch/forwarder.py
import logging

from cuhzbot.core.clients.cuhz import CuhzApiClient
from cuhzbot.core.constants import HttpStatus, Messages
from cuhzbot.core.models import ApiResult, ChatInvoker, ChatTransport
from cuhzbot.platforms.twitch.channels import RelayState
from cuhzbot.platforms.twitch.utils import normalize_channel

log = logging.getLogger(__name__)


class GenerationForwarder:
    """Sends a generation command to the webhook and relays the outcome to chat."""

    def __init__(
        self,
        api: CuhzApiClient,
        transport: ChatTransport,
        state: RelayState,
        dashboard_url: str,
    ):
        self.api = api
        self.transport = transport
        self.state = state
        self.dashboard_url = dashboard_url

    async def forward(self, channel: str, invoker: ChatInvoker, text: str) -> None:
        ch = normalize_channel(channel)
        flags = self.state.settings.get(ch)
        result = await self.api.call_command_webhook(ch, invoker, text, flags)
        await self.transport.say(ch, f"@{invoker.name} {self.render_reply(result)}")

        if self._handled(result):
            await self.maybe_announce(ch)

    @staticmethod
    def _handled(result: ApiResult) -> bool:
        return result.ok and bool(result.first_of("handled"))

    def render_reply(self, result: ApiResult) -> str:
        """The text after '@user' for a webhook outcome."""
        if self._handled(result):
            reply = result.first_of("reply") or Messages.GENERATION_DONE
            image_url = result.first_of("imageUrl")
            return f"{reply} {image_url}" if image_url else reply

        if result.status == HttpStatus.TOO_MANY_REQUESTS:
            return Messages.DAILY_LIMIT

        status = result.status if result.status is not None else "no response"
        return result.first_of("error", "message") or Messages.COMMAND_FAILED.format(status=status)

    async def maybe_announce(self, channel: str) -> None:
        if not self.state.promo.should_announce(channel):
            return
        await self.transport.say(channel, Messages.PROMO.format(dashboard=self.dashboard_url))
