# cuhzbot/platforms/twitch/components/commands.py
import logging

import twitchio
from twitchio.ext import commands

from cuhzbot.platforms.twitch.dispatcher import CommandDispatcher
from cuhzbot.platforms.twitch.components.utils import invoker_from_payload

log = logging.getLogger(__name__)


class RelayCommands(commands.Component):
    """Feeds every chat line from joined channels into the command dispatcher."""

    def __init__(self, bot: commands.Bot, dispatcher: CommandDispatcher):
        self.bot = bot
        self.dispatcher = dispatcher

    @commands.Component.listener()
    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        if payload.chatter.id == self.bot.bot_id:
            return

        channel = payload.broadcaster.name
        log.debug(f"[{channel}] {payload.chatter.name}: {payload.text}")
        try:
            await self.dispatcher.handle(channel, invoker_from_payload(payload), payload.text)
        except Exception:
            log.error("Unhandled error dispatching chat line in %s", channel, exc_info=True)
