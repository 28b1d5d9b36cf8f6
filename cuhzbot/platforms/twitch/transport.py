# cuhzbot/platforms/twitch/transport.py
import logging
from dataclasses import dataclass

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

log = logging.getLogger(__name__)


class ChannelNotFoundError(LookupError):
    """The channel login does not resolve to a Twitch user."""


@dataclass
class JoinedChannel:
    user: twitchio.PartialUser
    subscription_id: str | None


def _subscription_id(response) -> str | None:
    """Pull the subscription id out of a Helix create-subscription response."""
    if not response:
        return None
    data = response.get("data") or []
    return data[0].get("id") if data else None


class EventSubChatTransport:
    """
    Joins, parts and talks in channels over EventSub.

    "Joining" a channel means subscribing to its chat messages as the bot;
    "parting" deletes that subscription.
    """

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._channels: dict[str, JoinedChannel] = {}

    async def _resolve(self, channel: str) -> twitchio.PartialUser:
        joined = self._channels.get(channel)
        if joined:
            return joined.user
        users = await self.bot.fetch_users(logins=[channel])
        if not users:
            raise ChannelNotFoundError(f"No Twitch user for channel '{channel}'.")
        return users[0]

    async def join(self, channel: str) -> None:
        """Raises on failure; twitchio.HTTPException carries the Helix status."""
        user = await self._resolve(channel)
        chat_sub = eventsub.ChatMessageSubscription(
            broadcaster_user_id=user.id,
            user_id=self.bot.bot_id,
        )
        response = await self.bot.subscribe_websocket(payload=chat_sub, as_bot=True)
        self._channels[channel] = JoinedChannel(user=user, subscription_id=_subscription_id(response))

    def _find_chat_subscription(self, joined: JoinedChannel | None, broadcaster_id: str) -> str | None:
        """The id of the live chat subscription for a broadcaster, if the client still holds one."""
        live = self.bot.websocket_subscriptions()
        if joined and joined.subscription_id in live:
            return joined.subscription_id
        for sub_id, sub in live.items():
            if (
                sub.type == eventsub.SubscriptionType.ChannelChatMessage
                and sub.condition.get("broadcaster_user_id") == broadcaster_id
                and sub.condition.get("user_id") == self.bot.bot_id
            ):
                return sub_id
        return None

    async def part(self, channel: str) -> None:
        """
        Raises when Twitch refuses the delete, so the caller keeps the channel
        and tries again on the next sync.
        """
        joined = self._channels.get(channel)
        user = await self._resolve(channel)
        sub_id = self._find_chat_subscription(joined, user.id)
        if sub_id is None:
            # Websocket subscriptions die with their session; nothing left to remove.
            log.warning("No chat subscription held for %s; treating it as already left.", channel)
            self._channels.pop(channel, None)
            return
        # Removes it from the websocket too, so a reconnect does not resubscribe.
        await self.bot.delete_websocket_subscription(sub_id)
        self._channels.pop(channel, None)

    async def say(self, channel: str, message: str) -> None:
        """Fire-and-forget: failures are logged and the message is dropped."""
        try:
            user = await self._resolve(channel)
            await user.send_message(sender=self.bot.bot_id, message=message)
        except Exception:
            log.error("Failed to send chat message to %s", channel, exc_info=True)
