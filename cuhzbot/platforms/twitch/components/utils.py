# cuhzbot/platforms/twitch/components/utils.py
import twitchio

from cuhzbot.core.constants import Badge
from cuhzbot.core.models import ChatInvoker


def invoker_from_payload(payload: twitchio.ChatMessage) -> ChatInvoker:
    """Reduce a chat payload to the identity and privileges the relay checks."""
    chatter = payload.chatter
    badges = {badge.set_id for badge in payload.badges or ()}
    if chatter.broadcaster:
        badges.add(Badge.BROADCASTER.value)
    return ChatInvoker(
        id=str(chatter.id),
        name=chatter.name or chatter.display_name or "",
        badges=frozenset(badges),
        moderator=bool(chatter.moderator),
    )
