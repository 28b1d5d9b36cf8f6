# scripts/get_twitch_bot_id.py
#
# Looks up the numeric Twitch user IDs needed for TWITCH_BOT_ID / TWITCH_OWNER_ID.
#
# Usage:
#   python scripts/get_twitch_bot_id.py <bot_login> [<owner_login> ...]
#   (falls back to TWITCH_BOT_USERNAME when no logins are given)
import asyncio
import sys

import twitchio
from cuhzbot.core.config import settings


async def main(logins: list[str]) -> int:
    client = twitchio.Client(
        client_id=settings.TWITCH_CLIENT_ID, client_secret=settings.TWITCH_CLIENT_SECRET
    )

    print("Connecting to Twitch API...")

    async with client:
        # Client Credentials Flow (App Access Token)
        await client.login()

        print(f"Fetching IDs for: {logins}...")
        users = await client.fetch_users(logins=logins)

    found = {u.name.lower(): u.id for u in users}
    print("-" * 40)
    for login in logins:
        user_id = found.get(login.lower())
        if user_id is None:
            print(f"⚠️ Could not find user '{login}'. Check spelling.")
        else:
            print(f"User: {login:<20} | ID: {user_id}")
    print("-" * 40)

    if logins and logins[0].lower() in found:
        print(f'-> Add to .env: TWITCH_BOT_ID="{found[logins[0].lower()]}"')
    return 0 if len(found) == len(logins) else 1


if __name__ == "__main__":
    targets = sys.argv[1:] or ([settings.TWITCH_BOT_USERNAME] if settings.TWITCH_BOT_USERNAME else [])
    if not targets:
        sys.exit("Pass at least one Twitch login, or set TWITCH_BOT_USERNAME.")
    sys.exit(asyncio.run(main(targets)))
