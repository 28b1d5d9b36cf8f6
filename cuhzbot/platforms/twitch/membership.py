# cuhzbot/platforms/twitch/membership.py
import asyncio
import logging
from collections import deque
from typing import Any

from cuhzbot.core.clients.cuhz import CuhzApiClient
from cuhzbot.core.constants import JoinConfig, Messages
from cuhzbot.core.models import ChatTransport, DirectoryListing, DirectoryShape
from cuhzbot.platforms.twitch.utils import is_rate_limited, normalize_channel

log = logging.getLogger(__name__)

_LOGINS_KEY = "channelLogins"
_ROWS_KEY = "channels"
_ROW_LOGIN_FIELD = "channel_login"


def _normalized_set(names) -> frozenset[str]:
    return frozenset(ch for ch in (normalize_channel(n) for n in names) if ch)


def decode_directory(data: Any) -> DirectoryListing:
    """
    Decode a directory response into the set of wanted channels.

    Accepted shapes:
      {"channelLogins": ["a", "b"]} or ["a", "b"]                 -> LOGINS
      {"channels": [{"channel_login": "a"}, ...]} or [{...}, ...]  -> ROWS
    Anything else is UNRECOGNIZED with an empty channel set.
    """
    if isinstance(data, dict):
        if isinstance(data.get(_LOGINS_KEY), list):
            data = data[_LOGINS_KEY]
        elif isinstance(data.get(_ROWS_KEY), list):
            data = data[_ROWS_KEY]
        else:
            return DirectoryListing(DirectoryShape.UNRECOGNIZED)

    if not isinstance(data, list):
        return DirectoryListing(DirectoryShape.UNRECOGNIZED)

    if all(isinstance(item, str) for item in data):
        return DirectoryListing(DirectoryShape.LOGINS, _normalized_set(data))

    if all(isinstance(item, dict) for item in data):
        return DirectoryListing(
            DirectoryShape.ROWS,
            _normalized_set(row.get(_ROW_LOGIN_FIELD) for row in data),
        )

    return DirectoryListing(DirectoryShape.UNRECOGNIZED)


class MembershipSynchronizer:
    """
    Keeps the joined channel set equal to the directory's wanted set.

    A poll loop reconciles wanted vs joined: missing channels go on the join
    queue, unwanted channels are parted at once. A separate drain loop pops
    one queued join per tick so joins never burst, and failed joins are
    re-queued after a delay (longer when the failure looks like a rate limit).
    Eventually consistent; a transient failure heals on the next poll or retry.
    """

    def __init__(
        self,
        api: CuhzApiClient,
        transport: ChatTransport,
        dashboard_url: str,
        poll_interval: float,
        join_delay: float,
        retry_delay: float = JoinConfig.RETRY_DELAY_SECONDS,
        rate_limited_retry_delay: float = JoinConfig.RATE_LIMITED_RETRY_DELAY_SECONDS,
    ):
        self.api = api
        self.transport = transport
        self.dashboard_url = dashboard_url
        self.poll_interval = poll_interval
        self.join_delay = join_delay
        self.retry_delay = retry_delay
        self.rate_limited_retry_delay = rate_limited_retry_delay

        self.joined: set[str] = set()
        self.join_queue: deque[str] = deque()
        self.announced: set[str] = set()  # welcome sent this process
        self.wanted: frozenset[str] | None = None  # None until the first good poll

        self._joining: str | None = None
        self._sync_lock = asyncio.Lock()
        self._loops: list[asyncio.Task] = []
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._loops:
            return
        self._loops = [
            asyncio.create_task(self._run_poll_loop()),
            asyncio.create_task(self._run_drain_loop()),
        ]
        log.info(
            "Membership sync started (poll every %.1fs, join every %.2fs).",
            self.poll_interval,
            self.join_delay,
        )

    def stop(self) -> None:
        for task in [*self._loops, *self._background]:
            task.cancel()
        self._loops = []
        self._background.clear()

    def request_sync(self) -> None:
        """Run a reconciliation now, out of band with the poll loop."""
        self._spawn(self.sync())

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_poll_loop(self) -> None:
        while True:
            try:
                await self.sync()
            except Exception:
                log.error("Error in channel sync loop", exc_info=True)
            await asyncio.sleep(self.poll_interval)

    async def _run_drain_loop(self) -> None:
        while True:
            await asyncio.sleep(self.join_delay)
            try:
                await self.drain_once()
            except Exception:
                log.error("Error in join queue loop", exc_info=True)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def queue_join(self, channel: str) -> bool:
        """Queue a join unless the channel is joined, queued or mid-join."""
        ch = normalize_channel(channel)
        if not ch or ch in self.joined or ch in self.join_queue or ch == self._joining:
            return False
        self.join_queue.append(ch)
        return True

    async def sync(self) -> None:
        async with self._sync_lock:
            result = await self.api.fetch_channels()
            if not result.ok:
                log.error("Channel sync failed: HTTP %s %s", result.status, result.data)
                return

            listing = decode_directory(result.data)
            if not listing.recognized:
                log.error("Channel sync skipped: unrecognized directory response %r", result.data)
                return

            wanted = listing.channels
            self.wanted = wanted

            for ch in sorted(wanted - self.joined):
                self.queue_join(ch)

            for ch in [c for c in self.join_queue if c not in wanted]:
                self.join_queue.remove(ch)

            for ch in sorted(self.joined - wanted):
                try:
                    await self.transport.part(ch)
                except Exception as e:
                    log.error("Part error (%s): %s", ch, e)
                    continue
                self.joined.discard(ch)
                log.info("Left: %s", ch)

            log.info(
                "Sync complete. wanted=%d joined=%d queued=%d",
                len(wanted),
                len(self.joined),
                len(self.join_queue),
            )

    async def drain_once(self) -> None:
        """Attempt the oldest queued join, if any."""
        if not self.join_queue:
            return
        ch = self.join_queue.popleft()

        self._joining = ch
        try:
            await self.transport.join(ch)
        except Exception as e:
            delay = self.retry_delay_for(e)
            log.warning("Join error (%s): %s. Retrying in %.0fs.", ch, e, delay)
            self._spawn(self._retry_join(ch, delay))
            return
        finally:
            self._joining = None

        self.joined.add(ch)
        log.info("Joined: %s", ch)

        if ch not in self.announced:
            self.announced.add(ch)
            await self.transport.say(ch, Messages.WELCOME.format(dashboard=self.dashboard_url))

    def retry_delay_for(self, error: BaseException) -> float:
        return self.rate_limited_retry_delay if is_rate_limited(error) else self.retry_delay

    async def _retry_join(self, channel: str, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.wanted is not None and channel not in self.wanted:
            log.info("Dropping join retry for %s: no longer wanted.", channel)
            return
        self.queue_join(channel)
