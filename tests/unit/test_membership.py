# tests/unit/test_membership.py
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cuhzbot.core.models import ApiResult, DirectoryShape
from cuhzbot.platforms.twitch.membership import MembershipSynchronizer, decode_directory

DASHBOARD = "https://dash.example/dashboard"
WELCOME = f"CuhzBot online. Manage settings: {DASHBOARD}"


class RateLimitedError(Exception):
    status = 429


@pytest.fixture
def api():
    client = MagicMock()
    client.fetch_channels = AsyncMock()
    return client


@pytest.fixture
def sync(api, transport):
    return MembershipSynchronizer(
        api,
        transport,
        DASHBOARD,
        poll_interval=60,
        join_delay=0.65,
        retry_delay=5,
        rate_limited_retry_delay=15,
    )


def _directory(api, data, status=200):
    api.fetch_channels.return_value = ApiResult(ok=200 <= status < 300, status=status, data=data)


# ── decode_directory ──────────────────────────────────────────────────────────

def test_decode_login_list():
    listing = decode_directory({"channelLogins": ["Alpha", "#beta", ""]})
    assert listing.shape is DirectoryShape.LOGINS
    assert listing.channels == {"alpha", "beta"}


def test_decode_row_objects():
    listing = decode_directory({"channels": [{"channel_login": "Alpha"}, {"other": 1}]})
    assert listing.shape is DirectoryShape.ROWS
    assert listing.channels == {"alpha"}


def test_decode_bare_list():
    assert decode_directory(["a", "b"]).channels == {"a", "b"}


@pytest.mark.parametrize("data", [{"_raw": "oops"}, {"channels": "a,b"}, ["a", {"channel_login": "b"}], "a", None])
def test_decode_unrecognized_shape_is_empty(data):
    listing = decode_directory(data)
    assert listing.shape is DirectoryShape.UNRECOGNIZED
    assert not listing.recognized
    assert listing.channels == frozenset()


# ── sync ──────────────────────────────────────────────────────────────────────

async def test_sync_queues_missing_and_parts_unwanted(sync, api, transport):
    sync.joined = {"b", "c"}
    _directory(api, {"channelLogins": ["a", "b"]})

    await sync.sync()

    assert list(sync.join_queue) == ["a"]
    transport.part.assert_awaited_once_with("c")
    assert sync.joined == {"b"}
    transport.join.assert_not_awaited()


async def test_sync_does_not_duplicate_queued_channels(sync, api):
    _directory(api, {"channelLogins": ["a"]})
    await sync.sync()
    await sync.sync()
    assert list(sync.join_queue) == ["a"]


async def test_sync_drops_queued_channels_no_longer_wanted(sync, api):
    sync.join_queue.extend(["a", "gone"])
    _directory(api, {"channelLogins": ["a"]})
    await sync.sync()
    assert list(sync.join_queue) == ["a"]


async def test_sync_http_failure_changes_nothing(sync, api, transport):
    sync.joined = {"c"}
    _directory(api, {"error": "nope"}, status=500)
    await sync.sync()
    transport.part.assert_not_awaited()
    assert sync.joined == {"c"}
    assert sync.wanted is None


async def test_sync_unrecognized_shape_skips_cycle(sync, api, transport):
    sync.joined = {"c"}
    _directory(api, {"unexpected": True})
    await sync.sync()
    transport.part.assert_not_awaited()
    assert sync.joined == {"c"}


async def test_sync_part_failure_keeps_channel_joined(sync, api, transport):
    sync.joined = {"c"}
    transport.part.side_effect = RuntimeError("boom")
    _directory(api, {"channelLogins": []})
    await sync.sync()
    assert sync.joined == {"c"}


# ── drain ─────────────────────────────────────────────────────────────────────

async def test_drain_joins_one_channel_per_tick_and_welcomes(sync, transport, said):
    sync.join_queue.extend(["a", "b"])

    await sync.drain_once()

    transport.join.assert_awaited_once_with("a")
    assert sync.joined == {"a"}
    assert list(sync.join_queue) == ["b"]
    assert said() == [("a", WELCOME)]


async def test_drain_empty_queue_is_noop(sync, transport):
    await sync.drain_once()
    transport.join.assert_not_awaited()


async def test_welcome_sent_once_per_process(sync, transport, said):
    sync.join_queue.append("a")
    await sync.drain_once()
    sync.joined.clear()  # parted and wanted again later
    sync.join_queue.append("a")
    await sync.drain_once()
    assert said() == [("a", WELCOME)]
    assert transport.join.await_count == 2


async def test_joined_and_queued_are_disjoint(sync, api):
    sync.join_queue.append("a")
    await sync.drain_once()
    assert not sync.queue_join("a")
    _directory(api, {"channelLogins": ["a"]})
    await sync.sync()
    assert "a" in sync.joined
    assert "a" not in sync.join_queue


def test_retry_delay_longer_for_rate_limit(sync):
    assert sync.retry_delay_for(RateLimitedError("Too Many Requests")) == 15
    assert sync.retry_delay_for(RuntimeError("Rate limit exceeded")) == 15
    assert sync.retry_delay_for(RuntimeError("channel not found")) == 5
    assert sync.retry_delay_for(RateLimitedError("x")) > sync.retry_delay_for(RuntimeError("x"))


async def test_join_failure_requeues_after_delay(sync, transport):
    transport.join.side_effect = RuntimeError("msg_channel_suspended")
    sync.join_queue.append("a")

    with patch("cuhzbot.platforms.twitch.membership.asyncio.sleep", AsyncMock()) as mock_sleep:
        await sync.drain_once()
        assert "a" not in sync.joined
        assert list(sync.join_queue) == []
        await asyncio.gather(*sync._background)

    mock_sleep.assert_awaited_once_with(5)
    assert list(sync.join_queue) == ["a"]


async def test_rate_limited_join_failure_waits_longer(sync, transport):
    transport.join.side_effect = RuntimeError("Join rate limit reached")
    sync.join_queue.append("a")

    with patch("cuhzbot.platforms.twitch.membership.asyncio.sleep", AsyncMock()) as mock_sleep:
        await sync.drain_once()
        await asyncio.gather(*sync._background)

    mock_sleep.assert_awaited_once_with(15)


async def test_retry_skipped_when_channel_no_longer_wanted(sync, transport):
    transport.join.side_effect = RuntimeError("boom")
    sync.wanted = frozenset({"other"})
    sync.join_queue.append("a")

    with patch("cuhzbot.platforms.twitch.membership.asyncio.sleep", AsyncMock()):
        await sync.drain_once()
        await asyncio.gather(*sync._background)

    assert list(sync.join_queue) == []


async def test_request_sync_runs_out_of_band(sync, api):
    _directory(api, {"channelLogins": ["a"]})
    sync.request_sync()
    await asyncio.gather(*sync._background)
    assert list(sync.join_queue) == ["a"]


async def test_stop_cancels_loops(sync, api):
    _directory(api, {"channelLogins": []})
    sync.start()
    loops = list(sync._loops)
    sync.stop()
    await asyncio.gather(*loops, return_exceptions=True)
    assert all(t.cancelled() for t in loops)
