# tests/unit/test_channel_state.py
import pytest

from cuhzbot.core.models import ChannelSettings, ChatInvoker, QueuedCommand
from cuhzbot.platforms.twitch.channels import ChannelQueues, SettingsStore
from cuhzbot.platforms.twitch.cooldowns import CooldownTracker, PromoThrottle
from cuhzbot.platforms.twitch.utils import normalize_channel


def _item(text, ts=0.0):
    return QueuedCommand(
        channel="chan", invoker=ChatInvoker(id="1", name="v"), text=text, enqueued_at=ts
    )


# ── normalize_channel ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw", ["SomeChannel", "#somechannel", "  #SOMECHANNEL  ", "somechannel"])
def test_normalize_channel_spellings_collapse(raw):
    assert normalize_channel(raw) == "somechannel"


def test_normalize_channel_none_is_empty():
    assert normalize_channel(None) == ""


# ── SettingsStore ─────────────────────────────────────────────────────────────

def test_settings_created_with_defaults_on_first_access():
    defaults = ChannelSettings(cooldown_ms=10_000, max_prompt_len=50)
    store = SettingsStore(defaults)
    assert store.get("chan") == defaults
    assert len(store) == 1


def test_settings_set_merges_patch_and_returns_snapshot():
    store = SettingsStore()
    updated = store.set("chan", queue_enabled=True)
    assert updated.queue_enabled is True
    assert updated.safe_mode is True  # untouched field kept
    assert store.get("chan") == updated


def test_settings_case_and_marker_share_one_entry():
    store = SettingsStore()
    store.set("#MyChan", lockdown=True)
    assert store.get("mychan").lockdown is True
    assert store.get("MYCHAN").lockdown is True
    assert len(store) == 1


def test_settings_unknown_field_rejected():
    store = SettingsStore()
    with pytest.raises(TypeError):
        store.set("chan", bogus=1)


def test_settings_to_flags_uses_wire_names():
    flags = ChannelSettings().to_flags()
    assert set(flags) == {"queueEnabled", "cooldownMs", "safeMode", "lockdown", "maxPromptLen"}


# ── ChannelQueues ─────────────────────────────────────────────────────────────

def test_queue_enqueue_returns_position():
    queues = ChannelQueues()
    assert queues.enqueue("chan", _item("a")) == 1
    assert queues.enqueue("#CHAN", _item("b")) == 2
    assert queues.length("chan") == 2


def test_queue_is_fifo():
    queues = ChannelQueues()
    queues.enqueue("chan", _item("first"))
    queues.enqueue("chan", _item("second"))
    assert queues.dequeue_one("chan").text == "first"
    assert queues.dequeue_one("chan").text == "second"
    assert queues.dequeue_one("chan") is None


def test_queues_are_per_channel():
    queues = ChannelQueues()
    queues.enqueue("a", _item("x"))
    assert queues.dequeue_one("b") is None
    assert queues.length("a") == 1


# ── CooldownTracker ───────────────────────────────────────────────────────────

def test_cooldown_first_attempt_allowed():
    tracker = CooldownTracker()
    assert tracker.check_and_consume("chan", "u1", 30_000, now=1_000).allowed


def test_cooldown_within_window_rejected_with_ceiling_remaining():
    tracker = CooldownTracker()
    tracker.check_and_consume("chan", "u1", 30_000, now=1_000)
    result = tracker.check_and_consume("chan", "u1", 30_000, now=11_000.4)
    assert not result.allowed
    assert result.remaining_ms == 20_000  # ceil(30000 - 10000.4)


def test_cooldown_rejection_does_not_move_anchor():
    tracker = CooldownTracker()
    tracker.check_and_consume("chan", "u1", 30_000, now=0)
    tracker.check_and_consume("chan", "u1", 30_000, now=29_000)
    assert tracker.check_and_consume("chan", "u1", 30_000, now=30_000).allowed


def test_cooldown_acceptance_reanchors_window():
    tracker = CooldownTracker()
    tracker.check_and_consume("chan", "u1", 30_000, now=0)
    assert tracker.check_and_consume("chan", "u1", 30_000, now=45_000).allowed
    result = tracker.check_and_consume("chan", "u1", 30_000, now=50_000)
    assert not result.allowed
    assert result.remaining_ms == 25_000


def test_cooldown_is_per_user_and_per_channel():
    tracker = CooldownTracker()
    tracker.check_and_consume("chan", "u1", 30_000, now=0)
    assert tracker.check_and_consume("chan", "u2", 30_000, now=1).allowed
    assert tracker.check_and_consume("other", "u1", 30_000, now=1).allowed


def test_cooldown_channel_spellings_share_entry():
    tracker = CooldownTracker()
    tracker.check_and_consume("#Chan", "u1", 30_000, now=0)
    assert not tracker.check_and_consume("chan", "u1", 30_000, now=1).allowed


def test_cooldown_sweep_drops_only_stale_entries():
    tracker = CooldownTracker()
    tracker.check_and_consume("chan", "old", 30_000, now=0)
    tracker.check_and_consume("chan", "fresh", 30_000, now=500_000)
    removed = tracker.sweep(600_000, now=700_000)
    assert removed == 1
    assert len(tracker) == 1
    assert not tracker.check_and_consume("chan", "fresh", 300_000, now=700_000).allowed


# ── PromoThrottle ─────────────────────────────────────────────────────────────

def test_promo_first_announcement_allowed_then_throttled():
    promo = PromoThrottle(interval_ms=60_000)
    assert promo.should_announce("chan", now=0)
    assert not promo.should_announce("chan", now=59_999)
    assert promo.should_announce("chan", now=60_000)


def test_promo_is_per_channel():
    promo = PromoThrottle(interval_ms=60_000)
    assert promo.should_announce("a", now=0)
    assert promo.should_announce("b", now=1)
    assert not promo.should_announce("#A", now=2)
