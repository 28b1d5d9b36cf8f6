# tests/conftest.py
#
# Module-level sys.modules patch runs during collection, before any test file
# imports cuhzbot modules, so config.py never reads the environment.
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Patch settings before any cuhzbot import ─────────────────────────────────
_mock_settings = MagicMock()
_mock_settings.TWITCH_BOT_ID = "12345"
_mock_settings.API_BASE = "https://dash.example"
_mock_settings.BOT_API_SECRET = "api-secret"
_mock_settings.WEBHOOK_URL = "https://dash.example/api/bot/command"
_mock_settings.WEBHOOK_TOKEN = "hook-token"
_mock_settings.DASHBOARD_URL = "https://dash.example/dashboard"
_mock_settings.DEFAULT_COOLDOWN_MS = 30_000
_mock_settings.MAX_PROMPT_LEN_DEFAULT = 220
_mock_settings.PROMO_INTERVAL_MS = 30 * 60 * 1000

_config_mod = MagicMock()
_config_mod.settings = _mock_settings
sys.modules["cuhzbot.core.config"] = _config_mod

# ── Safe to import cuhzbot after the patch ───────────────────────────────────
from cuhzbot.core.models import ChatInvoker  # noqa: E402
from cuhzbot.platforms.twitch.channels import RelayState  # noqa: E402


@pytest.fixture
def mock_settings():
    return _mock_settings


@pytest.fixture
def transport():
    t = AsyncMock()
    t.join = AsyncMock()
    t.part = AsyncMock()
    t.say = AsyncMock()
    return t


@pytest.fixture
def state():
    return RelayState()


@pytest.fixture
def viewer():
    return ChatInvoker(id="111", name="viewer1")


@pytest.fixture
def mod():
    return ChatInvoker(id="222", name="modguy", badges=frozenset({"moderator"}))


@pytest.fixture
def broadcaster():
    return ChatInvoker(id="333", name="streamer", badges=frozenset({"broadcaster"}))


@pytest.fixture
def said(transport):
    """Returns the (channel, message) pairs sent through the mocked transport, in order."""

    def _said() -> list[tuple[str, str]]:
        return [tuple(c.args) for c in transport.say.await_args_list]

    return _said
