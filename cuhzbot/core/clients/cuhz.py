# cuhzbot/core/clients/cuhz.py
import json
import logging
from typing import Any

import aiohttp

from cuhzbot.core.config import settings
from cuhzbot.core.constants import ApiRoutes, BotConfig
from cuhzbot.core.models import ApiResult, ChatInvoker, ChannelSettings

log = logging.getLogger(__name__)


async def _safe_json(response: aiohttp.ClientResponse) -> Any:
    """Parse the body as JSON; anything else comes back as {"_raw": text}."""
    text = await response.text()
    try:
        return json.loads(text)
    except ValueError:
        return {"_raw": text}


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class CuhzApiClient:
    """
    Async client for the dashboard API and the command webhook.

    Never raises: network failures are logged and returned as
    ApiResult(ok=False, status=None).
    """

    def __init__(
        self,
        api_base: str | None = None,
        api_secret: str | None = None,
        webhook_url: str | None = None,
        webhook_token: str | None = None,
    ):
        self.api_base = (api_base or settings.API_BASE).rstrip("/")
        self.api_secret = api_secret or settings.BOT_API_SECRET
        self.webhook_url = webhook_url or settings.WEBHOOK_URL
        self.webhook_token = webhook_token or settings.WEBHOOK_TOKEN

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_secret}",
            "User-Agent": BotConfig.USER_AGENT,
        }

    async def fetch_channels(self) -> ApiResult:
        """GET the directory of channels the bot should sit in."""
        url = f"{self.api_base}{ApiRoutes.CHANNELS}"
        try:
            async with aiohttp.ClientSession() as http:
                async with http.get(url, headers=self._auth_headers()) as resp:
                    data = await _safe_json(resp)
                    return ApiResult(ok=_is_success(resp.status), status=resp.status, data=data)
        except Exception:
            log.warning("Exception fetching channel directory.", exc_info=True)
            return ApiResult(ok=False, status=None)

    async def verify_channel(self, channel: str, code: str) -> ApiResult:
        """POST a verification code for a channel. The code is trimmed and uppercased."""
        url = f"{self.api_base}{ApiRoutes.VERIFY}"
        payload = {"channel": channel, "code": str(code or "").strip().upper()}
        try:
            async with aiohttp.ClientSession() as http:
                async with http.post(url, json=payload, headers=self._auth_headers()) as resp:
                    data = await _safe_json(resp)
                    if not _is_success(resp.status):
                        log.warning("Verify for '%s' returned HTTP %s.", channel, resp.status)
                    return ApiResult(ok=_is_success(resp.status), status=resp.status, data=data)
        except Exception:
            log.warning("Exception verifying channel '%s'.", channel, exc_info=True)
            return ApiResult(ok=False, status=None)

    async def call_command_webhook(
        self,
        channel: str,
        invoker: ChatInvoker,
        text: str,
        flags: ChannelSettings,
    ) -> ApiResult:
        """
        Forward a generation command.
        The shared secret travels in the body, not a header.
        """
        payload = {
            "token": self.webhook_token,
            "channel": channel,
            "user": {"id": invoker.id, "name": invoker.name},
            "text": text,
            "flags": flags.to_flags(),
        }
        try:
            async with aiohttp.ClientSession() as http:
                async with http.post(
                    self.webhook_url,
                    json=payload,
                    headers={"User-Agent": BotConfig.USER_AGENT},
                ) as resp:
                    data = await _safe_json(resp)
                    if not _is_success(resp.status):
                        log.warning(
                            "Command webhook returned HTTP %s for %s in '%s'.",
                            resp.status,
                            invoker.name,
                            channel,
                        )
                    return ApiResult(ok=_is_success(resp.status), status=resp.status, data=data)
        except Exception:
            log.warning("Exception calling command webhook for '%s'.", channel, exc_info=True)
            return ApiResult(ok=False, status=None)
