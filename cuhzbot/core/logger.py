# cuhzbot/core/logger.py

import json
import logging
import sys
import threading
import traceback
import urllib.request

from cuhzbot.core.constants import BotConfig

# Chat-style webhooks (Discord, Slack-compatible relays) reject content over this size.
_MAX_ALERT_CHARS = 1900


class WebhookAlertHandler(logging.Handler):
    """
    Posts ERROR and CRITICAL records to an alerting webhook.
    Each post runs in a daemon thread so the event loop is never blocked.
    """

    def __init__(self, webhook_url: str, bot_name: str):
        super().__init__(level=logging.ERROR)
        self.webhook_url = webhook_url
        self.bot_name = bot_name

    def emit(self, record: logging.LogRecord) -> None:
        threading.Thread(target=self._post, args=(record,), daemon=True).start()

    def format_alert(self, record: logging.LogRecord) -> str:
        header = f"[{self.bot_name}] {record.levelname} {record.name}: {record.getMessage()}"
        if not (record.exc_info and record.exc_info[0] is not None):
            return header[:_MAX_ALERT_CHARS]

        tb = "".join(traceback.format_exception(*record.exc_info))
        # 9 chars of fence plus a 3-char ellipsis around the traceback.
        room = _MAX_ALERT_CHARS - len(header) - 12
        if room <= 0:
            return header[:_MAX_ALERT_CHARS]
        if len(tb) > room:
            tb = "..." + tb[-room:]
        return f"{header}\n```\n{tb}\n```"

    def _post(self, record: logging.LogRecord) -> None:
        try:
            data = json.dumps({"content": self.format_alert(record)}).encode("utf-8")
            req = urllib.request.Request(
                self.webhook_url,
                data=data,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": BotConfig.USER_AGENT,
                },
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=5):
                pass
        except Exception:
            self.handleError(record)  # falls back to stderr


def setup_logging(
    level=logging.INFO,
    webhook_url: str | None = None,
    bot_name: str = "cuhzbot",
):
    """
    Sets up the central logging configuration for the relay.
    Call this ONCE at process start (e.g., platforms/twitch/main.py).
    """
    # Example: 2026-02-22 12:49:55 | INFO     | cuhzbot.platforms.twitch.membership | Joined: somechannel
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Calling setup twice must not duplicate output.
    if not root_logger.handlers:
        root_logger.addHandler(console_handler)

    if webhook_url and not any(
        isinstance(h, WebhookAlertHandler) for h in root_logger.handlers
    ):
        root_logger.addHandler(WebhookAlertHandler(webhook_url, bot_name))

    logging.getLogger("twitchio.websockets").setLevel(logging.WARNING)
    logging.getLogger("twitchio.http").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    root_logger.info("Centralized logging initialized.")
    return root_logger
