"""
scripts/check_observability.py

Fires a test ERROR log through the alert webhook handler and a test Sentry
event, to check both observability channels after a deploy.

Usage:
    python scripts/check_observability.py
"""

import logging
import sentry_sdk
from cuhzbot.core.config import settings
from cuhzbot.core.logger import WebhookAlertHandler, setup_logging

setup_logging(webhook_url=settings.BOT_LOGS_WEBHOOK_URL, bot_name="observability-check")
log = logging.getLogger(__name__)

print("--- Observability Test ---")

# --- Alert webhook ---
if not settings.BOT_LOGS_WEBHOOK_URL:
    print("[webhook] SKIP: BOT_LOGS_WEBHOOK_URL not set")
else:
    handler = next(
        h for h in logging.getLogger().handlers if isinstance(h, WebhookAlertHandler)
    )
    record = logging.LogRecord(
        __name__, logging.ERROR, __file__, 0, "Observability check: alert webhook is working", None, None
    )
    print("[webhook] POSTing test alert (synchronously)...")
    handler._post(record)
    print("[webhook] Done: check the alert channel")

# --- Sentry ---
if not settings.SENTRY_DSN:
    print("[sentry]  SKIP: SENTRY_DSN not set")
else:
    sentry_sdk.init(dsn=settings.SENTRY_DSN)
    print("[sentry]  Sending test message to Sentry...")
    sentry_sdk.capture_message("Observability check: Sentry is working", level="error")
    sentry_sdk.flush(timeout=5)
    print("[sentry]  Done: check your Sentry project's Issues tab")

print("--- Done ---")
