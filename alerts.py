# ─────────────────────────────────────────────────────────────────
# alerts.py — Logging Setup & Push Notifiers
#
# All alerting logic lives here. The check cycle only calls
# notifier.send(token, title, body) and never needs to know HOW the
# push message leaves the building.
#
# Two notifiers ship here:
#   LoggingNotifier  → simulated delivery, logs the message
#   FirebaseNotifier → Firebase Cloud Messaging (FCM)
#
# Operators see delivery results only through these logs, so every
# send logs its receipt id or its error.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
import uuid
from typing import Protocol

from firebase_admin import messaging

from errors import DeliveryError
from models import Notification

# ── LOGGING CONFIGURATION ─────────────────────────────────────────
# %(asctime)s    → timestamp e.g. "2026-03-01 10:34:22"
# %(levelname)s  → severity e.g. "INFO", "ERROR"
# %(name)s       → which logger sent this e.g. "checker"
# %(message)s    → the actual message we wrote
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s — %(levelname)s — [%(name)s] — %(message)s"
)

logger = logging.getLogger("alerts")

OFFLINE_TITLE = "Device Offline"


def configure_logging(level: str):
    """Apply the configured level to the root logger."""
    logging.getLogger().setLevel(level.upper())


def build_offline_notification(device_id: str, token: str, threshold_seconds: int = 300) -> Notification:
    """
    Builds the push message for a stale device.

    With the default 300 second threshold the body reads:
    "Device aquarium-01 is offline for more than 5 minutes."
    """
    minutes = threshold_seconds // 60
    if threshold_seconds % 60 == 0 and minutes > 0:
        window = f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    else:
        window = f"{threshold_seconds} seconds"

    return Notification(
        token=token,
        title=OFFLINE_TITLE,
        body=f"Device {device_id} is offline for more than {window}.",
    )


class Notifier(Protocol):
    """Anything that can deliver a push message to a device token."""

    async def send(self, token: str, title: str, body: str) -> str:
        """Deliver and return a receipt/message id. Raise DeliveryError on failure."""
        ...


class LoggingNotifier:
    """
    Simulates push delivery by logging exactly what would be sent.

    Useful for local runs without Firebase credentials: the logs
    prove the cycle KNOWS what to send and to whom.
    """

    def __init__(self):
        self.sent = []

    async def send(self, token: str, title: str, body: str) -> str:
        message_id = f"simulated/{uuid.uuid4()}"

        logger.info("=" * 55)
        logger.info("📲 SIMULATING PUSH NOTIFICATION")
        logger.info(f"   To:      {token[:12]}…")
        logger.info(f"   Title:   {title}")
        logger.info(f"   Body:    {body}")
        logger.info(f"   Receipt: {message_id}")
        logger.info("=" * 55)

        self.sent.append(Notification(token=token, title=title, body=body))
        return message_id


class FirebaseNotifier:
    """
    Sends push notifications through Firebase Cloud Messaging.

    messaging.send() blocks on an HTTP call, so it runs in a worker
    thread. Any failure (invalid token, unregistered device, quota,
    network) comes back as DeliveryError.
    """

    def __init__(self, app=None, dry_run: bool = False):
        self.app = app
        self.dry_run = dry_run

    def _send(self, message: messaging.Message) -> str:
        return messaging.send(message, dry_run=self.dry_run, app=self.app)

    async def send(self, token: str, title: str, body: str) -> str:
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
        )

        try:
            return await asyncio.to_thread(self._send, message)
        except Exception as e:
            raise DeliveryError(f"FCM send failed: {e}", token=token) from e
