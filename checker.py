# ─────────────────────────────────────────────────────────────────
# checker.py — The Offline-Check Cycle
#
# One cycle = one sweep over the device registry:
#   1. Take ONE snapshot of every device record
#   2. Decide per device: skipped, online or stale
#   3. Push a notification for every stale device
#   4. Return a CycleResult summarising what happened
#
# A cycle never raises. A broken registry, a broken record or a
# failed push is logged and recorded, then the sweep carries on.
# The next scheduled tick re-evaluates everything from scratch: no
# state is kept between cycles, so a device that stays offline is
# notified again on every tick.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
import time
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from alerts import Notifier, build_offline_notification
from database import RegistryReader
from errors import DeliveryError, RegistrySnapshotError
from models import (
    CycleResult,
    CycleStatus,
    DeviceOutcome,
    DeviceRecord,
    DeviceStatus,
    Notification,
    SkipReason,
)

logger = logging.getLogger("checker")

OFFLINE_THRESHOLD_SECONDS = 300


def evaluate_device(device_id: str, raw: Any, now: int, threshold_seconds: int = OFFLINE_THRESHOLD_SECONDS) -> Tuple[DeviceOutcome, Optional[DeviceRecord]]:
    """
    Classifies one registry record against the current time.

    Order of checks:
      no token      → skipped (nowhere to send a notification)
      no timestamp  → skipped (can't tell if the device is stale)
      diff > limit  → stale
      otherwise     → online (includes diff == limit and clock skew)
    """
    try:
        record = DeviceRecord.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"⚠️  Malformed record for device {device_id}: {e.error_count()} validation error(s)")
        return DeviceOutcome(
            device_id=device_id,
            status=DeviceStatus.SKIPPED,
            reason=SkipReason.MALFORMED,
            error=str(e),
        ), None

    if not record.fcm_token:
        logger.info(f"No FCM token for device {device_id}")
        return DeviceOutcome(device_id=device_id, status=DeviceStatus.SKIPPED, reason=SkipReason.NO_TOKEN), record

    timestamp = record.timestamp
    if not timestamp:
        logger.info(f"No timestamp for device {device_id}")
        return DeviceOutcome(device_id=device_id, status=DeviceStatus.SKIPPED, reason=SkipReason.NO_TIMESTAMP), record

    diff = now - timestamp
    if diff > threshold_seconds:
        return DeviceOutcome(device_id=device_id, status=DeviceStatus.STALE, diff=diff), record

    return DeviceOutcome(device_id=device_id, status=DeviceStatus.ONLINE, diff=diff), record


class OfflineCheckCycle:
    """
    Runs the offline check against an injected registry reader and
    notifier. Both collaborators are owned by the caller.

    The instance holds configuration only, so overlapping calls to
    run_cycle() don't interfere with each other.
    """

    def __init__(
        self,
        reader: RegistryReader,
        notifier: Notifier,
        threshold_seconds: int = OFFLINE_THRESHOLD_SECONDS,
        fetch_timeout: Optional[float] = None,
    ):
        self.reader = reader
        self.notifier = notifier
        self.threshold_seconds = threshold_seconds
        self.fetch_timeout = fetch_timeout

    async def _fetch_snapshot(self):
        try:
            if self.fetch_timeout is None:
                snapshot = await self.reader.get_snapshot()
            else:
                snapshot = await asyncio.wait_for(self.reader.get_snapshot(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise RegistrySnapshotError(f"Registry fetch timed out after {self.fetch_timeout}s", cause=e) from e
        except Exception as e:
            raise RegistrySnapshotError(f"Registry fetch failed: {e}", cause=e) from e

        if snapshot and not isinstance(snapshot, Mapping):
            raise RegistrySnapshotError(f"Registry snapshot is not a mapping: {type(snapshot).__name__}")

        return snapshot

    async def _dispatch(self, outcome: DeviceOutcome, notification: Notification):
        """
        Sends one notification. Every failure stays inside this
        coroutine, so one bad token can't take down its siblings.
        """
        try:
            message_id = await self.notifier.send(notification.token, notification.title, notification.body)
        except DeliveryError as e:
            logger.error(f"❌ Notification failed for device {outcome.device_id}: {e}")
            outcome.error = str(e)
            return
        except Exception as e:
            logger.exception(f"❌ Unexpected notifier error for device {outcome.device_id}: {e}")
            outcome.error = f"{type(e).__name__}: {e}"
            return

        outcome.notified = True
        outcome.message_id = message_id
        logger.info(f"✅ Notification sent for device {outcome.device_id}: {message_id}")

    async def run_cycle(self, now: Optional[int] = None) -> CycleResult:
        """
        One full sweep. Always returns a CycleResult, never raises.

        `now` is the cycle's clock reading in Unix seconds; it defaults
        to the current time and is read once so every device is
        measured against the same instant.
        """
        if now is None:
            now = int(time.time())

        logger.info("🔔 Running notification check...")

        try:
            snapshot = await self._fetch_snapshot()
        except RegistrySnapshotError as e:
            logger.error(f"❌ Error checking devices: {e}")
            return CycleResult(now=now, status=CycleStatus.REGISTRY_ERROR, error=str(e))

        if not snapshot:
            logger.info("No devices found.")
            return CycleResult(now=now, status=CycleStatus.EMPTY)

        outcomes: List[DeviceOutcome] = []
        dispatches = []

        for device_id, raw in snapshot.items():
            device_id = str(device_id)
            try:
                outcome, record = evaluate_device(device_id, raw, now, self.threshold_seconds)
            except Exception as e:
                logger.exception(f"⚠️  Could not evaluate device {device_id}: {e}")
                outcome, record = DeviceOutcome(
                    device_id=device_id,
                    status=DeviceStatus.SKIPPED,
                    reason=SkipReason.MALFORMED,
                    error=f"{type(e).__name__}: {e}",
                ), None

            outcomes.append(outcome)

            if outcome.status == DeviceStatus.STALE:
                logger.warning(f"📴 Device {device_id} last seen {outcome.diff}s ago (limit {self.threshold_seconds}s)")
                notification = build_offline_notification(device_id, record.fcm_token, self.threshold_seconds)
                # Spawned now, awaited after the loop: no device waits on another's delivery
                dispatches.append(asyncio.create_task(self._dispatch(outcome, notification)))

        if dispatches:
            await asyncio.gather(*dispatches, return_exceptions=True)

        result = CycleResult(
            now=now,
            status=CycleStatus.OK,
            device_count=len(outcomes),
            online=sum(1 for o in outcomes if o.status == DeviceStatus.ONLINE),
            stale=sum(1 for o in outcomes if o.status == DeviceStatus.STALE),
            skipped=sum(1 for o in outcomes if o.status == DeviceStatus.SKIPPED),
            notified=sum(1 for o in outcomes if o.notified),
            failed=sum(1 for o in outcomes if o.status == DeviceStatus.STALE and not o.notified),
            outcomes=outcomes,
        )

        logger.info(
            f"Cycle done: {result.device_count} device(s) | online {result.online} | "
            f"stale {result.stale} | skipped {result.skipped} | "
            f"notified {result.notified} | failed {result.failed}"
        )
        return result
