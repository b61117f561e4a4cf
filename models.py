# ─────────────────────────────────────────────────────────────────
# models.py — Data Models (Pydantic Schemas)
#
# Two kinds of shapes live here:
#   1. What we READ from the device registry (DeviceRecord, Sensors)
#   2. What we PRODUCE per cycle (Notification, DeviceOutcome,
#      CycleResult)
#
# Registry records are untrusted: a field may be missing, null or
# the wrong type. Pydantic validation turns a bad record into a
# ValidationError the cycle can catch per device.
# ─────────────────────────────────────────────────────────────────

import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Sensors(BaseModel):
    """The `sensors` child of a device record."""

    model_config = ConfigDict(extra="ignore")

    # last-seen time, Unix epoch seconds; clients writing time.time() store floats
    timestamp: Optional[float] = Field(default=None, allow_inf_nan=False)


class DeviceRecord(BaseModel):
    """
    One device as stored in the registry under devices/{device_id}:

    {
        "fcmToken": "eXb1...",
        "sensors": {"timestamp": 1767225600, "temperature": 24.5}
    }

    Only the two fields the offline check needs are modelled.
    Everything else the device reports is ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    fcm_token: Optional[str] = Field(default=None, alias="fcmToken")
    sensors: Optional[Sensors] = None

    @property
    def timestamp(self) -> Optional[int]:
        if self.sensors is None:
            return None
        if self.sensors.timestamp is None:
            return None
        return math.floor(self.sensors.timestamp)


class Notification(BaseModel):
    """A push message for one stale device. Never persisted."""

    token: str
    title: str
    body: str


class DeviceStatus(str, Enum):
    ONLINE = "online"
    STALE = "stale"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    NO_TOKEN = "no_token"
    NO_TIMESTAMP = "no_timestamp"
    MALFORMED = "malformed"


class CycleStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    REGISTRY_ERROR = "registry_error"


class DeviceOutcome(BaseModel):
    """What happened to a single device during one cycle."""

    device_id: str
    status: DeviceStatus
    reason: Optional[SkipReason] = None
    diff: Optional[int] = None          # seconds since last seen
    notified: bool = False              # True once the notifier acknowledged
    message_id: Optional[str] = None    # delivery receipt from the notifier
    error: Optional[str] = None         # delivery (or parse) failure text


class CycleResult(BaseModel):
    """
    The neutral completion signal of one cycle.

    Returned for every run, including runs where the registry could
    not be read. `status` tells the three cases apart; nothing about
    a result is ever raised to the scheduler.
    """

    now: int
    status: CycleStatus
    device_count: int = 0
    online: int = 0
    stale: int = 0
    skipped: int = 0
    notified: int = 0
    failed: int = 0
    outcomes: List[DeviceOutcome] = Field(default_factory=list)
    error: Optional[str] = None
