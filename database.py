# ─────────────────────────────────────────────────────────────────
# database.py — Device Registry Readers
#
# The check cycle only ever needs ONE thing from storage: a
# snapshot of every device record, taken once at the start of a
# cycle. Anything that can produce that mapping is a registry
# reader.
#
# Two readers ship here:
#   InMemoryRegistry → a plain dict, for local runs and tests
#   FirebaseRegistry → the Firebase Realtime Database "devices" node
#
# Readers are handed to the cycle by main.py. Nothing in this file
# opens a connection at import time.
# ─────────────────────────────────────────────────────────────────

import asyncio
import copy
import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from firebase_admin import db as firebase_db

from errors import ReadError

logger = logging.getLogger("database")


class RegistryReader(Protocol):
    """Anything the check cycle can pull a device snapshot from."""

    async def get_snapshot(self) -> Optional[Mapping[str, Any]]:
        """
        Return {device_id: raw_record} or None when the registry is
        absent. Raise ReadError when the registry can't be reached.
        """
        ...


class InMemoryRegistry:
    """
    Dict-backed registry.

    Structure:
      Key   → device id (string) e.g. "aquarium-01"
      Value → raw record dict e.g.
              {"fcmToken": "tok", "sensors": {"timestamp": 1767225600}}

    get_snapshot() hands out a deep copy, so a cycle never sees a
    record change underneath it.
    """

    def __init__(self, devices: Optional[Dict[str, Any]] = None):
        self.devices_db = dict(devices or {})

    async def get_snapshot(self) -> Optional[Dict[str, Any]]:
        if not self.devices_db:
            return None
        return copy.deepcopy(self.devices_db)

    def put(self, device_id: str, record: Any):
        self.devices_db[device_id] = record

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryRegistry":
        """Load a seed file shaped like a Realtime Database export of `devices`."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Registry seed file {path} must contain a JSON object")

        logger.info(f"📂 Loaded {len(data)} device record(s) from {path}")
        return cls(data)


class FirebaseRegistry:
    """
    Reads the device registry from Firebase Realtime Database.

    The firebase_admin client is synchronous, so the read runs in a
    worker thread and the event loop stays free for other work.
    """

    def __init__(self, path: str = "devices", app=None):
        self.path = path
        self.app = app

    def _read(self):
        return firebase_db.reference(self.path, app=self.app).get()

    async def get_snapshot(self) -> Optional[Mapping[str, Any]]:
        try:
            data = await asyncio.to_thread(self._read)
        except Exception as e:
            raise ReadError(f"Failed to read '{self.path}' from Realtime Database: {e}") from e

        if data is None:
            return None

        # A node whose children are "0", "1", ... comes back as a list
        if isinstance(data, list):
            data = {str(i): record for i, record in enumerate(data) if record is not None}

        if not isinstance(data, dict):
            raise ReadError(f"Registry node '{self.path}' is not an object: {type(data).__name__}")

        return data
