from __future__ import annotations

import pytest

import alerts
from alerts import FirebaseNotifier, LoggingNotifier, build_offline_notification
from errors import DeliveryError


@pytest.mark.parametrize(
    ("threshold", "body"),
    [
        (300, "Device dev1 is offline for more than 5 minutes."),
        (60, "Device dev1 is offline for more than 1 minute."),
        (90, "Device dev1 is offline for more than 90 seconds."),
    ],
)
def test_build_offline_notification(threshold: int, body: str) -> None:
    n = build_offline_notification("dev1", "tokA", threshold)
    assert n.token == "tokA"
    assert n.title == "Device Offline"
    assert n.body == body


@pytest.mark.asyncio
async def test_logging_notifier_records_and_returns_receipt(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("INFO")
    notifier = LoggingNotifier()

    receipt = await notifier.send("token-1234567890", "Device Offline", "Device dev1 is offline for more than 5 minutes.")

    assert receipt.startswith("simulated/")
    assert notifier.sent[0].body == "Device dev1 is offline for more than 5 minutes."
    assert "SIMULATING PUSH NOTIFICATION" in caplog.text


@pytest.mark.asyncio
async def test_firebase_notifier_builds_fcm_message(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict = {}

    def fake_send(message, dry_run=False, app=None):
        captured["message"] = message
        captured["dry_run"] = dry_run
        captured["app"] = app
        return "projects/demo/messages/42"

    monkeypatch.setattr(alerts.messaging, "send", fake_send)
    app = object()

    receipt = await FirebaseNotifier(app=app, dry_run=True).send("tokA", "Device Offline", "Device dev1 is offline.")

    assert receipt == "projects/demo/messages/42"
    assert captured["message"].token == "tokA"
    assert captured["message"].notification.title == "Device Offline"
    assert captured["message"].notification.body == "Device dev1 is offline."
    assert captured["dry_run"] is True
    assert captured["app"] is app


@pytest.mark.asyncio
async def test_firebase_notifier_wraps_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_send(message, dry_run=False, app=None):
        raise ValueError("invalid registration token")

    monkeypatch.setattr(alerts.messaging, "send", fake_send)

    with pytest.raises(DeliveryError, match="invalid registration token") as exc:
        await FirebaseNotifier().send("bad", "t", "b")
    assert exc.value.token == "bad"
