# ─────────────────────────────────────────────────────────────────
# errors.py — Error Taxonomy
#
# Collaborators raise these, the check cycle catches them.
# None of them is ever allowed to fail a scheduled run: the cycle
# logs, records the outcome, and moves on.
# ─────────────────────────────────────────────────────────────────


class ReadError(Exception):
    """Raised by a registry reader on transport or auth failure."""


class RegistrySnapshotError(ReadError):
    """
    The snapshot for a cycle could not be obtained.

    The cycle wraps whatever the reader raised (including a fetch
    timeout) in this type before logging it, so operators see one
    consistent error name in the logs.
    """

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class DeliveryError(Exception):
    """Raised by a notifier when a push message could not be sent."""

    def __init__(self, message: str, token: str = None):
        super().__init__(message)
        self.token = token
