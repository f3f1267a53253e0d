# SceneStore
# Copyright © 2025 Osvaldo J. Vega Rodríguez
# Licensed under CC BY-NC-SA 4.0 International
# http://creativecommons.org/licenses/by-nc-sa/4.0/

"""Error taxonomy shared by every SceneStore component."""

from __future__ import annotations

__all__ = [
    "SceneStoreError",
    "Conflict",
    "NotFound",
    "Unauthorized",
    "InvalidArgument",
    "AlreadyEnded",
    "LockTimeout",
    "OperationCancelled",
]


class SceneStoreError(RuntimeError):
    """Base class for all domain failures raised by the stores.

    ``kind`` is a stable identifier callers can switch on (the CLI prints it);
    ``retryable`` tells callers whether repeating the same call may succeed.
    """

    kind = "error"
    retryable = False

    def __init__(self, message: str = "", **context: object):
        self.context = dict(context)
        super().__init__(message or self.kind)


class Conflict(SceneStoreError):
    """A uniqueness constraint would be violated."""

    kind = "conflict"


class NotFound(SceneStoreError):
    """A referenced entity does not exist (or is not visible to the caller)."""

    kind = "not_found"


class Unauthorized(SceneStoreError):
    """Bad credentials, wrong recovery key, or an invalid/ended session."""

    kind = "unauthorized"


class InvalidArgument(SceneStoreError):
    """Input rejected before any mutation was attempted."""

    kind = "invalid_argument"


class AlreadyEnded(SceneStoreError):
    """Raised when ending a session that is no longer active."""

    kind = "already_ended"


class LockTimeout(SceneStoreError):
    """The write lock could not be acquired in time."""

    kind = "lock_timeout"
    retryable = True


class OperationCancelled(SceneStoreError):
    """A cancellation token fired; the transaction was rolled back."""

    kind = "cancelled"
