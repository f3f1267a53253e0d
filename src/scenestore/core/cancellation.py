"""Cooperative cancellation for long-running units of work."""

from __future__ import annotations

import logging
import threading

from scenestore.core.errors import OperationCancelled

log = logging.getLogger(__name__)

__all__ = ["CancellationToken"]


class CancellationToken:
    """
    Flag shared between the caller and a running operation.

    Cascading deletes check the token between batches; once cancelled, the
    next checkpoint raises :class:`OperationCancelled` and the surrounding
    transaction rolls back.

    Usage:
        token = CancellationToken()
        threading.Timer(2.0, token.cancel).start()
        projects.delete_project(project, cancel_token=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
            log.debug("Cancellation requested: %s", reason)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "operation cancelled")
