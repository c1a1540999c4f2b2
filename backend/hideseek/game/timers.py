from __future__ import annotations

import logging
from typing import Callable, Protocol

log = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation token for one scheduled callback."""

    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class SocketIOScheduler:
    """Runs delayed callbacks as Flask-SocketIO background tasks.

    Works with every async mode Flask-SocketIO supports since it only relies on
    ``start_background_task`` and ``sleep``.
    """

    def __init__(self, socketio) -> None:
        self._socketio = socketio

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def _runner() -> None:
            self._socketio.sleep(delay)
            if handle.cancelled:
                return
            try:
                callback()
            except Exception:
                log.exception("Timer callback failed")

        self._socketio.start_background_task(_runner)
        return handle
