from __future__ import annotations

from typing import Any, Protocol

from flask_socketio import SocketIO


class Notifier(Protocol):
    def broadcast(self, room_code: str, event: str, data: Any = None) -> None: ...

    def send(self, sid: str, event: str, data: Any = None) -> None: ...

    def enter_room(self, sid: str, room_code: str) -> None: ...

    def leave_room(self, sid: str, room_code: str) -> None: ...


class SocketIONotifier:
    """Outbound side of the game: room broadcasts and per-connection events.

    Uses the server object directly so it also works from background tasks,
    where there is no request context to rely on.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/") -> None:
        self._socketio = socketio
        self._namespace = namespace

    def _emit(self, event: str, data: Any, to: str) -> None:
        if data is None:
            self._socketio.emit(event, to=to, namespace=self._namespace)
        else:
            self._socketio.emit(event, data, to=to, namespace=self._namespace)

    def broadcast(self, room_code: str, event: str, data: Any = None) -> None:
        self._emit(event, data, to=room_code)

    def send(self, sid: str, event: str, data: Any = None) -> None:
        self._emit(event, data, to=sid)

    def enter_room(self, sid: str, room_code: str) -> None:
        self._socketio.server.enter_room(sid, room_code, namespace=self._namespace)

    def leave_room(self, sid: str, room_code: str) -> None:
        self._socketio.server.leave_room(sid, room_code, namespace=self._namespace)
