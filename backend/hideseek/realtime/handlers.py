from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..game.errors import GameError
from ..game.service import GameService
from . import events

log = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    def _run(action: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Call a service operation, reporting rejections to the caller only."""
        sid = request.sid
        try:
            return fn(sid, *args)
        except GameError as exc:
            room = service.find_room(sid)
            log.warning(
                "[%s] Failed '%s' from %s: %s",
                room.code if room else "No Room", action, sid, exc,
            )
            emit(events.ERROR_MSG, str(exc))
            return None

    @socketio.on("connect")
    def on_connect(auth=None):
        log.info("User connected: %s", request.sid)

    @socketio.on(events.CREATE_ROOM)
    def create_room(data=None):
        try:
            _run(events.CREATE_ROOM, service.create_room)
        except RuntimeError:
            log.exception("Room creation failed for %s", request.sid)
            emit(events.ERROR_MSG, "Failed to create room. Please try again.")

    @socketio.on(events.JOIN_ROOM)
    def join_room(data=None):
        # Older clients send the bare code, newer ones {"roomCode": ...}
        code = data.get("roomCode") if isinstance(data, dict) else data
        _run(events.JOIN_ROOM, service.join_room, code)

    @socketio.on(events.LEAVE_ROOM)
    def leave_room(data=None):
        sid = request.sid
        if service.find_room(sid) is None:
            log.warning("%s tried to leave but was not in a recognized room.", sid)
            return
        service.leave(sid)

    @socketio.on(events.UPDATE_SETTINGS)
    def update_settings(data=None):
        _run(events.UPDATE_SETTINGS, service.update_settings, data)

    @socketio.on(events.START_HIDING)
    def start_hiding(data=None):
        _run(events.START_HIDING, service.start_hiding)

    @socketio.on(events.CONFIRM_HIDDEN)
    def confirm_hidden(data=None):
        _run(events.CONFIRM_HIDDEN, service.confirm_hidden)

    @socketio.on(events.MARK_SELF_FOUND)
    def mark_self_found(data=None):
        _run(events.MARK_SELF_FOUND, service.mark_found)

    @socketio.on(events.REQUEST_PLAY_AGAIN)
    def request_play_again(data=None):
        _run(events.REQUEST_PLAY_AGAIN, service.request_play_again)

    @socketio.on("disconnect")
    def on_disconnect(*args):
        log.info("User disconnected: %s", request.sid)
        service.leave(request.sid)
