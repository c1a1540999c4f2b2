import heapq
import itertools
import random

import pytest

from hideseek.config import Config
from hideseek.game.service import GameService
from hideseek.game.sounds import SoundAssigner
from hideseek.game.timers import TimerHandle
from hideseek.server import create_app


class TestConfig(Config):
    __test__ = False
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False


def config_dict(config_class=TestConfig) -> dict:
    return {k: getattr(config_class, k) for k in dir(config_class) if k.isupper()}


class ManualScheduler:
    """Virtual clock: callbacks only run when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        handle = TimerHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    def clock(self) -> int:
        return int(round(self.now * 1000))

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if not handle.cancelled:
                callback()
        self.now = target

    def pending(self) -> int:
        return sum(1 for item in self._queue if not item[2].cancelled)


class RecordingNotifier:
    def __init__(self):
        self.events = []
        self.members = {}

    def broadcast(self, room_code, event, data=None):
        self.events.append(("room", room_code, event, data))

    def send(self, sid, event, data=None):
        self.events.append(("sid", sid, event, data))

    def enter_room(self, sid, room_code):
        self.members.setdefault(room_code, set()).add(sid)

    def leave_room(self, sid, room_code):
        self.members.get(room_code, set()).discard(sid)

    def named(self, event, to=None):
        return [
            data
            for _, target, name, data in self.events
            if name == event and (to is None or target == to)
        ]

    def targets(self, event):
        return [target for _, target, name, _ in self.events if name == event]

    def clear(self):
        self.events.clear()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def service(scheduler, notifier):
    settings = config_dict()
    sounds = SoundAssigner(settings["ANIMAL_SOUNDS"], settings["UNFOUND_SOUNDS"], rng=random.Random(7))
    return GameService(
        notifier=notifier,
        scheduler=scheduler,
        settings=settings,
        sounds=sounds,
        clock=scheduler.clock,
    )


@pytest.fixture()
def flask_app(scheduler):
    app, socketio = create_app(TestConfig, scheduler=scheduler)
    app.extensions["test_socketio"] = socketio
    yield app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio(flask_app):
    return flask_app.extensions["test_socketio"]
