import os
import random
import sys

import pytest

# Ensure the backend root (containing the `inkguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from inkguess.config import Config
from inkguess.game.events import Outbox
from inkguess.game.registry import RoomRegistry
from inkguess.game.service import GameService
from inkguess.game.words import WordBank
from inkguess.server import create_app


WORDS = {0: ['apple', 'grape', 'melon', 'lemon', 'peach', 'mango', 'olive', 'onion']}

ADDRESS_A = 'So11111111111111111111111111111111111111112'
ADDRESS_B = 'Vote111111111111111111111111111111111111111'


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SECRET_KEY = 'test-secret'
    ADMIN_TOKEN = 'admin-secret'
    TRUST_PROXY_HEADERS = False
    PUBLIC_PRIZE_POOL = 0.0


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now


class RecordingOutbox(Outbox):
    """Resolves room broadcasts to their recipients at emit time."""

    def __init__(self):
        self.rooms = {}
        self.inbox = {}
        self.sent = []
        self.disconnected = []

    def emit(self, event, payload=None, to=None, skip_sid=None):
        self.sent.append((event, payload, to, skip_sid))
        if to in self.rooms:
            recipients = [sid for sid in self.rooms[to] if sid != skip_sid]
        else:
            recipients = [to]
        for sid in recipients:
            self.inbox.setdefault(sid, []).append((event, payload))

    def enter(self, sid, room_id):
        self.rooms.setdefault(room_id, []).append(sid)

    def leave(self, sid, room_id):
        members = self.rooms.get(room_id, [])
        if sid in members:
            members.remove(sid)

    def disconnect(self, sid):
        self.disconnected.append(sid)

    def received(self, sid, event=None):
        return [p for (e, p) in self.inbox.get(sid, []) if event is None or e == event]

    def clear(self):
        self.inbox.clear()
        self.sent.clear()


class FakePayouts:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def pay(self, address, amount, room_id):
        self.calls.append((address, amount, room_id))
        if self.fail:
            raise RuntimeError('rpc unavailable')
        return f'tx-{len(self.calls)}'


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def outbox():
    return RecordingOutbox()


@pytest.fixture()
def payouts():
    return FakePayouts()


@pytest.fixture()
def leaderboard():
    return []


@pytest.fixture()
def service(clock, outbox, payouts, leaderboard):
    return GameService(
        RoomRegistry(),
        outbox=outbox,
        config=TestConfig,
        clock=clock,
        words=WordBank(WORDS),
        payouts=payouts,
        leaderboard=leaderboard.append,
        rng=random.Random(7),
    )


@pytest.fixture()
def advance(service, clock):
    """Move the fake clock forward in small steps, firing room timers on the way."""

    def _advance(room, seconds, step_ms=50):
        end = clock.now + int(seconds * 1000)
        while clock.now < end:
            clock.now = min(end, clock.now + step_ms)
            service.tick(room.id)

    return _advance


@pytest.fixture()
def private_room(service):
    """Create a private room with players p1..pn; p1 owns it."""

    def _make(count=3):
        room = service.join('p1', 'Player1', create=True, client_key='k1')
        for i in range(2, count + 1):
            service.join(f'p{i}', f'Player{i}', target=room.invite_code, client_key=f'k{i}')
        return room

    return _make


@pytest.fixture()
def flask_app():
    application, _ = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def socketio_app():
    return create_app(TestConfig)


@pytest.fixture()
def sio_client(socketio_app):
    application, socketio = socketio_app
    test_client = socketio.test_client(application, flask_test_client=application.test_client())
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()
