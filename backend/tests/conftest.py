import os
import sys
import random
import pytest

# Ensure the backend root (containing the `shipcrew` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from shipcrew import create_app, socketio
from shipcrew.broadcast import Broadcaster
from shipcrew.services.games.scheduler import TickScheduler
from shipcrew.services.games.session import SessionManager


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    RANDOM_SEED = '1234'


class RecordingBroadcaster(Broadcaster):
    """Keeps every outbound message so tests can inspect them."""

    def __init__(self):
        self.sent = []
        self.subscriptions = set()
        self.disconnected = []

    def to_room(self, room_id, event, payload=None):
        self.sent.append(('room', room_id, event, payload))

    def to_player(self, sid, event, payload=None):
        self.sent.append(('player', sid, event, payload))

    def subscribe(self, sid, room_id):
        self.subscriptions.add((sid, room_id))

    def unsubscribe(self, sid, room_id):
        self.subscriptions.discard((sid, room_id))

    def disconnect(self, sid):
        self.disconnected.append(sid)

    def events(self, name):
        return [entry for entry in self.sent if entry[2] == name]

    def payloads(self, name):
        return [entry[3] for entry in self.sent if entry[2] == name]

    def clear(self):
        self.sent.clear()


class ManualScheduler(TickScheduler):
    """Scheduler that never spawns; delayed callbacks wait for ``run_delayed``."""

    def __init__(self):
        super().__init__(spawn=None, sleep=None, enabled=False)
        self.delayed = []

    def call_later(self, delay, callback, *args):
        self.delayed.append((delay, callback, args))

    def run_delayed(self):
        pending, self.delayed = self.delayed, []
        for _delay, callback, args in pending:
            callback(*args)


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def session(broadcaster, scheduler):
    return SessionManager(broadcaster, scheduler, rng=random.Random(7))


@pytest.fixture()
def lobby(session):
    """A lobby room with three players: sid-a (creator), sid-b and sid-c."""
    room = session.create_room('sid-a', 'Alice')
    session.join_room('sid-b', room.id, 'Bob')
    session.join_room('sid-c', room.id, 'Cara')
    return room


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


class StubRandom:
    """Scripted random source.

    ``rolls`` feed ``random()`` (0.999 once exhausted, so no hazard ever
    fires), ``choices`` feed ``choice()``; ``shuffle`` keeps order.
    """

    def __init__(self, rolls=(), choices=()):
        self.rolls = list(rolls)
        self.choices = list(choices)
        self._fallback = random.Random(0)

    def random(self):
        return self.rolls.pop(0) if self.rolls else 0.999

    def choice(self, seq):
        if self.choices:
            return self.choices.pop(0)
        return self._fallback.choice(seq)

    def shuffle(self, seq):
        pass


@pytest.fixture()
def quiet_session(broadcaster, scheduler):
    return SessionManager(broadcaster, scheduler, rng=StubRandom())


@pytest.fixture()
def active_room(quiet_session):
    """Started three-player game: Alice=Captain, Bob=Technician, Cara=Spy."""
    room = quiet_session.create_room('sid-a', 'Alice')
    quiet_session.join_room('sid-b', room.id, 'Bob')
    quiet_session.join_room('sid-c', room.id, 'Cara')
    quiet_session.start_game('sid-a')
    return room
