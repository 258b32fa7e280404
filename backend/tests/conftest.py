import os
import random
import sys
import pytest

# Ensure the backend root (containing the `themind` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from themind import create_app, socketio
from themind.models import Participant, Room
from themind.services.games.registry import RoomRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['*']
    SOCKETIO_NAMESPACE = '/'
    # Re-deals happen inline so event order is deterministic
    TRANSITION_DELAY_SEC = 0
    ROOM_EXPIRY_SEC = 6 * 60 * 60
    ROOM_SWEEP_INTERVAL_SEC = 30 * 60
    MAX_PLAYERS = 4
    MAX_NAME_LENGTH = 20
    DEAL_SEED = 1234
    LOG_LEVEL = 'DEBUG'


class LiveConfig(TestConfig):
    """Real background re-deals with a short pause."""
    TESTING = False
    TRANSITION_DELAY_SEC = 0.2


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    application.extensions['room_sweeper'].stop()


@pytest.fixture()
def live_app():
    application = create_app(LiveConfig)
    with application.app_context():
        yield application
    application.extensions['room_sweeper'].stop()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['room_registry']


def _client_factory(application):
    clients = []

    def _connect():
        test_client = socketio.test_client(application, flask_test_client=application.test_client())
        test_client.get_received()  # drop the initial rooms-list
        clients.append(test_client)
        return test_client

    return _connect, clients


def _disconnect_all(clients):
    for test_client in clients:
        if test_client.is_connected():
            test_client.disconnect()


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients; all are disconnected at teardown."""
    _connect, clients = _client_factory(flask_app)
    yield _connect
    _disconnect_all(clients)


@pytest.fixture()
def live_connect(live_app):
    _connect, clients = _client_factory(live_app)
    yield _connect
    _disconnect_all(clients)


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def bare_registry(clock):
    """A registry outside any Flask app, with a controllable clock."""
    return RoomRegistry(rng=random.Random(42), clock=clock)


def make_room(*hands, status='playing', level=1, code='TEST'):
    """Build a room whose participants p0, p1, ... hold the given hands."""
    players = [
        Participant(id=f'p{i}', name=f'Player {i}', cards=sorted(hand), is_host=(i == 0))
        for i, hand in enumerate(hands)
    ]
    room = Room(code=code, host_id='p0', created_at=0.0, players=players)
    room.state.status = status
    room.state.level = level
    return room


def events_named(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
