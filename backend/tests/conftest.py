import os
import sys
import pytest

# Ensure the backend root (containing the `gradeboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gradeboard import create_app, room, socketio
from gradeboard.models import DeviceIdentity, DisplayAddress, IdType


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    PORT = 3000
    CORS_ORIGINS = '*'
    SESSION_DEFAULT_NAME = 'Classroom Session'
    PROBE_TIMEOUT_MS = 200
    NEIGHBOR_QUERY_TIMEOUT_SEC = 1
    EXPORT_FILENAME_PREFIX = 'grading_results'


TEST_ADDRESSES = [
    DisplayAddress(name='eth0', address='192.168.1.10', url='http://192.168.1.10:3000'),
    DisplayAddress(name='wlan0', address='10.0.0.5', url='http://10.0.0.5:3000'),
]


class QueueResolver:
    """Hands out queued device ids to connections in order; then falls back to the address."""

    def __init__(self):
        self.queue = []
        self.calls = []

    def resolve(self, address):
        self.calls.append(address)
        if self.queue:
            return DeviceIdentity(self.queue.pop(0), IdType.MAC)
        return DeviceIdentity(address, IdType.IP)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    room.address_provider = lambda: list(TEST_ADDRESSES)
    room.refresh_addresses()
    room.resolver = QueueResolver()
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def resolver(flask_app):
    return room.resolver


@pytest.fixture()
def connect(flask_app, resolver):
    """Open a Socket.IO test client that resolves to ``device_id``."""
    opened = []

    def _connect(device_id):
        resolver.queue.append(device_id)
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
