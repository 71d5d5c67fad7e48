import os
import sys
import pytest

# Ensure the backend root (containing the `carball` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from carball import create_app, registry, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = ['http://localhost:5173']
    TICK_RATE = 60
    SNAPSHOT_EVERY = 1
    MAX_STEP_SEC = 1.0 / 30.0
    MATCH_DURATION_SEC = 180
    MIN_MATCH_SEC = 30
    MAX_MATCH_SEC = 600
    MAP_COUNT = 3
    MIN_PLAYERS = 1
    GOAL_RESET_DELAY_SEC = 1.0
    GOAL_RESUME_DELAY_SEC = 2.0
    ROOM_CODE_LENGTH = 4
    ROOM_CODE_MAX_ATTEMPTS = 32
    OUTBOX_LIMIT = 32
    # Deliver immediately and let tests drive the tick loop
    ASYNC_DELIVERY = False
    TICK_DRIVER_ENABLED = False


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application
    registry.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def _connect(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    return test_client


@pytest.fixture()
def sio_client(flask_app):
    test_client = _connect(flask_app)
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def sio_factory(flask_app):
    """Open extra socket clients; all are disconnected at teardown."""
    opened = []

    def make():
        c = _connect(flask_app)
        opened.append(c)
        return c

    yield make
    for c in opened:
        try:
            if c.is_connected('/ws'):
                c.disconnect(namespace='/ws')
        except Exception:
            pass

