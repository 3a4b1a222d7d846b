import os
import sys
import pytest

# Ensure the backend root (containing the `focusroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from focusroom import create_app, db, socketio
from helpers import FakeClock, InMemoryRoomStore, RecordingBroadcaster


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    CORS_ORIGINS = []
    CHAT_MAX_MESSAGE_LENGTH = 500
    MAX_DURATION_SEC = 24 * 60 * 60
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return InMemoryRoomStore()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import focusroom.models  # noqa: F401
        db.create_all()
    # No app context stays pushed: each request or socket event gets its
    # own, so Flask-Login never sees a previous user's `g`.
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user(flask_app):
    """Register a user and return a logged-in HTTP client plus the user dict."""
    def _make(username, password='password'):
        http = flask_app.test_client()
        res = http.post('/register', json={'username': username, 'password': password})
        assert res.status_code == 201
        return http, res.get_json()['user']
    return _make


@pytest.fixture()
def make_sio(flask_app):
    """Open a '/ws' socket sharing the session cookie of an HTTP client."""
    opened = []

    def _make(http_client):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=http_client,
            namespace='/ws'
        )
        opened.append(test_client)
        return test_client

    yield _make
    for test_client in opened:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass

