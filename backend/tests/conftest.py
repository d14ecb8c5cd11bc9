import os
import sys
import pytest

# Ensure the backend root (containing the `fakeso` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from fakeso import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SOCKETIO_NAMESPACE = '/ws'
    CORS_ORIGINS = ['http://localhost:3000']
    NIM_PILE_SIZE = 21
    NIM_MAX_PLAYERS = 2
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import fakeso.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['fakeso.rooms']


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on /ws, optionally identified as a user."""
    clients = []

    def _connect(username=None):
        auth = {'username': username} if username else None
        test_client = socketio.test_client(flask_app, namespace='/ws', auth=auth)
        test_client.get_received('/ws')  # flush 'connected'
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(connect):
    return connect()


@pytest.fixture()
def users(client):
    """Create alice, bob and carol; returns username -> user dict."""
    created = {}
    for name in ('alice', 'bob', 'carol'):
        res = client.post('/api/users/add', json={'username': name})
        assert res.status_code == 201
        created[name] = res.get_json()
    return created


def received(test_client, name):
    """Payloads of all queued events called ``name``."""
    return [pkt['args'][0] for pkt in test_client.get_received('/ws') if pkt['name'] == name]
