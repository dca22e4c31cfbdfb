import os
import sys
import pytest

# Ensure the project root (containing the `app` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    ALLOWED_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/ws'
    HOST = '127.0.0.1'
    PORT = 8000
    ENVIRONMENT = 'test'
    DEBUG = False
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['session_registry']


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


@pytest.fixture()
def make_sio_client(flask_app):
    """Factory for extra Socket.IO clients; all are disconnected on teardown."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass
