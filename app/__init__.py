import time

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.config['STARTED_AT'] = time.time()
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per application; Socket.IO handlers look it up here
    from app.services.sessions import SessionRegistry
    from app.socketio_events import SocketGateway, register_socketio_handlers
    gateway = SocketGateway(namespace)
    registry = SessionRegistry(gateway.send, logger=flask_app.logger)
    gateway.bind(registry)
    flask_app.extensions['session_registry'] = registry
    flask_app.extensions['socket_gateway'] = gateway

    from app.main import main
    flask_app.register_blueprint(main)

    register_socketio_handlers(namespace)

    return flask_app
