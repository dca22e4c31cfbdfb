import time

from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


def _registry():
    return current_app.extensions['session_registry']


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the multiplayer session server!'})


@main.route('/health')
def health():
    registry = _registry()
    started_at = current_app.config.get('STARTED_AT', time.time())
    return jsonify({
        'status': 'ok',
        'connections': registry.connection_count(),
        'players': registry.player_count(),
        'uptime': int(time.time() - started_at),
    })


@main.route('/online')
def online():
    response = jsonify({
        'status': 'ok',
        'onlineUsers': _registry().player_count(),
        'timestamp': int(time.time() * 1000),
    })
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return response


@main.route('/info')
def info():
    registry = _registry()
    return jsonify({
        'status': 'ok',
        'environment': current_app.config.get('ENVIRONMENT', 'development'),
        'namespace': current_app.config.get('SOCKETIO_NAMESPACE', '/ws'),
        'connections': registry.connection_count(),
        'players': registry.player_count(),
    })
