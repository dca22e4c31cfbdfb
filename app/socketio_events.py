from typing import Dict, Hashable, Optional

from flask import current_app, request

from app import socketio
from app.services.sessions import SessionRegistry


class SocketGateway:
    """Binds Socket.IO session ids to registry connection identities.

    The gateway holds only the `sid -> identity` map; player state stays
    inside the registry.
    """

    def __init__(self, namespace: str = '/ws'):
        self.namespace = namespace
        self.registry: Optional[SessionRegistry] = None
        self._ids_by_sid: Dict[str, str] = {}

    def bind(self, registry: SessionRegistry) -> None:
        self.registry = registry

    def send(self, sid: Hashable, text: str) -> None:
        socketio.send(text, to=sid, namespace=self.namespace)

    def open(self, sid: str) -> str:
        connection_id = self.registry.accept(sid)
        self._ids_by_sid[sid] = connection_id
        return connection_id

    def receive(self, sid: str, data) -> None:
        connection_id = self._ids_by_sid.get(sid)
        if connection_id is None:
            current_app.logger.warning(f"[drop] sid={sid} reason=no-connection")
            return
        self.registry.handle_message(connection_id, data)

    def close(self, sid: str) -> None:
        connection_id = self._ids_by_sid.pop(sid, None)
        if connection_id is None:
            return
        self.registry.disconnect(connection_id)


def _gateway() -> SocketGateway:
    return current_app.extensions['socket_gateway']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    _gateway().open(_get_sid())


def handle_disconnect(reason=None):
    _gateway().close(_get_sid())


def handle_message(data):
    _gateway().receive(_get_sid(), data)


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the multiplayer namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
