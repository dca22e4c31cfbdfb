"""Wire messages exchanged with game clients.

Inbound payloads are JSON objects tagged by `type`. `parse_message`
validates the known types and returns a normalized dict holding only
the fields of the contract; anything else on the payload is dropped.
Outbound messages are built by the helpers below and serialized with
`encode`.
"""

import json
import math
from typing import Any, Callable, Dict, Iterable, Optional

from app.models import Player

JOIN = 'join'
UPDATE = 'update'
PING = 'ping'
CHAT = 'chat'

MAX_CHAT_LENGTH = 500


class MessageError(ValueError):
    """Raised for payloads that are not well-formed or miss required fields."""


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # NaN / Infinity would make every later broadcast invalid JSON
    return math.isfinite(value)


def _require_number(data: Dict[str, Any], field: str) -> Any:
    value = data[field]
    if not _is_number(value):
        raise MessageError(f"'{field}' must be a number")
    return value


def _parse_join(data: Dict[str, Any]) -> Dict[str, Any]:
    username = data.get('username')
    if not isinstance(username, str) or not username.strip():
        raise MessageError("'username' is required")
    message = {'type': JOIN, 'username': username, 'x': 0, 'y': 0}
    for field in ('x', 'y'):
        if field in data:
            message[field] = _require_number(data, field)
    return message


def _parse_update(data: Dict[str, Any]) -> Dict[str, Any]:
    message = {'type': UPDATE}
    for field in ('x', 'y'):
        if field in data:
            message[field] = _require_number(data, field)
    if 'animation' in data:
        if not isinstance(data['animation'], str):
            raise MessageError("'animation' must be a string")
        message['animation'] = data['animation']
    return message


def _parse_ping(data: Dict[str, Any]) -> Dict[str, Any]:
    return {'type': PING}


def _parse_chat(data: Dict[str, Any]) -> Dict[str, Any]:
    text = data.get('message')
    if not isinstance(text, str):
        raise MessageError("'message' must be a string")
    # May come back empty; the registry drops blank chat lines
    return {'type': CHAT, 'message': text.strip()[:MAX_CHAT_LENGTH]}


_PARSERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    JOIN: _parse_join,
    UPDATE: _parse_update,
    PING: _parse_ping,
    CHAT: _parse_chat,
}


def parse_message(raw: Any) -> Dict[str, Any]:
    """Decode and validate an inbound payload.

    `raw` may be JSON text, UTF-8 bytes, or an already decoded dict.
    Unknown message types are returned as `{'type': <type>}` so the
    caller can decide how to report them.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise MessageError('payload is not valid UTF-8') from exc
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise MessageError('payload is not valid JSON') from exc
    else:
        data = raw
    if not isinstance(data, dict):
        raise MessageError('payload must be a JSON object')

    msg_type = data.get('type')
    if not isinstance(msg_type, str) or not msg_type:
        raise MessageError("'type' is required")
    parser = _PARSERS.get(msg_type)
    if parser is None:
        return {'type': msg_type}
    return parser(data)


def encode(message: Dict[str, Any]) -> str:
    return json.dumps(message, allow_nan=False)


def connect_message(player: Player) -> Dict[str, Any]:
    return {'type': 'connect', 'id': player.id, 'player': player.to_dict()}


def players_message(players: Iterable[Player]) -> Dict[str, Any]:
    return {'type': 'players', 'players': [p.to_dict() for p in players]}


def player_joined_message(player: Player) -> Dict[str, Any]:
    return {'type': 'playerJoined', 'player': player.to_dict()}


def player_update_message(player: Player) -> Dict[str, Any]:
    return {'type': 'playerUpdate', 'player': player.to_dict()}


def player_disconnect_message(player_id: str, username: Optional[str] = None) -> Dict[str, Any]:
    message = {'type': 'playerDisconnect', 'id': player_id}
    if username is not None:
        message['username'] = username
    return message


def pong_message() -> Dict[str, Any]:
    return {'type': 'pong'}


def online_users_message(count: int) -> Dict[str, Any]:
    return {'type': 'onlineUsersCount', 'count': count}


def chat_ack_message(chat_id: str, text: str) -> Dict[str, Any]:
    return {'type': 'chatAck', 'id': chat_id, 'message': text}


def chat_message(chat_id: str, username: str, text: str) -> Dict[str, Any]:
    return {'type': 'chat', 'id': chat_id, 'username': username, 'message': text}


def error_message(error: str, text: str) -> Dict[str, Any]:
    return {'type': 'error', 'error': error, 'message': text}
