import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional

from app.models import DEFAULT_ANIMATION, Player
from . import messages
from .messages import MessageError

_log = logging.getLogger(__name__)

# Minimum gap between two chat lines from one connection, in seconds
CHAT_INTERVAL = 0.5

Sender = Callable[[Hashable, str], None]


@dataclass
class ConnectionRecord:
    """One open connection; `player` stays None until a `join` is processed."""
    id: str
    handle: Hashable
    player: Optional[Player] = None
    last_chat_at: Optional[float] = None


def _uuid_factory() -> str:
    return str(uuid.uuid4())


class SessionRegistry:
    """Authoritative map of open connections to player state.

    Connections live in an insertion-ordered arena keyed by the identity
    handed out by `accept`; the transport only ever holds that identity.
    A player exists only as part of its connection record, so removing
    the record on disconnect removes the player with it.

    Every public operation runs under one lock: a mutation and the
    broadcast it triggers are never interleaved with another message.
    """

    def __init__(self, send: Sender, id_factory: Callable[[], str] = _uuid_factory,
                 clock: Callable[[], float] = time.monotonic,
                 logger: Optional[logging.Logger] = None):
        self._send = send
        self._id_factory = id_factory
        self._clock = clock
        self._log = logger or _log
        self._lock = threading.RLock()
        self._connections: Dict[str, ConnectionRecord] = {}

    # ---- connection lifecycle ----

    def accept(self, handle: Hashable) -> str:
        """Register a newly opened transport connection and return its identity."""
        with self._lock:
            connection_id = self._id_factory()
            while connection_id in self._connections:
                connection_id = self._id_factory()
            self._connections[connection_id] = ConnectionRecord(connection_id, handle)
            self._log.info(f"[accept] id={connection_id} connections={len(self._connections)}")
            return connection_id

    def disconnect(self, connection_id: str) -> None:
        with self._lock:
            record = self._connections.pop(connection_id, None)
            if record is None:
                self._log.warning(f"[disconnect-unknown] id={connection_id}")
                return
            if record.player is None:
                self._log.info(f"[disconnect] id={connection_id} joined=False")
                return
            username = record.player.username
            self._log.info(f"[disconnect] id={connection_id} username={username}")
            self.broadcast_to_all(messages.player_disconnect_message(connection_id, username))
            self.broadcast_to_players(messages.online_users_message(self.player_count()))

    # ---- inbound messages ----

    def handle_message(self, connection_id: str, raw: Any) -> None:
        """Parse one inbound payload and apply it.

        Bad input is logged and dropped; nothing raises back into the
        transport.
        """
        with self._lock:
            record = self._connections.get(connection_id)
            if record is None:
                self._log.warning(f"[drop] id={connection_id} reason=unknown-connection")
                return
            try:
                message = messages.parse_message(raw)
            except MessageError as exc:
                self._log.warning(f"[drop] id={connection_id} reason=malformed error={exc}")
                return

            msg_type = message['type']
            if msg_type == messages.JOIN:
                self._handle_join(record, message)
            elif msg_type == messages.UPDATE:
                self._handle_update(record, message)
            elif msg_type == messages.PING:
                self._deliver(record, messages.encode(messages.pong_message()))
            elif msg_type == messages.CHAT:
                self._handle_chat(record, message)
            else:
                self._log.warning(f"[drop] id={connection_id} reason=unknown-type type={msg_type}")

    def _handle_join(self, record: ConnectionRecord, message: Dict[str, Any]) -> None:
        if record.player is not None:
            # One player per connection; a repeated join does not replace it.
            self._log.warning(f"[drop] id={record.id} reason=already-joined")
            return
        player = Player(
            id=record.id,
            username=message['username'],
            x=message['x'],
            y=message['y'],
            animation=DEFAULT_ANIMATION,
        )
        record.player = player
        self._log.info(f"[join] id={record.id} username={player.username} x={player.x} y={player.y}")

        self._deliver(record, messages.encode(messages.connect_message(player)))
        self._deliver(record, messages.encode(messages.players_message(self.roster())))
        self.broadcast_to_others(record.id, messages.player_joined_message(player))
        self.broadcast_to_players(messages.online_users_message(self.player_count()))

    def _handle_chat(self, record: ConnectionRecord, message: Dict[str, Any]) -> None:
        player = record.player
        if player is None:
            self._log.warning(f"[drop] id={record.id} reason=chat-before-join")
            return
        now = self._clock()
        if record.last_chat_at is not None and now - record.last_chat_at < CHAT_INTERVAL:
            self._log.info(f"[chat-rate-limited] id={record.id}")
            self._deliver(record, messages.encode(messages.error_message(
                'rate_limited', 'Please wait before sending another message')))
            return
        text = message['message']
        if not text:
            self._log.warning(f"[drop] id={record.id} reason=empty-chat")
            return
        record.last_chat_at = now
        chat_id = f"chat-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"
        self._log.info(f"[chat] id={record.id} username={player.username} chat_id={chat_id}")

        self._deliver(record, messages.encode(messages.chat_ack_message(chat_id, text)))
        self.broadcast_to_players(messages.chat_message(chat_id, player.username, text))

    def _handle_update(self, record: ConnectionRecord, message: Dict[str, Any]) -> None:
        player = record.player
        if player is None:
            self._log.warning(f"[drop] id={record.id} reason=update-before-join")
            return
        player.apply_update(message)
        self._log.debug(f"[update] id={record.id} x={player.x} y={player.y} animation={player.animation}")
        self.broadcast_to_others(record.id, messages.player_update_message(player))

    # ---- outbound ----

    def broadcast_to_others(self, exclude_id: str, message: Dict[str, Any]) -> int:
        """Send `message` to every open connection except `exclude_id`.

        Returns the number of successful deliveries.
        """
        return self._broadcast(message, exclude_id)

    def broadcast_to_all(self, message: Dict[str, Any]) -> int:
        return self._broadcast(message, None)

    def broadcast_to_players(self, message: Dict[str, Any]) -> int:
        """Send `message` to every connection that has joined."""
        return self._broadcast(message, None, joined_only=True)

    def send_to(self, connection_id: str, message: Dict[str, Any]) -> bool:
        with self._lock:
            record = self._connections.get(connection_id)
            if record is None:
                return False
            return self._deliver(record, messages.encode(message))

    def _broadcast(self, message: Dict[str, Any], exclude_id: Optional[str],
                   joined_only: bool = False) -> int:
        text = messages.encode(message)
        delivered = 0
        with self._lock:
            targets = [
                r for r in self._connections.values()
                if r.id != exclude_id and (r.player is not None or not joined_only)
            ]
            for record in targets:
                # A send may close connections further down the snapshot.
                if record.id not in self._connections:
                    continue
                if self._deliver(record, text):
                    delivered += 1
        return delivered

    def _deliver(self, record: ConnectionRecord, text: str) -> bool:
        try:
            self._send(record.handle, text)
        except Exception:
            # The transport's own close signal cleans the connection up.
            self._log.exception(f"[send-failed] id={record.id}")
            return False
        return True

    # ---- queries ----

    def roster(self) -> List[Player]:
        """Joined players in connection-age order."""
        with self._lock:
            return [r.player for r in self._connections.values() if r.player is not None]

    def get_player(self, connection_id: str) -> Optional[Player]:
        with self._lock:
            record = self._connections.get(connection_id)
            return record.player if record else None

    def is_open(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def player_count(self) -> int:
        return len(self.roster())
