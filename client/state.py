import logging
import time
from typing import Callable, List, Optional

from .types import (
    ConnectionErrorKind,
    ConnectionQuality,
    ConnectionState,
    ConnectionStateChangeCallback,
    ConnectionStateChangeEvent,
)

logger = logging.getLogger(__name__)


class ConnectionStateManager:
    """Lifecycle state machine for one outbound connection.

    Pure bookkeeping: the manager owns no socket. Callers report what the
    transport did through `set_state`, and subscribers are told about
    every accepted transition synchronously, in registration order.
    """

    def __init__(self):
        self._state = ConnectionState.DISCONNECTED
        self._quality = ConnectionQuality.GOOD
        self._last_connected: Optional[float] = None
        self._reconnect_attempts = 0
        self._connection_id: Optional[str] = None
        self._latency = 0.0
        self._last_error: Optional[ConnectionErrorKind] = None
        self._last_error_message: Optional[str] = None
        self._callbacks: List[ConnectionStateChangeCallback] = []

    def get_state(self) -> ConnectionState:
        return self._state

    def set_state(self, new_state: ConnectionState, error: Optional[ConnectionErrorKind] = None,
                  error_message: Optional[str] = None) -> None:
        """Move to `new_state` and notify subscribers.

        Setting the current state again does nothing at all.
        """
        if new_state == self._state:
            return

        previous_state = self._state
        self._state = new_state

        if new_state == ConnectionState.CONNECTED:
            self._last_connected = time.time()
            self._reconnect_attempts = 0
            self._last_error = None
            self._last_error_message = None
        elif new_state == ConnectionState.RECONNECTING:
            self._reconnect_attempts += 1
        elif new_state == ConnectionState.FAILED:
            self._last_error = error
            self._last_error_message = error_message

        event = ConnectionStateChangeEvent(
            previous_state=previous_state,
            current_state=new_state,
            timestamp=time.time(),
            connection_id=self._connection_id,
            error=error,
            error_message=error_message,
        )
        self._notify(event)

        if error is not None:
            logger.info(f"[connection] {previous_state.value} -> {new_state.value} error={error.value}")
        else:
            logger.info(f"[connection] {previous_state.value} -> {new_state.value}")

    def subscribe(self, callback: ConnectionStateChangeCallback) -> Callable[[], None]:
        """Register `callback`; the returned function unregisters it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            self._callbacks = [cb for cb in self._callbacks if cb is not callback]

        return unsubscribe

    def _notify(self, event: ConnectionStateChangeEvent) -> None:
        # Copy so callbacks may (un)subscribe while being notified
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception('Error in connection state change callback')

    def set_connection_quality(self, quality: ConnectionQuality) -> None:
        self._quality = quality

    def get_connection_quality(self) -> ConnectionQuality:
        return self._quality

    def set_connection_id(self, connection_id: Optional[str]) -> None:
        self._connection_id = connection_id

    def get_connection_id(self) -> Optional[str]:
        return self._connection_id

    def set_latency(self, latency: float) -> None:
        """Latency in milliseconds."""
        self._latency = latency

    def get_latency(self) -> float:
        return self._latency

    def get_reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def reset_reconnect_attempts(self) -> None:
        self._reconnect_attempts = 0

    def get_last_connected_time(self) -> Optional[float]:
        return self._last_connected

    def get_last_error(self) -> Optional[ConnectionErrorKind]:
        return self._last_error

    def get_last_error_message(self) -> Optional[str]:
        return self._last_error_message

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def is_connecting(self) -> bool:
        return self._state in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING)

    def has_failed(self) -> bool:
        return self._state == ConnectionState.FAILED

    def is_offline(self) -> bool:
        return self._state == ConnectionState.OFFLINE

    def reset(self) -> None:
        """Return every field to its initial value without notifying anyone."""
        self._state = ConnectionState.DISCONNECTED
        self._quality = ConnectionQuality.GOOD
        self._last_connected = None
        self._reconnect_attempts = 0
        self._connection_id = None
        self._latency = 0.0
        self._last_error = None
        self._last_error_message = None
