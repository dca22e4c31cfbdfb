"""Connection state types shared by the client networking code."""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional


class ConnectionState(str, Enum):
    """Lifecycle state of the client's connection to the session server."""
    DISCONNECTED = 'DISCONNECTED'
    CONNECTING = 'CONNECTING'
    CONNECTED = 'CONNECTED'
    RECONNECTING = 'RECONNECTING'
    FAILED = 'FAILED'
    OFFLINE = 'OFFLINE'  # manual offline mode


class ConnectionQuality(str, Enum):
    """Coarse health grade, set from latency / packet loss heuristics."""
    EXCELLENT = 'EXCELLENT'
    GOOD = 'GOOD'
    POOR = 'POOR'
    UNSTABLE = 'UNSTABLE'
    BAD = 'BAD'


class ConnectionErrorKind(str, Enum):
    """Kinds of connection failure reported with the FAILED state."""
    NETWORK_UNAVAILABLE = 'NETWORK_UNAVAILABLE'
    SERVER_UNREACHABLE = 'SERVER_UNREACHABLE'
    AUTHENTICATION_FAILED = 'AUTHENTICATION_FAILED'
    SESSION_EXPIRED = 'SESSION_EXPIRED'
    DUPLICATE_CONNECTION = 'DUPLICATE_CONNECTION'
    TIMEOUT = 'TIMEOUT'


@dataclass(frozen=True)
class ConnectionStateChangeEvent:
    previous_state: ConnectionState
    current_state: ConnectionState
    timestamp: float
    connection_id: Optional[str] = None
    error: Optional[ConnectionErrorKind] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'previousState': self.previous_state.value,
            'currentState': self.current_state.value,
            'timestamp': self.timestamp,
        }
        if self.connection_id is not None:
            data['connectionId'] = self.connection_id
        if self.error is not None:
            data['error'] = self.error.value
        if self.error_message is not None:
            data['errorMessage'] = self.error_message
        return data


ConnectionStateChangeCallback = Callable[[ConnectionStateChangeEvent], None]


@dataclass(frozen=True)
class ConnectionResult:
    success: bool
    state: ConnectionState
    error: Optional[ConnectionErrorKind] = None
    error_message: Optional[str] = None
    connection_id: Optional[str] = None


@dataclass(frozen=True)
class RetryConfig:
    """Reconnect backoff settings. Delays are in seconds."""
    max_attempts: int = 10
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 1.5
    jitter: bool = True

    def should_retry(self, attempts: int) -> bool:
        return attempts < self.max_attempts

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before reconnect `attempt` (1-based).

        Exponential backoff capped at `max_delay`; with jitter the result
        is spread between 80% and 120% of the capped value.
        """
        exponent = max(attempt, 1) - 1
        delay = min(self.max_delay, self.base_delay * self.backoff_multiplier ** exponent)
        if self.jitter:
            delay *= 0.8 + rng() * 0.4
        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()
