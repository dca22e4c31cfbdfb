"""Client-side connection lifecycle tracking.

Kept free of any server import so it can ship with the game client.
"""

from .state import ConnectionStateManager
from .types import (
    DEFAULT_RETRY_CONFIG,
    ConnectionErrorKind,
    ConnectionQuality,
    ConnectionResult,
    ConnectionState,
    ConnectionStateChangeEvent,
    RetryConfig,
)

__all__ = [
    'DEFAULT_RETRY_CONFIG',
    'ConnectionErrorKind',
    'ConnectionQuality',
    'ConnectionResult',
    'ConnectionState',
    'ConnectionStateChangeEvent',
    'ConnectionStateManager',
    'RetryConfig',
]
