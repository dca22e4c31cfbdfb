"""Multiplayer session services: wire messages and the session registry.

Nothing in this package imports Flask or Socket.IO; the transport is
injected as a plain `send(handle, text)` callable so the registry can be
driven directly from tests.
"""

from .messages import MessageError, parse_message
from .registry import SessionRegistry

__all__ = ['MessageError', 'SessionRegistry', 'parse_message']
