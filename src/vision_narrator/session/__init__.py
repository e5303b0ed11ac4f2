"""
Session Module
==============

Delivery of scene descriptions into the live voice/chat session.
"""

from vision_narrator.session.transport import (
    LoggingSessionTransport,
    SessionTransport,
    WebSocketSessionTransport,
    build_system_message,
    create_session_transport,
)
from vision_narrator.session.forwarder import SessionForwarder

__all__ = [
    "SessionTransport",
    "LoggingSessionTransport",
    "WebSocketSessionTransport",
    "build_system_message",
    "create_session_transport",
    "SessionForwarder",
]
