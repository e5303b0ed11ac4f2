"""
Session Transport
=================

Delivery of visual context into the live voice/chat session.

Components:
    - SessionTransport: Protocol for session delivery
    - LoggingSessionTransport: Logs messages (no live session)
    - WebSocketSessionTransport: JSON messages over a WebSocket

Message Format:
    {
        "type": "add-message",
        "message": {"role": "system", "content": "Visual context: ..."}
    }

Design Rules:
    - send_system_message never raises; failures are logged and counted
    - The WebSocket reconnects lazily on the next send after a failure
"""

import asyncio
import json
import logging
from typing import List, Optional, Protocol

import websockets
from websockets.exceptions import WebSocketException


logger = logging.getLogger(__name__)


def build_system_message(content: str) -> dict:
    """Wrap text as an add-message system payload."""
    return {
        "type": "add-message",
        "message": {
            "role": "system",
            "content": content,
        },
    }


class SessionTransport(Protocol):
    """Protocol for delivering context into the session."""

    async def send_system_message(self, content: str) -> bool:
        ...

    async def close(self) -> None:
        ...


class LoggingSessionTransport:
    """Transport that only logs (and remembers) what would be sent."""

    def __init__(self, keep_last: int = 20) -> None:
        if keep_last < 1:
            raise ValueError("keep_last must be >= 1")
        self.keep_last = keep_last
        self.sent: List[dict] = []

    async def send_system_message(self, content: str) -> bool:
        message = build_system_message(content)
        self.sent.append(message)
        del self.sent[:-self.keep_last]
        logger.info(f"Session context: {content}")
        return True

    async def close(self) -> None:
        pass


class WebSocketSessionTransport:
    """
    WebSocket session transport.

    Attributes:
        url: WebSocket URL of the session bridge
        connected: Whether a connection is currently open

    Example:
        transport = WebSocketSessionTransport("ws://localhost:8003/ws/session")
        await transport.send_system_message("Visual context: a cat on a mat")
        await transport.close()
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._websocket = None
        self._sent_count: int = 0
        self._error_count: int = 0

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def _connect(self) -> None:
        self._websocket = await websockets.connect(
            self.url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
        )
        logger.info(f"Connected to session: {self.url}")

    async def send_system_message(self, content: str) -> bool:
        try:
            if self._websocket is None:
                await self._connect()
            await self._websocket.send(json.dumps(build_system_message(content)))
            self._sent_count += 1
            return True
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self._error_count += 1
            logger.warning(f"Session send failed ({self._error_count} total): {e}")
            await self._drop_connection()
            return False

    async def _drop_connection(self) -> None:
        websocket, self._websocket = self._websocket, None
        if websocket is None:
            return
        try:
            await websocket.close()
        except (OSError, WebSocketException) as e:
            logger.debug(f"Ignoring close error: {e}")

    async def close(self) -> None:
        await self._drop_connection()
        logger.info("Session transport closed")

    def get_metrics(self) -> dict:
        return {
            "url": self.url,
            "connected": self.connected,
            "sent_count": self._sent_count,
            "error_count": self._error_count,
        }


def create_session_transport(kind: str, url: Optional[str] = None):
    """
    Create a transport by name.

    Raises:
        ValueError: Unknown transport kind
    """
    if kind == "logging":
        return LoggingSessionTransport()
    if kind == "websocket":
        if not url:
            raise ValueError("session.url is required for the websocket transport")
        return WebSocketSessionTransport(url)
    raise ValueError(f"Unknown session transport: {kind}")
