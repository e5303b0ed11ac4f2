"""
Session Tests
=============

Forwarding of description updates into the live session.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vision_narrator.models import DescriptionUpdate
from vision_narrator.session import (
    LoggingSessionTransport,
    SessionForwarder,
    WebSocketSessionTransport,
    build_system_message,
    create_session_transport,
)


def make_update(description="A cat on a mat", user_prompt=None):
    return DescriptionUpdate(
        description=description,
        timestamp=1_000_000.0,
        frame_id="force_1_1",
        user_prompt=user_prompt,
    )


class TestSessionForwarder:
    """Tests for SessionForwarder."""

    @pytest.mark.asyncio
    async def test_forwards_visual_context_while_active(self):
        transport = LoggingSessionTransport()
        forwarder = SessionForwarder(transport)
        forwarder.active = True

        forwarder.on_description_update(make_update())
        await forwarder.drain()

        assert transport.sent == [build_system_message("Visual context: A cat on a mat")]
        assert forwarder.get_metrics()["forwarded"] == 1

    @pytest.mark.asyncio
    async def test_user_prompt_suffix(self):
        transport = LoggingSessionTransport()
        forwarder = SessionForwarder(transport)
        forwarder.active = True

        forwarder.on_description_update(make_update(user_prompt="what is this?"))
        await forwarder.drain()

        content = transport.sent[0]["message"]["content"]
        assert content == 'Visual context: A cat on a mat (User asked: "what is this?")'
        assert forwarder.history[0].endswith('A cat on a mat (User asked: "what is this?")')

    @pytest.mark.asyncio
    async def test_ignored_when_inactive(self):
        transport = LoggingSessionTransport()
        forwarder = SessionForwarder(transport)

        forwarder.on_description_update(make_update())
        await forwarder.drain()

        assert transport.sent == []
        assert forwarder.history == []

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        forwarder = SessionForwarder(LoggingSessionTransport(), history_size=2)
        forwarder.active = True

        for text in ("one", "two", "three"):
            forwarder.on_description_update(make_update(text))
        await forwarder.drain()

        assert len(forwarder.history) == 2
        assert forwarder.history[-1].endswith(": three")

        forwarder.clear_history()
        assert forwarder.history == []


class TestTransports:
    """Tests for session transports."""

    def test_factory(self):
        assert isinstance(create_session_transport("logging"), LoggingSessionTransport)
        assert isinstance(
            create_session_transport("websocket", "ws://localhost:8003/ws/session"),
            WebSocketSessionTransport,
        )

    def test_factory_rejects_unknown_or_incomplete(self):
        with pytest.raises(ValueError):
            create_session_transport("carrier-pigeon")
        with pytest.raises(ValueError):
            create_session_transport("websocket", None)

    @pytest.mark.asyncio
    async def test_logging_transport_keeps_last(self):
        transport = LoggingSessionTransport(keep_last=2)
        for i in range(5):
            assert await transport.send_system_message(f"m{i}") is True

        assert [m["message"]["content"] for m in transport.sent] == ["m3", "m4"]

    @pytest.mark.asyncio
    async def test_websocket_sends_json(self):
        websocket = MagicMock()
        websocket.send = AsyncMock()
        websocket.close = AsyncMock()

        with patch(
            "vision_narrator.session.transport.websockets.connect",
            AsyncMock(return_value=websocket),
        ):
            transport = WebSocketSessionTransport("ws://session")
            assert await transport.send_system_message("Visual context: a cat") is True

        sent = json.loads(websocket.send.call_args.args[0])
        assert sent == build_system_message("Visual context: a cat")
        assert transport.connected is True

        await transport.close()
        websocket.close.assert_awaited_once()
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_websocket_failure_is_reported_not_raised(self):
        with patch(
            "vision_narrator.session.transport.websockets.connect",
            AsyncMock(side_effect=OSError("connection refused")),
        ):
            transport = WebSocketSessionTransport("ws://session")
            assert await transport.send_system_message("Visual context: a cat") is False

        assert transport.get_metrics()["error_count"] == 1
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_websocket_connect_timeout_is_reported_not_raised(self):
        with patch(
            "vision_narrator.session.transport.websockets.connect",
            AsyncMock(side_effect=asyncio.TimeoutError()),
        ):
            transport = WebSocketSessionTransport("ws://session")
            assert await transport.send_system_message("Visual context: a cat") is False

        assert transport.get_metrics()["error_count"] == 1

    def test_logging_transport_requires_positive_keep_last(self):
        with pytest.raises(ValueError):
            LoggingSessionTransport(keep_last=0)
