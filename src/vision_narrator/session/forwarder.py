"""
Session Forwarder
=================

Observer that pushes significant scene changes into the live session.

On every description update while a call is active:
    - Append "HH:MM:SS: <description>" to a bounded history
    - Send "Visual context: <description>" as a system message

A user prompt, when present, is appended as ' (User asked: "<prompt>")'.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Deque, List, Set

from vision_narrator.models.events import DescriptionUpdate, ProcessingStateChange
from vision_narrator.session.transport import SessionTransport


logger = logging.getLogger(__name__)


class SessionForwarder:
    """
    Forwards description updates to a SessionTransport.

    Sends are scheduled as tasks on the running loop so the processor
    never waits on the session.

    Attributes:
        active: Whether a call is in progress (updates are ignored otherwise)
    """

    def __init__(self, transport: SessionTransport, history_size: int = 5) -> None:
        self._transport = transport
        self._history: Deque[str] = deque(maxlen=history_size)
        self._pending: Set[asyncio.Task] = set()
        self.active: bool = False
        self._forwarded: int = 0

    @property
    def history(self) -> List[str]:
        """Most recent forwarded entries, oldest first."""
        return list(self._history)

    def on_description_update(self, update: DescriptionUpdate) -> None:
        if not self.active:
            return

        suffix = f' (User asked: "{update.user_prompt}")' if update.user_prompt else ""
        clock = datetime.fromtimestamp(update.timestamp).strftime("%H:%M:%S")
        self._history.append(f"{clock}: {update.description}{suffix}")

        content = f"Visual context: {update.description}{suffix}"
        task = asyncio.get_running_loop().create_task(self._send(content))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def on_processing_state_change(self, change: ProcessingStateChange) -> None:
        pass

    async def _send(self, content: str) -> None:
        if await self._transport.send_system_message(content):
            self._forwarded += 1

    async def drain(self) -> None:
        """Wait for scheduled sends to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def clear_history(self) -> None:
        self._history.clear()

    def get_metrics(self) -> dict:
        return {
            "active": self.active,
            "forwarded": self._forwarded,
            "pending": len(self._pending),
            "history_size": len(self._history),
        }
