"""
Processor Observers
===================

Notification interface between the processor and the session/UI layer.

Components:
    - VisionObserver: Protocol with one hook per event type
    - CallbackObserver: Adapts plain callables to the protocol
    - ObserverRegistry: Subscription list with fault-isolated delivery

Design Rules:
    - Notifications are fire-and-forget; return values are ignored
    - Delivery is synchronous, in subscription order, one event at a time
    - An observer exception is logged and never reaches the processor
"""

import logging
from typing import Callable, List, Optional, Protocol

from vision_narrator.models.events import DescriptionUpdate, ProcessingStateChange


logger = logging.getLogger(__name__)


class VisionObserver(Protocol):
    """Receiver of processor notifications."""

    def on_description_update(self, update: DescriptionUpdate) -> None:
        ...

    def on_processing_state_change(self, change: ProcessingStateChange) -> None:
        ...


class CallbackObserver:
    """
    Observer built from optional callables.

    Example:
        observer = CallbackObserver(
            on_description=lambda text: print(text),
            on_processing=lambda busy: print("busy" if busy else "idle"),
        )
    """

    def __init__(
        self,
        on_description: Optional[Callable[[str], None]] = None,
        on_processing: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._on_description = on_description
        self._on_processing = on_processing

    def on_description_update(self, update: DescriptionUpdate) -> None:
        if self._on_description is not None:
            self._on_description(update.description)

    def on_processing_state_change(self, change: ProcessingStateChange) -> None:
        if self._on_processing is not None:
            self._on_processing(change.is_processing)


class ObserverRegistry:
    """Ordered set of observers with fault-isolated delivery."""

    def __init__(self) -> None:
        self._observers: List[VisionObserver] = []

    def subscribe(self, observer: VisionObserver) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            Function that removes the observer again
        """
        if observer not in self._observers:
            self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def __len__(self) -> int:
        return len(self._observers)

    def publish_description(self, update: DescriptionUpdate) -> None:
        for observer in list(self._observers):
            try:
                observer.on_description_update(update)
            except Exception as e:
                logger.error(f"Observer {observer!r} failed on description update: {e}")

    def publish_processing(self, change: ProcessingStateChange) -> None:
        for observer in list(self._observers):
            try:
                observer.on_processing_state_change(change)
            except Exception as e:
                logger.error(f"Observer {observer!r} failed on processing change: {e}")
