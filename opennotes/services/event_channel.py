"""Bounded event channel between the pipeline and whatever renders it."""

import asyncio
import logging
from collections import deque
from typing import Deque, List, Optional

from pubsub import pub

from ..models.events import (
    TERMINAL_EVENT_TYPES,
    CompletionEvent,
    ErrorEvent,
    ProgressEvent,
    SessionEvent,
)

logger = logging.getLogger(__name__)

PROGRESS_TOPIC = "session.progress"
COMPLETE_TOPIC = "session.complete"
ERROR_TOPIC = "session.error"

_TOPICS = {
    ProgressEvent: PROGRESS_TOPIC,
    CompletionEvent: COMPLETE_TOPIC,
    ErrorEvent: ERROR_TOPIC,
}


class SessionEventChannel:
    """Queues progress, completion and error events for one session at a time.

    When the queue is full the oldest progress event is dropped. Terminal
    events are never dropped, and only the first one per session is accepted.
    """

    def __init__(self, maxsize: int = 64):
        self.maxsize = maxsize
        self._events: Deque[SessionEvent] = deque()
        self._available = asyncio.Event()
        self._terminal_sent = False

    @property
    def terminal_sent(self) -> bool:
        return self._terminal_sent

    def __len__(self) -> int:
        return len(self._events)

    def publish(self, event: SessionEvent) -> bool:
        """Queue ``event`` and broadcast it. Returns False if it was rejected."""
        terminal = isinstance(event, TERMINAL_EVENT_TYPES)
        if terminal and self._terminal_sent:
            logger.warning(f"Dropping {type(event).__name__}: session already finished")
            return False

        if len(self._events) >= self.maxsize and not self._drop_oldest_progress():
            if not terminal:
                logger.warning("Event channel full, dropping progress event")
                return False

        if terminal:
            self._terminal_sent = True
        self._events.append(event)
        self._available.set()

        pub.sendMessage(_TOPICS[type(event)], event=event)
        return True

    def _drop_oldest_progress(self) -> bool:
        for queued in self._events:
            if isinstance(queued, ProgressEvent):
                self._events.remove(queued)
                logger.debug(f"Event channel full, dropped progress {queued.progress}")
                return True
        return False

    def get_nowait(self) -> Optional[SessionEvent]:
        if not self._events:
            return None
        event = self._events.popleft()
        if not self._events:
            self._available.clear()
        return event

    async def get(self) -> SessionEvent:
        """Wait for the next event."""
        while not self._events:
            self._available.clear()
            await self._available.wait()
        return self.get_nowait()

    def drain(self) -> List[SessionEvent]:
        events = list(self._events)
        self._events.clear()
        self._available.clear()
        return events

    def reset(self) -> None:
        """Start a new session: forget queued events and the terminal flag."""
        self._events.clear()
        self._available.clear()
        self._terminal_sent = False
