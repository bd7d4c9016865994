"""Session state machine: the only place session state changes."""

import logging
from dataclasses import dataclass
from typing import Union

from pubsub import pub

from ..models.events import StateChangedEvent
from ..models.session import (
    DisplayingState,
    ErrorInfo,
    ErrorState,
    IdleState,
    ProcessingState,
    RecordingState,
    SessionState,
    TranscriptResult,
)

logger = logging.getLogger(__name__)

STATE_TOPIC = "session.state"


@dataclass(frozen=True)
class StartRecording:
    pass


@dataclass(frozen=True)
class TickDuration:
    duration: int


@dataclass(frozen=True)
class StopRecording:
    pass


@dataclass(frozen=True)
class UpdateProgress:
    progress: int
    message: str


@dataclass(frozen=True)
class DisplayResult:
    result: TranscriptResult


@dataclass(frozen=True)
class Fail:
    error: ErrorInfo


@dataclass(frozen=True)
class Reset:
    pass


SessionAction = Union[StartRecording, TickDuration, StopRecording, UpdateProgress,
                      DisplayResult, Fail, Reset]

_FAILABLE = (IdleState, RecordingState, ProcessingState)
_TERMINAL = (DisplayingState, ErrorState)


def transition(state: SessionState, action: SessionAction) -> SessionState:
    """Compute the next state.

    Actions that are not defined for the current state return ``state``
    itself, so callers can detect a no-op with ``is``.
    """
    if isinstance(action, StartRecording) and isinstance(state, IdleState):
        return RecordingState(duration=0)

    if isinstance(action, TickDuration) and isinstance(state, RecordingState):
        if action.duration == state.duration:
            return state
        return RecordingState(duration=action.duration)

    if isinstance(action, StopRecording) and isinstance(state, RecordingState):
        return ProcessingState(progress=0, message="Preparing...")

    if isinstance(action, UpdateProgress) and isinstance(state, ProcessingState):
        if (action.progress, action.message) == (state.progress, state.message):
            return state
        return ProcessingState(progress=action.progress, message=action.message)

    if isinstance(action, DisplayResult) and isinstance(state, ProcessingState):
        return DisplayingState(result=action.result)

    if isinstance(action, Fail) and isinstance(state, _FAILABLE):
        return ErrorState(error=action.error)

    if isinstance(action, Reset) and isinstance(state, _TERMINAL):
        return IdleState()

    return state


class SessionStateMachine:
    """Holds the current session state and publishes every change."""

    def __init__(self, topic: str = STATE_TOPIC):
        self.topic = topic
        self._state: SessionState = IdleState()

    @property
    def state(self) -> SessionState:
        return self._state

    def dispatch(self, action: SessionAction) -> bool:
        """Apply ``action``. Returns True if the state changed."""
        previous = self._state
        current = transition(previous, action)
        if current is previous:
            logger.debug(f"Ignored {type(action).__name__} in {previous.status.value}")
            return False

        self._state = current
        if previous.status is not current.status:
            logger.info(f"Session state: {previous.status.value} -> {current.status.value}")
        pub.sendMessage(self.topic, event=StateChangedEvent(previous=previous, current=current))
        return True
