"""Session orchestration services."""

from .event_channel import SessionEventChannel
from .session_controller import SessionController, progress_message
from .session_machine import (
    DisplayResult,
    Fail,
    Reset,
    SessionStateMachine,
    StartRecording,
    StopRecording,
    TickDuration,
    UpdateProgress,
    transition,
)

__all__ = [
    'SessionEventChannel',
    'SessionController',
    'progress_message',
    'SessionStateMachine',
    'transition',
    'StartRecording',
    'TickDuration',
    'StopRecording',
    'UpdateProgress',
    'DisplayResult',
    'Fail',
    'Reset',
]
