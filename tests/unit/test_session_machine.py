"""Unit tests for the session state machine."""

from pathlib import Path

import pytest

from opennotes.errors import ErrorKind, NoAudioSourceError
from opennotes.models import (
    DisplayingState,
    ErrorInfo,
    ErrorState,
    IdleState,
    ProcessingState,
    RecordingState,
    SessionStatus,
    TranscriptResult,
)
from opennotes.services.session_machine import (
    STATE_TOPIC,
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

ERROR = ErrorInfo(kind=ErrorKind.RUNTIME, message="boom")


@pytest.fixture
def result(sample_transcript):
    return TranscriptResult(transcript=sample_transcript, transcript_path=Path("/x/a-transcript.json"))


@pytest.fixture
def all_states(result):
    return {
        "idle": IdleState(),
        "recording": RecordingState(duration=3),
        "processing": ProcessingState(progress=30, message="Transcribing..."),
        "displaying": DisplayingState(result=result),
        "error": ErrorState(error=ERROR),
    }


@pytest.mark.unit
class TestTransition:
    """Test cases for the pure transition function."""

    def test_happy_path(self, result):
        state = transition(IdleState(), StartRecording())
        assert state == RecordingState(duration=0)

        state = transition(state, TickDuration(1))
        assert state == RecordingState(duration=1)

        state = transition(state, StopRecording())
        assert state == ProcessingState(progress=0, message="Preparing...")

        state = transition(state, UpdateProgress(95, "Generating summary..."))
        assert state.progress == 95

        state = transition(state, DisplayResult(result))
        assert state.status is SessionStatus.DISPLAYING
        assert state.result is result

    def test_summary_failure_still_displays(self, sample_transcript):
        degraded = TranscriptResult(transcript=sample_transcript, transcript_path=Path("/x/a-transcript.json"),
                                    summary_error="Summarization failed after 3 attempt(s)")

        state = transition(ProcessingState(progress=95), DisplayResult(degraded))

        assert isinstance(state, DisplayingState)
        assert state.result.summary_error

    @pytest.mark.parametrize("name", ["idle", "recording", "processing"])
    def test_fail_from_non_terminal_states(self, all_states, name):
        state = transition(all_states[name], Fail(ERROR))

        assert state == ErrorState(error=ERROR)

    @pytest.mark.parametrize("name", ["displaying", "error"])
    def test_reset_from_terminal_states(self, all_states, name):
        assert transition(all_states[name], Reset()) == IdleState()

    @pytest.mark.parametrize("name", ["idle", "recording", "processing"])
    def test_reset_elsewhere_is_noop(self, all_states, name):
        state = all_states[name]

        assert transition(state, Reset()) is state

    @pytest.mark.parametrize("name", ["displaying", "error"])
    @pytest.mark.parametrize("action", [
        StartRecording(), TickDuration(5), StopRecording(), UpdateProgress(50, "x"), Fail(ERROR),
    ])
    def test_terminal_states_only_accept_reset(self, all_states, name, action):
        state = all_states[name]

        assert transition(state, action) is state

    def test_undefined_actions_are_noops(self, all_states, result):
        assert transition(all_states["idle"], StopRecording()) is all_states["idle"]
        assert transition(all_states["idle"], TickDuration(1)) is all_states["idle"]
        assert transition(all_states["recording"], StartRecording()) is all_states["recording"]
        assert transition(all_states["recording"], UpdateProgress(10, "x")) is all_states["recording"]
        assert transition(all_states["recording"], DisplayResult(result)) is all_states["recording"]
        assert transition(all_states["processing"], TickDuration(9)) is all_states["processing"]
        assert transition(all_states["processing"], StopRecording()) is all_states["processing"]


@pytest.mark.unit
class TestSessionStateMachine:
    """Test cases for SessionStateMachine."""

    def test_initial_state(self):
        assert SessionStateMachine().state == IdleState()

    def test_dispatch_reports_change(self):
        machine = SessionStateMachine()

        assert machine.dispatch(StartRecording()) is True
        assert machine.dispatch(StartRecording()) is False
        assert machine.dispatch(TickDuration(0)) is False
        assert machine.state == RecordingState(duration=0)

    def test_changes_are_published(self, pubsub_events):
        listener = pubsub_events(STATE_TOPIC)
        machine = SessionStateMachine()

        machine.dispatch(StartRecording())
        machine.dispatch(Reset())
        machine.dispatch(Fail(ErrorInfo.from_exception(NoAudioSourceError())))

        assert len(listener.events) == 2
        assert listener.events[0].previous == IdleState()
        assert listener.events[0].current == RecordingState(duration=0)
        assert listener.events[1].current.status is SessionStatus.ERROR
        assert listener.events[1].current.error.kind is ErrorKind.PERMISSION
