"""Tests for the session state machine."""

from __future__ import annotations

import pytest

from lspbridge.errors import SessionStateError
from lspbridge.session.state import SessionState, StateMachine


class TestStateMachine:
    def test_starts_created(self) -> None:
        machine = StateMachine()
        assert machine.state is SessionState.CREATED
        assert machine.history == [SessionState.CREATED]

    def test_happy_path(self) -> None:
        machine = StateMachine()
        for state in (
            SessionState.STARTING,
            SessionState.RUNNING,
            SessionState.STOPPING,
            SessionState.STOPPED,
        ):
            machine.advance(state)
        assert machine.history == [
            SessionState.CREATED,
            SessionState.STARTING,
            SessionState.RUNNING,
            SessionState.STOPPING,
            SessionState.STOPPED,
        ]

    def test_starting_can_fail(self) -> None:
        machine = StateMachine()
        machine.advance(SessionState.STARTING)
        assert machine.advance(SessionState.FAILED) is SessionState.STARTING
        assert machine.state.is_terminal

    @pytest.mark.parametrize(
        ("path", "target"),
        [
            ((), SessionState.RUNNING),
            ((SessionState.STARTING,), SessionState.STOPPING),
            ((SessionState.STARTING, SessionState.RUNNING), SessionState.FAILED),
            ((SessionState.STARTING, SessionState.FAILED), SessionState.STARTING),
            ((SessionState.STARTING, SessionState.RUNNING), SessionState.RUNNING),
        ],
    )
    def test_illegal_transitions(self, path, target) -> None:
        machine = StateMachine()
        for state in path:
            machine.advance(state)
        with pytest.raises(SessionStateError, match="Illegal session transition"):
            machine.advance(target)

    def test_terminal_states(self) -> None:
        assert SessionState.STOPPED.is_terminal
        assert SessionState.FAILED.is_terminal
        assert not SessionState.RUNNING.is_terminal
