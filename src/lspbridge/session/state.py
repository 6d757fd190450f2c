"""Session lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from lspbridge.errors import SessionStateError


class SessionState(Enum):
    """Lifecycle of one session.

    CREATED -> STARTING -> RUNNING -> STOPPING -> STOPPED
                       \\-> FAILED
    """

    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.STOPPED, SessionState.FAILED)


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.CREATED: frozenset({SessionState.STARTING}),
    SessionState.STARTING: frozenset({SessionState.RUNNING, SessionState.FAILED}),
    SessionState.RUNNING: frozenset({SessionState.STOPPING}),
    SessionState.STOPPING: frozenset({SessionState.STOPPED}),
    SessionState.STOPPED: frozenset(),
    SessionState.FAILED: frozenset(),
}


@dataclass
class StateMachine:
    """Enforces the transition table and records the visited states."""

    state: SessionState = SessionState.CREATED
    history: list[SessionState] = field(default_factory=lambda: [SessionState.CREATED])

    def advance(self, target: SessionState) -> SessionState:
        """Move to ``target``, returning the previous state.

        Raises:
            SessionStateError: If the transition is not in the table.
        """
        if target not in _TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Illegal session transition {self.state.value} -> {target.value}"
            )
        previous, self.state = self.state, target
        self.history.append(target)
        return previous
