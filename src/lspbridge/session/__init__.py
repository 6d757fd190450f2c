"""Session lifecycle: state machine, session binding and the manager."""

from lspbridge.session.manager import SessionManager
from lspbridge.session.router import HostMessageRouter
from lspbridge.session.session import Session, Started, StartResult
from lspbridge.session.state import SessionState, StateMachine

__all__ = [
    "HostMessageRouter",
    "Session",
    "SessionManager",
    "SessionState",
    "StartResult",
    "Started",
    "StateMachine",
]
