from urban_auto.session.state_machine import (
    InvalidTransitionError,
    SessionState,
    SessionStateMachine,
    SessionTrigger,
)
from urban_auto.session.store import SessionStore

__all__ = [
    "SessionStore",
    "SessionStateMachine",
    "SessionState",
    "SessionTrigger",
    "InvalidTransitionError",
]
