"""
Finite state machine for the session lifecycle.

Defines four session states and explicit transitions with triggers.
The session store drives this machine from bootstrap, manual sign-in and
sign-out, and provider-pushed session events, so "who is logged in" only
ever changes along a defined edge.

Usage:
    sm = SessionStateMachine()
    sm.transition(SessionTrigger.BOOTSTRAP_STARTED)
    assert sm.current_state == SessionState.LOADING
"""

import logging
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """All possible states of the session store."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionTrigger(str, Enum):
    """Events that cause state transitions."""
    BOOTSTRAP_STARTED = "bootstrap_started"
    SESSION_FOUND = "session_found"
    NO_SESSION = "no_session"
    BOOTSTRAP_TIMEOUT = "bootstrap_timeout"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: SessionState
    to_state: SessionState
    trigger: SessionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: SessionState
    entered_at: datetime
    trigger: Optional[SessionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


class SessionStateMachine:
    """
    Deterministic state machine for the session lifecycle.

    LOADING always resolves: either the provider answers (SESSION_FOUND /
    NO_SESSION) or the bootstrap timeout fires. Sign-in and sign-out are
    accepted from every state so manual operations and provider events can
    arrive before, during or after bootstrap.
    """

    TRANSITIONS: list[Transition] = [
        # --- Bootstrap ---
        Transition(SessionState.UNINITIALIZED, SessionState.LOADING,
                   SessionTrigger.BOOTSTRAP_STARTED),
        Transition(SessionState.LOADING, SessionState.AUTHENTICATED,
                   SessionTrigger.SESSION_FOUND),
        Transition(SessionState.LOADING, SessionState.ANONYMOUS,
                   SessionTrigger.NO_SESSION),
        Transition(SessionState.LOADING, SessionState.ANONYMOUS,
                   SessionTrigger.BOOTSTRAP_TIMEOUT),

        # --- Sign-in ---
        Transition(SessionState.UNINITIALIZED, SessionState.AUTHENTICATED,
                   SessionTrigger.SIGNED_IN),
        Transition(SessionState.LOADING, SessionState.AUTHENTICATED,
                   SessionTrigger.SIGNED_IN),
        Transition(SessionState.ANONYMOUS, SessionState.AUTHENTICATED,
                   SessionTrigger.SIGNED_IN),
        Transition(SessionState.AUTHENTICATED, SessionState.AUTHENTICATED,
                   SessionTrigger.SIGNED_IN),

        # --- Sign-out ---
        Transition(SessionState.UNINITIALIZED, SessionState.ANONYMOUS,
                   SessionTrigger.SIGNED_OUT),
        Transition(SessionState.LOADING, SessionState.ANONYMOUS,
                   SessionTrigger.SIGNED_OUT),
        Transition(SessionState.AUTHENTICATED, SessionState.ANONYMOUS,
                   SessionTrigger.SIGNED_OUT),
        Transition(SessionState.ANONYMOUS, SessionState.ANONYMOUS,
                   SessionTrigger.SIGNED_OUT),
    ]

    def __init__(self) -> None:
        self._current_state = SessionState.UNINITIALIZED
        self._history: list[StateEntry] = [
            StateEntry(state=SessionState.UNINITIALIZED, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> SessionState:
        return self._current_state

    def transition(self, trigger: SessionTrigger) -> SessionState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new session state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))

                logger.debug(
                    "Session transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can_transition(self, trigger: SessionTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[SessionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_resolved(self) -> bool:
        """True once bootstrap has settled on AUTHENTICATED or ANONYMOUS."""
        return self._current_state in (SessionState.AUTHENTICATED, SessionState.ANONYMOUS)
