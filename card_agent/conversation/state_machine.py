"""
Finite state machine for the resolution session lifecycle.

A session moves forward only: intake_complete -> call_handled ->
summary_ready. Every transition is explicitly declared; anything else
is rejected with InvalidStateError naming the triggers that would
have been accepted.

Usage:
    sm = SessionStateMachine()
    sm.transition(TransitionTrigger.CALL_HANDLED)
    assert sm.current_state == SessionStatus.CALL_HANDLED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from card_agent.errors import InvalidStateError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """All possible states in a session lifecycle."""
    INTAKE_COMPLETE = "intake_complete"
    CALL_HANDLED = "call_handled"
    SUMMARY_READY = "summary_ready"


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    CALL_HANDLED = "call_handled"
    SUMMARY_RENDERED = "summary_rendered"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: SessionStatus
    to_state: SessionStatus
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: SessionStatus
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class SessionStateMachine:
    """Forward-only state machine owned by a single session."""

    TRANSITIONS: list[Transition] = [
        Transition(SessionStatus.INTAKE_COMPLETE, SessionStatus.CALL_HANDLED,
                   TransitionTrigger.CALL_HANDLED),
        Transition(SessionStatus.CALL_HANDLED, SessionStatus.SUMMARY_READY,
                   TransitionTrigger.SUMMARY_RENDERED),
    ]

    def __init__(self) -> None:
        self._current_state = SessionStatus.INTAKE_COMPLETE
        self._history: list[StateEntry] = [
            StateEntry(state=SessionStatus.INTAKE_COMPLETE, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> SessionStatus:
        return self._current_state

    def can_transition(self, trigger: TransitionTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def transition(self, trigger: TransitionTrigger) -> SessionStatus:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new session state.

        Raises:
            InvalidStateError: If no valid transition exists.
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
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidStateError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}",
            context={"state": self._current_state.value, "trigger": trigger.value},
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state == SessionStatus.SUMMARY_READY
