"""View state machine for the screen controllers.

Every screen moves through ``loading -> ready -> (error | idle)``. The render
screen adds a ``submitting`` sub-state and a ``submitted`` outcome. Each
controller owns a ScreenStateMachine configured with its own transition table
(LIST_TRANSITIONS, RENDER_TRANSITIONS, HOSTED_TRANSITIONS).

The state machine:
- Enforces the controller's transition table
- Records every transition with its timestamp
- Announces transitions through an EventEmitter keyed by the target state

Usage:
    >>> sm = ScreenStateMachine(screen="list", transitions=LIST_TRANSITIONS)
    >>> sm.state
    <ScreenState.LOADING: 'loading'>
    >>> sm.transition_to(ScreenState.READY)
    >>> sm.can_transition_to(ScreenState.SUBMITTING)
    False
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Set

from formio_bridge.events import EventEmitter, EventListener
from formio_bridge.types import ScreenState

logger = logging.getLogger(__name__)

TransitionTable = Dict[ScreenState, Set[ScreenState]]


class InvalidScreenTransitionError(Exception):
    """Raised when attempting a transition the screen's table forbids.

    Attributes:
        current_state: The state before the attempted transition
        target_state: The state that was attempted
    """

    def __init__(self, current_state: ScreenState, target_state: ScreenState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Form list: load on mount, refresh and retry re-enter loading
LIST_TRANSITIONS: TransitionTable = {
    ScreenState.LOADING: {ScreenState.READY, ScreenState.ERROR},
    ScreenState.READY: {ScreenState.LOADING},
    ScreenState.ERROR: {ScreenState.LOADING},
}

# Native render screen: retry re-renders from loading; a form left in error
# by a failed validation can be corrected and submitted again
RENDER_TRANSITIONS: TransitionTable = {
    ScreenState.LOADING: {ScreenState.READY, ScreenState.SUBMITTING, ScreenState.ERROR},
    ScreenState.READY: {ScreenState.SUBMITTING, ScreenState.ERROR, ScreenState.LOADING},
    ScreenState.SUBMITTING: {ScreenState.SUBMITTED, ScreenState.ERROR},
    ScreenState.SUBMITTED: {ScreenState.LOADING},
    ScreenState.ERROR: {ScreenState.LOADING, ScreenState.READY, ScreenState.SUBMITTING},
}

# Hosted page screen: idle once the page reported a submission
HOSTED_TRANSITIONS: TransitionTable = {
    ScreenState.LOADING: {ScreenState.READY, ScreenState.ERROR, ScreenState.IDLE},
    ScreenState.READY: {ScreenState.LOADING, ScreenState.ERROR, ScreenState.IDLE},
    ScreenState.ERROR: {ScreenState.LOADING, ScreenState.IDLE},
    ScreenState.IDLE: set(),
}


@dataclass(frozen=True)
class ScreenTransition:
    """Record of one state change.

    ``type`` is the target state so listeners can subscribe per state.
    """
    screen: str
    from_state: ScreenState
    to_state: ScreenState
    ts: datetime

    @property
    def type(self) -> ScreenState:
        return self.to_state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screen": self.screen,
            "from": self.from_state.value,
            "to": self.to_state.value,
            "ts": self.ts.isoformat(),
        }


@dataclass
class ScreenStateMachine:
    """State machine for one screen controller.

    Attributes:
        screen: Name of the owning screen, used in logs
        transitions: Allowed transitions for this screen
        state: Current state

    Examples:
        >>> sm = ScreenStateMachine(screen="render", transitions=RENDER_TRANSITIONS)
        >>> sm.transition_to(ScreenState.READY)
        >>> sm.transition_to(ScreenState.SUBMITTING)
        >>> [t.to_state.value for t in sm.get_history()]
        ['ready', 'submitting']
    """

    screen: str
    transitions: TransitionTable
    state: ScreenState = ScreenState.LOADING
    events: EventEmitter = field(default_factory=EventEmitter, repr=False)
    _history: List[ScreenTransition] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: ScreenState) -> bool:
        return target_state in self.transitions.get(self.state, set())

    def transition_to(self, target_state: ScreenState) -> None:
        """Move to ``target_state`` and notify listeners.

        Raises:
            InvalidScreenTransitionError: If the table forbids the transition
        """
        if not self.can_transition_to(target_state):
            allowed = sorted(s.value for s in self.transitions.get(self.state, set()))
            raise InvalidScreenTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid {self.screen} screen transition: cannot go from "
                    f"'{self.state.value}' to '{target_state.value}'. "
                    + (f"Allowed: {', '.join(allowed)}" if allowed else "No transitions allowed.")
                ),
            )

        transition = ScreenTransition(
            screen=self.screen,
            from_state=self.state,
            to_state=target_state,
            ts=datetime.now(timezone.utc),
        )
        self.state = target_state
        self._history.append(transition)
        logger.debug("%s screen: %s -> %s", self.screen, transition.from_state.value, target_state.value)
        self.events.emit(transition)

    def try_transition_to(self, target_state: ScreenState) -> bool:
        """Transition if allowed; otherwise log and keep the current state.

        Used for events that may arrive late, twice, or out of order.
        """
        if self.state == target_state:
            return False
        if not self.can_transition_to(target_state):
            logger.debug(
                "%s screen: ignoring %s while %s", self.screen, target_state.value, self.state.value
            )
            return False
        self.transition_to(target_state)
        return True

    def on_enter(self, state: ScreenState, listener: EventListener) -> None:
        self.events.on(state, listener)

    def is_terminal(self) -> bool:
        return not self.transitions.get(self.state)

    def get_history(self) -> List[ScreenTransition]:
        return list(self._history)


__all__ = [
    "TransitionTable",
    "InvalidScreenTransitionError",
    "LIST_TRANSITIONS",
    "RENDER_TRANSITIONS",
    "HOSTED_TRANSITIONS",
    "ScreenTransition",
    "ScreenStateMachine",
]
