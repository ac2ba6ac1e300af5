"""
Invocation State Machine
------------------------
Lifecycle of one tool call inside a batch.

    ACCEPTED -> AUTHORIZED | REJECTED
    AUTHORIZED -> DISPATCHED | REJECTED   (validation failure)
    DISPATCHED -> COMPLETED | FAILED

REJECTED, COMPLETED and FAILED are terminal. Every transition is logged
and delivered to listeners.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Set
import logging


class InvocationState(Enum):
    """States of a single tool call."""
    ACCEPTED = auto()     # Request received
    AUTHORIZED = auto()   # Tool found and callable
    REJECTED = auto()     # Unknown, unauthorized, or invalid payload
    DISPATCHED = auto()   # Handed to the tool
    COMPLETED = auto()    # Tool returned
    FAILED = auto()       # Tool raised, timed out, or was cancelled


TERMINAL_STATES: Set[InvocationState] = {
    InvocationState.REJECTED,
    InvocationState.COMPLETED,
    InvocationState.FAILED,
}


VALID_TRANSITIONS: Dict[InvocationState, Set[InvocationState]] = {
    InvocationState.ACCEPTED: {InvocationState.AUTHORIZED, InvocationState.REJECTED},
    InvocationState.AUTHORIZED: {InvocationState.DISPATCHED, InvocationState.REJECTED},
    InvocationState.DISPATCHED: {InvocationState.COMPLETED, InvocationState.FAILED},
    InvocationState.REJECTED: set(),
    InvocationState.COMPLETED: set(),
    InvocationState.FAILED: set(),
}


@dataclass
class StateTransition:
    """Record of a state transition for one call."""
    call_id: str
    tool_name: str
    from_state: InvocationState
    to_state: InvocationState
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return (
            f"StateTransition({self.call_id}: {self.from_state.name} → "
            f"{self.to_state.name}, reason='{self.reason}')"
        )


TransitionListener = Callable[[StateTransition], None]


class InvocationLifecycle:
    """
    State tracker for one tool call.

    Not shared between calls, so it needs no locking.
    """

    def __init__(
        self,
        call_id: str,
        tool_name: str,
        listeners: Optional[List[TransitionListener]] = None
    ):
        self.call_id = call_id
        self.tool_name = tool_name
        self._state = InvocationState.ACCEPTED
        self._history: List[StateTransition] = []
        self._listeners = list(listeners or [])
        self._logger = logging.getLogger("toolbelt.core.state")

    @property
    def state(self) -> InvocationState:
        return self._state

    @property
    def history(self) -> List[StateTransition]:
        return self._history.copy()

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def can_transition(self, to_state: InvocationState) -> bool:
        return to_state in VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: InvocationState, reason: str = "") -> StateTransition:
        """
        Move to a new state.

        Raises:
            ValueError: If the transition is not in VALID_TRANSITIONS
        """
        if not self.can_transition(to_state):
            valid_names = [s.name for s in VALID_TRANSITIONS.get(self._state, set())]
            raise ValueError(
                f"Invalid transition for call {self.call_id}: "
                f"{self._state.name} → {to_state.name}. Valid targets: {valid_names}"
            )

        record = StateTransition(
            call_id=self.call_id,
            tool_name=self.tool_name,
            from_state=self._state,
            to_state=to_state,
            reason=reason,
        )
        self._state = to_state
        self._history.append(record)

        self._logger.debug(
            f"Call {self.call_id} ({self.tool_name}): "
            f"{record.from_state.name} → {to_state.name} ({reason})"
        )

        for listener in self._listeners:
            try:
                listener(record)
            except Exception as e:
                self._logger.warning(f"Listener error: {e}")

        return record
