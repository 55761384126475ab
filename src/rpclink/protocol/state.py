"""Connection state machine for the client lifecycle."""

import logging
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Client connection states.

    State transitions:
        DISCONNECTED -> CONNECTING -> CONNECTED
                            \\            |
                             -> DISCONNECTED <-
    """

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: ConnectionState, to_state: ConnectionState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


# Type for state transition callbacks
StateTransitionCallback = Callable[[ConnectionState, ConnectionState], None]


class ConnectionStateMachine:
    """
    Tracks the client connection state.

    Enforces valid state transitions and notifies listeners
    when transitions occur.
    """

    VALID_TRANSITIONS: dict[ConnectionState, list[ConnectionState]] = {
        ConnectionState.DISCONNECTED: [ConnectionState.CONNECTING],
        ConnectionState.CONNECTING: [
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTED,  # Connection failed
        ],
        ConnectionState.CONNECTED: [ConnectionState.DISCONNECTED],
    }

    def __init__(self, initial_state: ConnectionState = ConnectionState.DISCONNECTED):
        self._state = initial_state
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    def can_transition_to(self, new_state: ConnectionState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition(self, new_state: ConnectionState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The target state.

        Raises:
            InvalidStateTransition: If the transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)

        old_state = self._state
        self._state = new_state
        logger.debug(f"Connection state {old_state} -> {new_state}")

        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("State transition listener failed")

    def try_transition(self, new_state: ConnectionState) -> bool:
        """
        Transition if the move is valid, otherwise leave the state alone.

        Returns:
            True if the transition happened.
        """
        if not self.can_transition_to(new_state):
            return False
        self.transition(new_state)
        return True

    def on_transition(self, callback: StateTransitionCallback) -> None:
        """
        Register a callback for state transitions.

        Args:
            callback: Function called with (old_state, new_state) on transitions.
        """
        self._listeners.append(callback)

    def __str__(self) -> str:
        return f"ConnectionStateMachine({self._state.name})"

    def __repr__(self) -> str:
        return f"ConnectionStateMachine(state={self._state!r})"
