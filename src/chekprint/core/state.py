"""
Connection state machine for printer transports.

States:
    IDLE: No device connected
    SCANNING: Discovering nearby printers
    CONNECTING: Opening a connection to a chosen device
    CONNECTED: Ready to accept a print buffer
    WRITING: A print buffer is being delivered
    FAILED: The last scan, connect or write attempt failed

Every accepted transition is published on the event bus as a
CONNECTION_CHANGED event instead of invoking callbacks.
"""

from enum import Enum, auto
from dataclasses import dataclass
import logging

from chekprint.core.events import Event, EventBus, EventType

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Transport connection states."""
    IDLE = auto()
    SCANNING = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    WRITING = auto()
    FAILED = auto()


@dataclass
class ConnectionContext:
    """Details of the current connection."""
    device_id: str | None = None
    error_message: str | None = None


class ConnectionStateMachine:
    """
    Tracks the lifecycle of one printer connection.

    The machine only records and validates transitions; transports
    decide when to move and do the actual I/O.
    """

    # Valid state transitions
    VALID_TRANSITIONS: list[tuple[ConnectionState, ConnectionState]] = [
        # From IDLE
        (ConnectionState.IDLE, ConnectionState.SCANNING),
        (ConnectionState.IDLE, ConnectionState.CONNECTING),

        # From SCANNING
        (ConnectionState.SCANNING, ConnectionState.IDLE),
        (ConnectionState.SCANNING, ConnectionState.FAILED),

        # From CONNECTING
        (ConnectionState.CONNECTING, ConnectionState.CONNECTED),
        (ConnectionState.CONNECTING, ConnectionState.FAILED),

        # From CONNECTED
        (ConnectionState.CONNECTED, ConnectionState.WRITING),
        (ConnectionState.CONNECTED, ConnectionState.IDLE),  # Disconnect

        # From WRITING
        (ConnectionState.WRITING, ConnectionState.CONNECTED),
        (ConnectionState.WRITING, ConnectionState.FAILED),

        # From FAILED
        (ConnectionState.FAILED, ConnectionState.IDLE),  # Recovery
    ]

    def __init__(
        self,
        event_bus: EventBus | None = None,
        source: str = "transport",
    ) -> None:
        self._state = ConnectionState.IDLE
        self._context = ConnectionContext()
        self._event_bus = event_bus
        self._source = source
        self._valid_transitions = set(self.VALID_TRANSITIONS)

    @property
    def state(self) -> ConnectionState:
        """Get current state."""
        return self._state

    @property
    def context(self) -> ConnectionContext:
        """Get current context."""
        return self._context

    def can_transition(self, to_state: ConnectionState) -> bool:
        """Check if transition to given state is valid."""
        return (self._state, to_state) in self._valid_transitions

    def transition(
        self,
        to_state: ConnectionState,
        device_id: str | None = None,
        error: str | None = None,
    ) -> bool:
        """
        Attempt to transition to a new state.

        Args:
            to_state: Target state
            device_id: Device the transition concerns, if any
            error: Failure description when entering FAILED

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_state):
            logger.warning(
                f"Invalid transition: {self._state.name} -> {to_state.name}"
            )
            return False

        old_state = self._state
        self._state = to_state

        if device_id is not None:
            self._context.device_id = device_id
        if to_state == ConnectionState.IDLE:
            self._context = ConnectionContext()
        self._context.error_message = error if to_state == ConnectionState.FAILED else None

        logger.info(f"Connection: {old_state.name} -> {to_state.name}")

        if self._event_bus is not None:
            self._event_bus.queue_event(Event(
                EventType.CONNECTION_CHANGED,
                data={
                    "from": old_state.name,
                    "to": to_state.name,
                    "device_id": self._context.device_id,
                    "error": self._context.error_message,
                },
                source=self._source,
            ))

        return True

    def fail(self, message: str) -> bool:
        """Convenience method to enter the failed state."""
        return self.transition(ConnectionState.FAILED, error=message)

    def recover(self) -> bool:
        """Return to IDLE after a failure."""
        if self._state == ConnectionState.FAILED:
            return self.transition(ConnectionState.IDLE)
        return False
