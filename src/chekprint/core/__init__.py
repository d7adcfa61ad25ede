"""Core framework components for chekprint."""

from .state import ConnectionState, ConnectionStateMachine
from .events import EventBus, Event, EventType

__all__ = ["ConnectionState", "ConnectionStateMachine", "EventBus", "Event", "EventType"]
