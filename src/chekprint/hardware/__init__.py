"""Printer transports for chekprint."""

from .base import DiscoveredDevice, Transport
from .factory import create_transport
from .mock import MockTransport

__all__ = [
    # Base classes
    "Transport",
    "DiscoveredDevice",
    # Implementations
    "MockTransport",
    "create_transport",
]
