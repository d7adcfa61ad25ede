"""Transport construction from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chekprint.core.events import EventBus
from chekprint.hardware.base import Transport

if TYPE_CHECKING:
    from chekprint.settings import Settings

logger = logging.getLogger(__name__)


def create_transport(
    settings: Settings,
    event_bus: EventBus | None = None,
    mock: bool = False,
) -> Transport:
    """Factory function to create the configured transport.

    Args:
        settings: Application settings
        event_bus: Bus receiving connection and scan events
        mock: Force the mock transport

    Returns:
        Transport instance (not yet connected)
    """
    kind = "mock" if mock else settings.transport

    if kind == "usb":
        from chekprint.hardware.usb_port import UsbTransport
        return UsbTransport(
            vendor_id=settings.usb_vendor_id,
            event_bus=event_bus,
            write_timeout=settings.write_timeout,
        )

    if kind == "serial":
        from chekprint.hardware.serial_port import SerialTransport
        return SerialTransport(
            baudrate=settings.baudrate,
            event_bus=event_bus,
            write_timeout=settings.write_timeout,
        )

    from chekprint.hardware.mock import MockTransport
    logger.info("Using mock printer transport")
    return MockTransport(event_bus=event_bus, write_timeout=settings.write_timeout)
