"""
Abstract base class for printer transports.

A transport owns discovery, the connection and serialized delivery of
command buffers to one printer. The print pipeline only needs
``write``; how the connection was established is the transport's
business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import asyncio
import logging

from chekprint.core.events import Event, EventBus, EventType
from chekprint.core.state import ConnectionState, ConnectionStateMachine
from chekprint.errors import (
    ConnectionFailedError,
    DeviceNotFoundError,
    NotConnectedError,
    TransportBusyError,
    TransportError,
    TransportStateError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredDevice:
    """A printer found during a scan."""

    id: str
    name: str = "Unknown"


class Transport(ABC):
    """Base class for printer transports.

    Subclasses implement the raw I/O hooks (``_discover``, ``_open``,
    ``_send``, ``_close``); this class enforces the connection state
    machine and the single-writer rule around them.
    """

    name = "transport"

    def __init__(
        self,
        event_bus: EventBus | None = None,
        write_timeout: float = 15.0,
    ) -> None:
        self._event_bus = event_bus
        self._machine = ConnectionStateMachine(event_bus, source=self.name)
        self._devices: dict[str, DiscoveredDevice] = {}
        self.write_timeout = write_timeout

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._machine.state

    @property
    def device_id(self) -> str | None:
        """Id of the connected device."""
        return self._machine.context.device_id

    @property
    def is_connected(self) -> bool:
        """Check if a printer is connected."""
        return self.state in (ConnectionState.CONNECTED, ConnectionState.WRITING)

    @property
    def is_busy(self) -> bool:
        """Check if a write is outstanding."""
        return self.state == ConnectionState.WRITING

    @property
    def devices(self) -> list[DiscoveredDevice]:
        """Devices found by the last scan."""
        return list(self._devices.values())

    async def scan(self, timeout: float = 5.0) -> list[DiscoveredDevice]:
        """
        Discover printers.

        Args:
            timeout: Maximum time to spend scanning, in seconds

        Returns:
            Devices found, also kept for a following connect
        """
        if self.state == ConnectionState.SCANNING:
            raise TransportBusyError("Already scanning")
        if not self._machine.transition(ConnectionState.SCANNING):
            raise TransportStateError(f"Cannot scan while {self.state.name}")

        self._publish(EventType.SCAN_STARTED, {"timeout": timeout})
        try:
            devices = await asyncio.wait_for(self._discover(timeout), timeout=timeout + 1.0)
        except Exception as e:
            logger.error(f"Scan failed: {e}")
            self._machine.fail(str(e))
            self._machine.recover()
            raise TransportError(f"Scan failed: {e}") from e

        self._devices = {device.id: device for device in devices}
        self._machine.transition(ConnectionState.IDLE)
        self._publish(EventType.SCAN_COMPLETE, {
            "devices": [{"id": d.id, "name": d.name} for d in devices],
        })
        logger.info(f"Scan found {len(devices)} device(s)")
        return devices

    async def connect(self, device_id: str) -> None:
        """
        Connect to a printer.

        Raises:
            DeviceNotFoundError: If the device is unknown
            ConnectionFailedError: If opening the device failed
        """
        if self.is_connected and self.device_id == device_id:
            return
        if self.state != ConnectionState.IDLE:
            raise TransportStateError(f"Cannot connect while {self.state.name}")
        if not self._known_device(device_id):
            raise DeviceNotFoundError(f"Device not found: {device_id}")

        self._machine.transition(ConnectionState.CONNECTING, device_id=device_id)
        try:
            await self._open(device_id)
        except Exception as e:
            logger.error(f"Failed to connect to printer {device_id}: {e}")
            self._machine.fail(str(e))
            self._machine.recover()
            if isinstance(e, TransportError):
                raise
            raise ConnectionFailedError(str(e)) from e

        self._machine.transition(ConnectionState.CONNECTED, device_id=device_id)
        logger.info(f"{self.name} printer connected: {device_id}")

    async def disconnect(self) -> None:
        """Disconnect from the printer."""
        if self.state == ConnectionState.WRITING:
            raise TransportBusyError("Cannot disconnect during a write")
        if self.state == ConnectionState.FAILED:
            self._machine.recover()
            return
        if self.state != ConnectionState.CONNECTED:
            return

        await self._close()
        self._machine.transition(ConnectionState.IDLE)
        logger.info(f"{self.name} printer disconnected")

    async def write(self, data: bytes) -> int:
        """
        Deliver one command buffer to the printer.

        Args:
            data: Complete command buffer of a print job

        Returns:
            Number of bytes written

        Raises:
            TransportBusyError: If another write is outstanding
            NotConnectedError: If no printer is connected
            TransportError: If delivery failed; the connection is dropped
        """
        if self.is_busy:
            raise TransportBusyError("Printer is busy")
        if not self.is_connected:
            raise NotConnectedError("Not connected")

        self._machine.transition(ConnectionState.WRITING)
        try:
            await asyncio.wait_for(self._send(data), timeout=self.write_timeout)
        except asyncio.CancelledError:
            logger.warning("Write cancelled, dropping connection")
            self._machine.fail("Write cancelled")
            await self._close()
            self._machine.recover()
            raise
        except Exception as e:
            logger.error(f"Write failed: {e}")
            self._machine.fail(str(e))
            await self._close()
            self._machine.recover()
            raise TransportError(f"Write failed: {e}") from e

        self._machine.transition(ConnectionState.CONNECTED)
        logger.debug(f"Wrote {len(data)} bytes")
        return len(data)

    def _known_device(self, device_id: str) -> bool:
        """Check whether a device id may be connected to."""
        return device_id in self._devices

    def _publish(self, event_type: EventType, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.queue_event(Event(event_type, data=data, source=self.name))

    @abstractmethod
    async def _discover(self, timeout: float) -> list[DiscoveredDevice]:
        """Find nearby printers."""
        ...

    @abstractmethod
    async def _open(self, device_id: str) -> None:
        """Open the device."""
        ...

    @abstractmethod
    async def _send(self, data: bytes) -> None:
        """Write bytes to the open device."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        """Release the device. Must be safe to call when not open."""
        ...
