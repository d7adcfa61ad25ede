"""Serial printer transport.

Covers thermal printers on UART, USB-serial adapters and Bluetooth SPP
links (paired printers appear as /dev/rfcomm* on Linux,
/dev/cu.* on macOS, COM ports on Windows).

Override the port with env var: CHEKPRINT_PRINTER_PORT=/dev/rfcomm0
"""

import asyncio
import logging
import os
from typing import Optional

import serial
from serial.tools import list_ports

from chekprint.hardware.base import DiscoveredDevice, Transport

logger = logging.getLogger(__name__)


class SerialTransport(Transport):
    """Transport for ESC/POS or TSPL printers on a serial port."""

    name = "serial"

    # Default UART settings
    DEFAULT_BAUD = 9600

    def __init__(
        self,
        baudrate: int = DEFAULT_BAUD,
        **kwargs,
    ):
        """Initialize the serial transport.

        Args:
            baudrate: Baud rate
            **kwargs: Passed to Transport (event_bus, write_timeout)
        """
        super().__init__(**kwargs)
        self._baudrate = baudrate
        self._serial: Optional[serial.Serial] = None

    @property
    def baudrate(self) -> int:
        return self._baudrate

    def _known_device(self, device_id: str) -> bool:
        # Ports can be opened without a prior scan
        return super()._known_device(device_id) or os.path.exists(device_id)

    async def _discover(self, timeout: float) -> list[DiscoveredDevice]:
        ports = await asyncio.to_thread(list_ports.comports)
        return [
            DiscoveredDevice(id=port.device, name=port.description or "Unknown")
            for port in ports
        ]

    async def _open(self, device_id: str) -> None:
        self._serial = await asyncio.to_thread(
            serial.Serial,
            port=device_id,
            baudrate=self._baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=2.0,
            write_timeout=self.write_timeout,
        )
        logger.debug(f"Serial port {device_id} opened at {self._baudrate} baud")

    async def _send(self, data: bytes) -> None:
        await asyncio.to_thread(self._write_blocking, data)

    def _write_blocking(self, data: bytes) -> None:
        """Blocking write (runs in thread pool)."""
        if self._serial is None:
            raise RuntimeError("Serial port not open")
        self._serial.write(data)
        self._serial.flush()

    async def _close(self) -> None:
        if self._serial is not None:
            serial_port, self._serial = self._serial, None
            await asyncio.to_thread(serial_port.close)
