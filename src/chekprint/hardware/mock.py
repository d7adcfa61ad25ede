"""Mock printer transport for tests and dry runs."""

import asyncio
import logging
from typing import Iterable, Optional

from chekprint.hardware.base import DiscoveredDevice, Transport

logger = logging.getLogger(__name__)

MOCK_DEVICE = DiscoveredDevice(id="mock-printer", name="Mock Printer")


class MockTransport(Transport):
    """Records written buffers instead of printing them."""

    name = "mock"

    def __init__(
        self,
        devices: Optional[Iterable[DiscoveredDevice]] = None,
        write_delay: float = 0.0,
        fail_writes: bool = False,
        **kwargs,
    ):
        """Initialize the mock transport.

        Args:
            devices: Devices reported by scans
            write_delay: Simulated printing time per write, in seconds
            fail_writes: Make every write fail, to exercise error paths
        """
        super().__init__(**kwargs)
        self._available = list(devices) if devices is not None else [MOCK_DEVICE]
        self.write_delay = write_delay
        self.fail_writes = fail_writes
        self.written: list[bytes] = []
        self.opened = False

    def _known_device(self, device_id: str) -> bool:
        return any(device.id == device_id for device in self._available)

    async def _discover(self, timeout: float) -> list[DiscoveredDevice]:
        return list(self._available)

    async def _open(self, device_id: str) -> None:
        logger.info(f"Mock printer connected: {device_id}")
        self.opened = True

    async def _send(self, data: bytes) -> None:
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise OSError("Simulated write failure")
        self.written.append(bytes(data))
        logger.info(f"Mock print: {len(data)} bytes")

    async def _close(self) -> None:
        self.opened = False
