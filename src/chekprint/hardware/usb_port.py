"""USB printer transport via pyusb.

Talks to the printer's bulk OUT endpoint directly, so it also works on
macOS where no /dev/usb/lp* devices exist. Device ids have the form
``"vvvv:pppp"`` (hex vendor and product ids).
"""

import asyncio
import logging
from typing import Optional

import usb.core
import usb.util

from chekprint.errors import DeviceNotFoundError
from chekprint.hardware.base import DiscoveredDevice, Transport

logger = logging.getLogger(__name__)

USB_CLASS_PRINTER = 0x07


def _is_printer(dev) -> bool:
    """Match devices exposing a USB printer class interface."""
    if dev.bDeviceClass == USB_CLASS_PRINTER:
        return True
    for cfg in dev:
        if usb.util.find_descriptor(cfg, bInterfaceClass=USB_CLASS_PRINTER) is not None:
            return True
    return False


def parse_device_id(device_id: str) -> tuple[int, int]:
    """Split a ``"vvvv:pppp"`` id into vendor and product ids."""
    try:
        vendor, product = device_id.split(":", 1)
        return int(vendor, 16), int(product, 16)
    except ValueError:
        raise DeviceNotFoundError(f"Invalid USB device id: {device_id!r}") from None


class UsbTransport(Transport):
    """Transport for printers on a USB bulk endpoint."""

    name = "usb"

    def __init__(self, vendor_id: Optional[int] = None, **kwargs):
        """Initialize the USB transport.

        Args:
            vendor_id: Restrict scans to one vendor; None lists all printers
            **kwargs: Passed to Transport (event_bus, write_timeout)
        """
        super().__init__(**kwargs)
        self._vendor_id = vendor_id
        self.dev = None
        self.ep_out: Optional[int] = None

    def _known_device(self, device_id: str) -> bool:
        # Any well-formed vendor:product id may be opened directly
        parse_device_id(device_id)
        return True

    async def _discover(self, timeout: float) -> list[DiscoveredDevice]:
        return await asyncio.to_thread(self._find_printers)

    def _find_printers(self) -> list[DiscoveredDevice]:
        if self._vendor_id is not None:
            found = usb.core.find(find_all=True, idVendor=self._vendor_id)
        else:
            found = usb.core.find(find_all=True, custom_match=_is_printer)

        devices = []
        for dev in found:
            device_id = f"{dev.idVendor:04x}:{dev.idProduct:04x}"
            try:
                name = f"{dev.manufacturer or ''} {dev.product or ''}".strip() or "Unknown"
            except (usb.core.USBError, ValueError):
                # String descriptors need permissions we may not have
                name = "Unknown"
            devices.append(DiscoveredDevice(id=device_id, name=name))
        return devices

    async def _open(self, device_id: str) -> None:
        vendor_id, product_id = parse_device_id(device_id)
        await asyncio.to_thread(self._open_blocking, vendor_id, product_id)

    def _open_blocking(self, vendor_id: int, product_id: int) -> None:
        dev = usb.core.find(idVendor=vendor_id, idProduct=product_id)
        if dev is None:
            raise DeviceNotFoundError(f"USB printer {vendor_id:04x}:{product_id:04x} not found")

        logger.info(f"Found USB printer: {vendor_id:04x}:{product_id:04x}")

        # Detach kernel driver if necessary (Linux)
        try:
            if dev.is_kernel_driver_active(0):
                dev.detach_kernel_driver(0)
                logger.debug("Detached kernel driver")
        except (NotImplementedError, usb.core.USBError) as e:
            logger.debug(f"Kernel driver check skipped: {e}")

        try:
            dev.set_configuration()
        except usb.core.USBError as e:
            logger.debug(f"Configuration note: {e}")  # May already be configured

        usb.util.claim_interface(dev, 0)

        intf = dev.get_active_configuration()[(0, 0)]
        ep = usb.util.find_descriptor(
            intf,
            custom_match=lambda e: (
                usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_OUT
            ),
        )
        if ep is None:
            usb.util.release_interface(dev, 0)
            raise DeviceNotFoundError("USB printer has no OUT endpoint")

        self.dev = dev
        self.ep_out = ep.bEndpointAddress
        logger.debug(f"USB OUT endpoint: 0x{self.ep_out:02x}")

    async def _send(self, data: bytes) -> None:
        await asyncio.to_thread(self._write_blocking, data)

    def _write_blocking(self, data: bytes) -> None:
        """Blocking write (runs in thread pool)."""
        if self.dev is None or self.ep_out is None:
            raise RuntimeError("USB printer not open")
        self.dev.write(self.ep_out, data, timeout=int(self.write_timeout * 1000))

    async def _close(self) -> None:
        if self.dev is None:
            return
        dev, self.dev, self.ep_out = self.dev, None, None
        try:
            await asyncio.to_thread(usb.util.release_interface, dev, 0)
        except usb.core.USBError as e:
            logger.debug(f"Release interface note: {e}")
        usb.util.dispose_resources(dev)
