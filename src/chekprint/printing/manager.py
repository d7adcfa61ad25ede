"""Print manager for chekprint receipts."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from chekprint.core.events import (
    Event,
    EventBus,
    EventType,
    print_complete_event,
    print_error_event,
)
from chekprint.errors import NotConnectedError, PrintCancelledError
from chekprint.hardware.base import DiscoveredDevice, Transport
from chekprint.printing.document import ReceiptDocument, TemplateSettings
from chekprint.printing.encoder import CharacterProtocol, Profile, encode
from chekprint.printing.engine import render
from chekprint.printing.template import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclass
class PrintJob:
    """A queued print request."""

    job_id: str
    document: Optional[Union[ReceiptDocument, Mapping[str, Any]]] = None
    raw: Optional[bytes] = None
    done: asyncio.Future = field(default_factory=lambda: asyncio.get_running_loop().create_future())


class PrintManager:
    """Queue-based printing manager for receipts.

    Jobs are rendered and written one at a time, so the transport never
    sees overlapping writes. Outcomes are reported as PRINT_COMPLETE /
    PRINT_ERROR events and through the future returned by ``submit``.
    """

    def __init__(
        self,
        transport: Transport,
        event_bus: Optional[EventBus] = None,
        profile: Optional[Profile] = None,
        scan_timeout: float = 5.0,
    ) -> None:
        self._transport = transport
        self._event_bus = event_bus or EventBus()
        self._profile = profile or CharacterProtocol()
        self._scan_timeout = scan_timeout
        self._queue: asyncio.Queue[PrintJob] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None
        self._dispatch_task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._ids = itertools.count(1)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    async def start(self) -> None:
        """Start processing queued jobs."""
        if self._running:
            return
        self._running = True
        self._dispatch_task = asyncio.create_task(self._event_bus.run())
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the print manager and disconnect the printer.

        Jobs that were not written fail with PrintCancelledError.
        """
        self._running = False
        await _cancel(self._task)
        self._task = None
        self._cancel_pending()
        await self._transport.disconnect()

        await _cancel(self._dispatch_task)
        self._dispatch_task = None
        await self._event_bus.process_queue()

    async def scan(self, timeout: Optional[float] = None) -> list[DiscoveredDevice]:
        """Discover printers."""
        return await self._transport.scan(timeout or self._scan_timeout)

    async def connect(self, device_id: str) -> None:
        """Connect to a discovered printer."""
        await self._transport.connect(device_id)

    async def disconnect(self) -> None:
        """Disconnect from the printer."""
        await self._transport.disconnect()

    def submit(self, document: Union[ReceiptDocument, Mapping[str, Any]]) -> asyncio.Future:
        """Queue a receipt for printing.

        Returns:
            Future resolving to the number of bytes written, or failing
            with the rendering or transport error
        """
        return self._enqueue(PrintJob(job_id=self._next_id(), document=document))

    def submit_raw(self, data: bytes) -> asyncio.Future:
        """Queue an already-encoded command buffer."""
        return self._enqueue(PrintJob(job_id=self._next_id(), raw=bytes(data)))

    async def print_document(self, document: Union[ReceiptDocument, Mapping[str, Any]]) -> int:
        """Print a receipt and wait for it to be written."""
        return await self.submit(document)

    async def print_raw(self, data: bytes) -> int:
        """Print raw command bytes and wait for them to be written."""
        return await self.submit_raw(data)

    async def print_test_receipt(
        self,
        printed_at: Optional[datetime] = None,
        settings: Optional[TemplateSettings] = None,
    ) -> int:
        """Print the fixed test receipt."""
        if not self._transport.is_connected:
            raise NotConnectedError("Not connected")
        elements = TemplateRenderer().test_receipt(printed_at or datetime.now(), settings)
        return await self.print_raw(encode(elements, self._profile))

    def _next_id(self) -> str:
        return f"job-{next(self._ids)}"

    def _enqueue(self, job: PrintJob) -> asyncio.Future:
        self._queue.put_nowait(job)
        logger.info(f"Queued print job {job.job_id}")
        return job.done

    def _cancel_pending(self) -> None:
        jobs = []
        while not self._queue.empty():
            jobs.append(self._queue.get_nowait())
            self._queue.task_done()
        for job in jobs:
            _fail(job, PrintCancelledError(f"Print job {job.job_id} cancelled"))
        if jobs:
            logger.warning(f"Dropped {len(jobs)} queued print job(s)")

    async def _run(self) -> None:
        """Process print jobs sequentially."""
        while self._running:
            job = await self._queue.get()
            try:
                await self._process(job)
            finally:
                self._queue.task_done()

    async def _process(self, job: PrintJob) -> None:
        self._event_bus.emit(Event(
            EventType.PRINT_START,
            data={"job_id": job.job_id},
            source="print_manager",
        ))
        try:
            if not self._transport.is_connected:
                raise NotConnectedError("Printer not connected")

            data = job.raw if job.raw is not None else render(job.document, self._profile)
            written = await self._transport.write(data)

        except asyncio.CancelledError:
            logger.warning(f"Print job {job.job_id} cancelled")
            self._event_bus.emit(print_error_event(job.job_id, "cancelled"))
            _fail(job, PrintCancelledError(f"Print job {job.job_id} cancelled"))
            raise
        except Exception as exc:
            logger.error(f"Print job {job.job_id} failed: {exc}")
            self._event_bus.emit(print_error_event(job.job_id, str(exc)))
            _fail(job, exc)
            return

        logger.info(f"Print job {job.job_id} complete ({written} bytes)")
        self._event_bus.emit(print_complete_event(job.job_id, written))
        if not job.done.done():
            job.done.set_result(written)


def _fail(job: PrintJob, exc: BaseException) -> None:
    if not job.done.done():
        job.done.set_exception(exc)


async def _cancel(task: Optional[asyncio.Task[None]]) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
