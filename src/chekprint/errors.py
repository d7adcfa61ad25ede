"""Exception types for chekprint."""


class ChekPrintError(Exception):
    """Base class for all chekprint errors."""


class StructuralError(ChekPrintError, ValueError):
    """The caller asked for a layout that can't exist.

    Raised for a page width below one column or a negative feed count.
    This is the only error the rendering pipeline surfaces; everything
    else falls back to a documented default.
    """


class TransportError(ChekPrintError):
    """Base class for printer transport failures."""


class DeviceNotFoundError(TransportError):
    """The requested device is not among the discovered ones."""


class ConnectionFailedError(TransportError):
    """Opening the connection to the printer failed."""


class NotConnectedError(TransportError):
    """An operation needs a connected printer."""


class TransportBusyError(TransportError):
    """A write was issued while another one is still outstanding."""


class TransportStateError(TransportError):
    """The transport can't perform the operation in its current state."""


class PrintCancelledError(ChekPrintError):
    """The print manager stopped before the job was written."""
