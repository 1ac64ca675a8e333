# spooler/errors.py

from __future__ import annotations


class PrinterError(RuntimeError):
    """Base class for everything the spooler raises about a printer or a job."""


class PrinterConnectionError(PrinterError):
    """Raised when the transport to the printer cannot be established or opened."""


class PrinterNotConnectedError(PrinterError):
    """Raised when a print is attempted on an adapter that is not connected."""

    def __init__(self, message: str = "Printer is not connected") -> None:
        super().__init__(message)


class PrintError(PrinterError):
    """Raised when the printer is reachable but the print itself failed or was rejected."""


class QueueClearedError(PrinterError):
    """Raised on a job's handle when the job was discarded by clear() before dispatch."""

    def __init__(self, message: str = "Print queue was cleared") -> None:
        super().__init__(message)
