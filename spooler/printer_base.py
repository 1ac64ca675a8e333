# spooler/printer_base.py

from __future__ import annotations

from abc import ABC, abstractmethod

from spooler.errors import PrinterNotConnectedError


class PrinterAdapter(ABC):
    """
    Abstract receipt printer interface.

    The connection manager owns retry and reconnect behavior. Concrete implementations
    talk to one transport (CUPS queue, serial/Bluetooth port, simulation) and own
    that transport's protocol encoding.

    Contract shared by every adapter:
    - `print_receipt` refuses to run while disconnected and touches no transport.
    - `disconnect` is idempotent.
    - `connect` on an open adapter tears the old transport down before reopening.
    """

    def __init__(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        """Last known connection state. Not re-verified against the device."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """
        Open (or reopen) the transport.

        Implementations should raise PrinterConnectionError on failure.
        """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self) -> None:
        """Release the transport. Safe to call when already disconnected."""
        raise NotImplementedError

    def print_receipt(self, payload: str) -> None:
        """
        Print `payload` as one receipt.

        Raises PrinterNotConnectedError before any I/O if the adapter is disconnected,
        otherwise whatever `_print` raises (PrintError for transport faults).
        """
        self._ensure_connected()
        self._print(payload)

    @abstractmethod
    def _print(self, payload: str) -> None:
        raise NotImplementedError

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise PrinterNotConnectedError()
