# spooler/serial_printer.py

from __future__ import annotations

import logging
from typing import Any, Optional

import serial

from spooler.errors import PrinterConnectionError, PrintError
from spooler.printer_base import PrinterAdapter

logger = logging.getLogger(__name__)

# ESC/POS control sequences
RESET_SEQUENCE = b"\x1b\x40"  # ESC @
CUT_SEQUENCE = b"\x1d\x56\x41\x00"  # GS V A 0

DEFAULT_BAUD_RATE = 9600


def build_receipt_bytes(payload: str) -> bytes:
    """Reset, UTF-8 payload, two line feeds, paper cut. Sent as one buffer."""
    return RESET_SEQUENCE + payload.encode("utf-8") + b"\n\n" + CUT_SEQUENCE


class SerialPrinter(PrinterAdapter):
    """
    Thermal printer on a serial or Bluetooth (RFCOMM) port speaking ESC/POS.

    `port` is anything pyserial's `serial_for_url` accepts: a device path
    ("/dev/ttyUSB0", "/dev/rfcomm0", "COM3") or a URL ("loop://", "socket://host:port").
    """

    def __init__(
            self,
            port: str,
            baud_rate: int = DEFAULT_BAUD_RATE,
            timeout: float = 5.0,
    ) -> None:
        super().__init__()
        if not port:
            raise ValueError("Serial port is required")
        self._port_name = port
        self._baud_rate = baud_rate
        self._timeout = timeout
        self._serial: Optional[Any] = None  # serial.Serial instance

    @property
    def port_name(self) -> str:
        return self._port_name

    # ---------- Connection ----------

    def connect(self) -> None:
        if self._serial is not None:
            self._close_port()

        try:
            port = serial.serial_for_url(
                self._port_name,
                baudrate=self._baud_rate,
                timeout=self._timeout,
                write_timeout=self._timeout,
                do_not_open=True,
            )
            port.open()
        except (serial.SerialException, ValueError, OSError) as e:
            self._connected = False
            raise PrinterConnectionError(
                f'Failed to open serial port "{self._port_name}": {e}'
            ) from e

        self._serial = port
        self._connected = True
        logger.info("Opened serial port %s at %d baud", self._port_name, self._baud_rate)

    def disconnect(self) -> None:
        if self._serial is None:
            self._connected = False
            return
        self._close_port()

    def _close_port(self) -> None:
        port, self._serial = self._serial, None
        self._connected = False
        if not port.is_open:
            return
        try:
            port.close()
        except (serial.SerialException, OSError) as e:
            raise PrinterConnectionError(f"Failed to close serial port: {e}") from e

    # ---------- Printing ----------

    def _print(self, payload: str) -> None:
        if self._serial is None or not self._serial.is_open:
            raise PrintError("Serial port is not open")

        data = build_receipt_bytes(payload)

        try:
            written = self._serial.write(data)
        except (serial.SerialException, OSError) as e:
            raise PrintError(f"Failed to write to serial port: {e}") from e

        if written is not None and written != len(data):
            raise PrintError(
                f"Failed to write to serial port: wrote {written} of {len(data)} bytes"
            )

        # Blocks until the output buffer has drained to the device.
        try:
            self._serial.flush()
        except (serial.SerialException, OSError) as e:
            raise PrintError(f"Failed to drain serial port: {e}") from e
