"""
Printer connection manager

Sole owner of the printer adapter. Hides connection churn and transient failures
behind a single `print_with_retry(payload)` call.

Retry policy:
- Not connected -> one connect attempt; failure is raised to the caller right away.
- Up to `max_retries` print attempts in total (the first attempt counts).
- Between attempts: fixed delay, then disconnect + connect. A failed reconnect is
  logged and the next attempt runs anyway.
"""

import logging
import threading
import time
from enum import Enum, auto
from typing import Callable, Optional

from spooler.config import PrinterConfig, TransportKind
from spooler.cups_printer import CupsPrinter
from spooler.errors import PrintError
from spooler.printer_base import PrinterAdapter
from spooler.serial_printer import SerialPrinter
from spooler.simulated_printer import SimulatedPrinter

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


def create_adapter(config: PrinterConfig) -> PrinterAdapter:
    """Build the one adapter this process will use, chosen by transport kind."""
    if config.interface == TransportKind.USB:
        return CupsPrinter(config.usb_name, timeout=config.transport_timeout_s)
    if config.interface == TransportKind.SERIAL:
        return SerialPrinter(
            config.serial_port,
            baud_rate=config.serial_baud_rate,
            timeout=config.transport_timeout_s,
        )
    if config.interface == TransportKind.MOCK:
        return SimulatedPrinter(delay_ms=config.simulation_delay_ms)
    raise ValueError(f"Unsupported printer interface: {config.interface}")


class ConnectionManager:
    def __init__(
            self,
            config: PrinterConfig,
            adapter: Optional[PrinterAdapter] = None,
            sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config
        self._adapter = adapter if adapter is not None else create_adapter(config)
        self._sleep = sleep

        # Serializes every call into the adapter; lifecycle hooks never overlap a print.
        self._io_lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED

    @property
    def config(self) -> PrinterConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    # ---------- Lifecycle ----------

    def connect(self) -> None:
        with self._io_lock:
            self._state = ConnectionState.CONNECTING
            try:
                self._adapter.connect()
            except Exception:
                self._state = ConnectionState.DISCONNECTED
                raise
            self._state = ConnectionState.CONNECTED

    def disconnect(self) -> None:
        with self._io_lock:
            try:
                self._adapter.disconnect()
            finally:
                self._state = ConnectionState.DISCONNECTED

    def is_connected(self) -> bool:
        return self._adapter.is_connected()

    # ---------- Printing ----------

    def print_with_retry(self, payload: str) -> None:
        with self._io_lock:
            if not self._adapter.is_connected():
                self.connect()

            max_attempts = self._config.max_retries
            last_error: Optional[BaseException] = None

            for attempt in range(1, max_attempts + 1):
                try:
                    self._adapter.print_receipt(payload)
                    return
                except Exception as e:
                    last_error = e
                    logger.warning("Print attempt %d/%d failed: %s", attempt, max_attempts, e)

                if attempt < max_attempts:
                    self._state = ConnectionState.DISCONNECTED
                    self._sleep(self._config.retry_delay_s)
                    self._reconnect(next_attempt=attempt + 1)

            raise PrintError(
                f"Print failed after {max_attempts} attempts. "
                f"Last error: {last_error or 'Unknown error'}"
            ) from last_error

    def _reconnect(self, *, next_attempt: int) -> None:
        try:
            self.disconnect()
            self.connect()
        except Exception as e:
            # The next attempt still runs; its own failure is what gets reported.
            logger.warning("Failed to reconnect before retry %d: %s", next_attempt, e)
