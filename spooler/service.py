"""
Print service

Wires one connection manager (and its adapter) to one job sequencer and exposes the
handful of calls the HTTP layer needs: submit, status for health checks, and
start/stop lifecycle hooks.
"""

import logging
import time
from concurrent.futures import Future
from typing import Callable, Optional

from spooler.config import PrinterConfig
from spooler.connection_manager import ConnectionManager
from spooler.health import HealthStatus
from spooler.job_sequencer import JobSequencer
from spooler.printer_base import PrinterAdapter

logger = logging.getLogger(__name__)


class PrintService:
    def __init__(
            self,
            config: PrinterConfig,
            adapter: Optional[PrinterAdapter] = None,
            sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.connection = ConnectionManager(config, adapter=adapter, sleep=sleep)
        self.sequencer = JobSequencer(self.connection.print_with_retry)

    # ---------- Lifecycle ----------

    def start(self) -> bool:
        """
        Best-effort initial connect. Returns whether the printer came up.

        Failure is ok: the first print job retries the connection.
        """
        try:
            self.connect()
        except Exception as e:
            logger.warning("Could not connect to printer on startup: %s", e)
            logger.warning("Service will continue, but print jobs may fail until printer is connected")
            return False

        logger.info("Printer connected (%s)", self.config.interface.value)
        return True

    def stop(self) -> None:
        self.sequencer.close()
        try:
            self.disconnect()
        except Exception as e:
            logger.exception("Error while disconnecting printer during shutdown: %s", e)

    def connect(self) -> None:
        self.connection.connect()

    def disconnect(self) -> None:
        self.connection.disconnect()

    # ---------- Public API ----------

    def submit(self, payload: str) -> Future:
        return self.sequencer.submit(payload)

    def clear(self) -> int:
        return self.sequencer.clear()

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    def pending_count(self) -> int:
        return self.sequencer.pending_count

    def is_dispatching(self) -> bool:
        return self.sequencer.is_dispatching

    def get_health(self) -> HealthStatus:
        return HealthStatus.from_snapshot(
            printer_connected=self.is_connected(),
            queue_length=self.pending_count(),
            processing=self.is_dispatching(),
        )
