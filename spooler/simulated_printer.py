import logging
import threading
import time
from typing import Callable, List

from spooler.printer_base import PrinterAdapter

logger = logging.getLogger(__name__)


class SimulatedPrinter(PrinterAdapter):
    """
    Printer stand-in for development and test harnesses.

    Every operation succeeds after `delay_ms`. Printed receipts go to the log and to
    `printed` instead of paper.
    """

    def __init__(self, delay_ms: int = 500, sleep: Callable[[float], None] = time.sleep):
        super().__init__()
        self.delay_ms = delay_ms
        self._sleep = sleep
        self._printed_lock = threading.Lock()
        self._printed: List[str] = []

    @property
    def printed(self) -> List[str]:
        with self._printed_lock:
            return list(self._printed)

    def connect(self) -> None:
        logger.info("[MOCK] Connecting to mock printer...")
        self._delay()
        self._connected = True
        logger.info("[MOCK] Mock printer connected")

    def disconnect(self) -> None:
        self._delay()
        self._connected = False
        logger.info("[MOCK] Mock printer disconnected")

    def _print(self, payload: str) -> None:
        logger.info("[MOCK PRINT] Receipt data:\n%s", payload)
        with self._printed_lock:
            self._printed.append(payload)
        self._delay()

    def _delay(self) -> None:
        if self.delay_ms > 0:
            self._sleep(self.delay_ms / 1000.0)
