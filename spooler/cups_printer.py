# spooler/cups_printer.py

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Optional, Sequence

from spooler.errors import PrinterConnectionError, PrintError
from spooler.printer_base import PrinterAdapter

logger = logging.getLogger(__name__)


class CupsPrinter(PrinterAdapter):
    """
    USB receipt printer reached through a local CUPS destination.

    Uses the `lpstat` / `lp` command line clients so the queue configuration
    (driver, USB device URI) stays in CUPS.

    Design constraints (intentional):
    - One `lp` invocation per receipt, submitted raw so the printer sees our bytes.
    - `connect` only verifies the destination; CUPS owns the actual USB handle.
    """

    def __init__(
            self,
            printer_name: str,
            lp_path: str = "lp",
            lpstat_path: str = "lpstat",
            timeout: float = 5.0,
            extra_args: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__()
        if not printer_name:
            raise ValueError("USB printer name is required")
        self._printer_name = printer_name
        self._lp_path = lp_path
        self._lpstat_path = lpstat_path
        self._timeout = timeout
        self._extra_args = list(extra_args or [])
        self._buffer = bytearray()

    @property
    def printer_name(self) -> str:
        return self._printer_name

    # ---------- Connection ----------

    def connect(self) -> None:
        # Reconnecting always starts from a clean, disconnected adapter.
        self.disconnect()

        for tool in (self._lp_path, self._lpstat_path):
            if shutil.which(tool) is None:
                raise PrinterConnectionError(f"CUPS not available: '{tool}' not found in PATH")

        try:
            proc = subprocess.run(
                [self._lpstat_path, "-p", self._printer_name],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PrinterConnectionError(
                f'Failed to connect to USB printer "{self._printer_name}": lpstat timed out'
            ) from e
        except OSError as e:
            raise PrinterConnectionError(
                f'Failed to connect to USB printer "{self._printer_name}": {e}'
            ) from e

        out = ((proc.stdout or "") + (proc.stderr or "")).strip()
        if proc.returncode != 0:
            raise PrinterConnectionError(
                f'Failed to connect to USB printer "{self._printer_name}": {out or "not found"}'
            )
        if "disabled" in out.lower():
            raise PrinterConnectionError(f'USB printer "{self._printer_name}" is not connected: {out}')

        self._connected = True
        logger.info("Connected to CUPS destination %s", self._printer_name)

    def disconnect(self) -> None:
        self._connected = False
        self._buffer.clear()

    # ---------- Printing ----------

    def _print(self, payload: str) -> None:
        # Drop anything left over from a failed attempt, then stage one line.
        self._buffer.clear()
        self._buffer.extend(payload.encode("utf-8"))
        self._buffer.extend(b"\n")

        cmd = [
            self._lp_path,
            "-d", self._printer_name,
            "-o", "raw",
            *self._extra_args,
        ]

        try:
            proc = subprocess.run(
                cmd,
                input=bytes(self._buffer),
                capture_output=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PrintError(f"Failed to print: lp timed out after {self._timeout}s") from e
        except OSError as e:
            raise PrintError(f"Failed to print: {e}") from e
        finally:
            self._buffer.clear()

        if proc.returncode != 0:
            out = (proc.stdout or b"") + (proc.stderr or b"")
            raise PrintError(
                f"Failed to print: lp failed (rc={proc.returncode}): "
                f"{out.decode(errors='ignore').strip()}"
            )
