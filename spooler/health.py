from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum, auto
from typing import List, Optional


class HealthLevel(Enum):
    OK = auto()
    WARNING = auto()
    ERROR = auto()


class HealthCode(Enum):
    PRINTER_DISCONNECTED = auto()
    UNKNOWN_ERROR = auto()


@dataclass(frozen=True)
class HealthStatus:
    level: HealthLevel
    printer_connected: bool
    queue_length: int = 0
    processing: bool = False
    code: Optional[HealthCode] = None
    message: Optional[str] = None
    instructions: List[str] | None = None
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def ok(*, queue_length: int = 0, processing: bool = False) -> "HealthStatus":
        return HealthStatus(
            level=HealthLevel.OK,
            printer_connected=True,
            queue_length=queue_length,
            processing=processing,
        )

    @staticmethod
    def printer_disconnected(*, queue_length: int = 0, processing: bool = False) -> "HealthStatus":
        return HealthStatus(
            level=HealthLevel.WARNING,
            printer_connected=False,
            queue_length=queue_length,
            processing=processing,
            code=HealthCode.PRINTER_DISCONNECTED,
            message="Printer is not connected",
            instructions=[
                "Check that the printer is powered on",
                "Check the USB or serial cable (or Bluetooth pairing)",
                "Jobs will reconnect automatically on the next print",
            ],
        )

    @staticmethod
    def from_snapshot(*, printer_connected: bool, queue_length: int, processing: bool) -> "HealthStatus":
        if printer_connected:
            return HealthStatus.ok(queue_length=queue_length, processing=processing)
        return HealthStatus.printer_disconnected(queue_length=queue_length, processing=processing)

    def to_dict(self) -> dict:
        data = {
            "status": "ok",
            "level": self.level.name,
            "printer_connected": self.printer_connected,
            "queue": {
                "length": self.queue_length,
                "processing": self.processing,
            },
            "timestamp": self.last_updated.isoformat(),
        }
        if self.level == HealthLevel.OK:
            return data

        data.update(
            {
                "code": self.code.name if self.code else None,
                "message": self.message,
                "instructions": self.instructions,
            }
        )
        return data
