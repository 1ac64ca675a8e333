"""
Printer service configuration.

Everything is read from the environment once, at startup, and handed to the service
as plain frozen dataclasses. Core modules never look at the environment themselves.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEV_PRINT_KEY = "dev-key-12345"


class ConfigurationError(ValueError):
    """Raised when the environment describes an unusable printer setup."""


class TransportKind(Enum):
    USB = "usb"
    SERIAL = "serial"
    MOCK = "mock"


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: str | None, *, default: int, name: str) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer (got {value!r})") from e


def _to_float(value: str | None, *, default: float, name: str) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number (got {value!r})") from e


@dataclass(frozen=True)
class PrinterConfig:
    interface: TransportKind
    usb_name: Optional[str] = None
    serial_port: Optional[str] = None
    serial_baud_rate: int = 9600

    # Total attempts per job, the first one included.
    max_retries: int = 3
    retry_delay_ms: int = 1000

    simulation_delay_ms: int = 500
    transport_timeout_s: float = 5.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1 (got {self.max_retries})")
        if self.retry_delay_ms < 0:
            raise ConfigurationError(f"retry_delay_ms must be >= 0 (got {self.retry_delay_ms})")
        if self.simulation_delay_ms < 0:
            raise ConfigurationError(
                f"simulation_delay_ms must be >= 0 (got {self.simulation_delay_ms})"
            )
        if self.transport_timeout_s <= 0:
            raise ConfigurationError(
                f"transport_timeout_s must be > 0 (got {self.transport_timeout_s})"
            )
        if self.interface == TransportKind.USB and not self.usb_name:
            raise ConfigurationError('USB printer name is required when interface is "usb"')
        if self.interface == TransportKind.SERIAL and not self.serial_port:
            raise ConfigurationError('Serial port is required when interface is "serial"')

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0

    @property
    def address(self) -> str | None:
        """Transport-specific address: CUPS destination name or serial port."""
        if self.interface == TransportKind.USB:
            return self.usb_name
        if self.interface == TransportKind.SERIAL:
            return self.serial_port
        return None


@dataclass(frozen=True)
class ServiceSettings:
    printer: PrinterConfig
    print_key: str
    port: int = 7777
    development: bool = False


def _select_interface(env: Mapping[str, str], development: bool) -> TransportKind:
    raw = env.get("PRINTER_INTERFACE")
    if raw is None or not raw.strip():
        # Real hardware by default; development falls back to the simulation.
        return TransportKind.MOCK if development else TransportKind.USB

    try:
        selected = TransportKind(raw.strip().lower())
    except ValueError as e:
        raise ConfigurationError(
            f'Invalid printer interface: {raw}. Must be "usb", "serial", or "mock"'
        ) from e

    if development:
        if selected == TransportKind.USB and not env.get("PRINTER_USB_NAME"):
            logger.warning(
                "PRINTER_INTERFACE=usb but PRINTER_USB_NAME is not set. Falling back to mock printer."
            )
            return TransportKind.MOCK
        if selected == TransportKind.SERIAL and not env.get("PRINTER_SERIAL_PORT"):
            logger.warning(
                "PRINTER_INTERFACE=serial but PRINTER_SERIAL_PORT is not set. Falling back to mock printer."
            )
            return TransportKind.MOCK

    return selected


def load_printer_config(env: Mapping[str, str], *, development: bool = False) -> PrinterConfig:
    return PrinterConfig(
        interface=_select_interface(env, development),
        usb_name=env.get("PRINTER_USB_NAME") or None,
        serial_port=env.get("PRINTER_SERIAL_PORT") or None,
        serial_baud_rate=_to_int(
            env.get("PRINTER_SERIAL_BAUD_RATE"), default=9600, name="PRINTER_SERIAL_BAUD_RATE"
        ),
        max_retries=_to_int(env.get("MAX_RETRIES"), default=3, name="MAX_RETRIES"),
        retry_delay_ms=_to_int(env.get("RETRY_DELAY_MS"), default=1000, name="RETRY_DELAY_MS"),
        simulation_delay_ms=_to_int(
            env.get("SIMULATION_DELAY_MS"), default=500, name="SIMULATION_DELAY_MS"
        ),
        transport_timeout_s=_to_float(
            env.get("PRINTER_TIMEOUT_S"), default=5.0, name="PRINTER_TIMEOUT_S"
        ),
    )


def load_environment(env_file: str = ".env") -> dict[str, str]:
    """
    Merge a dotenv file under the process environment.

    Variables already set in the process win over the file. A missing file is not an error.
    """
    env: dict[str, str] = {}
    if os.path.exists(env_file):
        logger.info("Loading environment from %s", env_file)
        env.update({k: v for k, v in dotenv_values(dotenv_path=env_file).items() if v is not None})
    env.update(os.environ)
    return env


def load_settings(env: Mapping[str, str] | None = None) -> ServiceSettings:
    if env is None:
        env = os.environ

    app_env = env.get("APP_ENV")
    development = (
        _to_bool(env.get("DEV_MODE"), default=False)
        or app_env == "development"
        or not app_env
    )

    print_key = env.get("PRINT_KEY") or (DEV_PRINT_KEY if development else None)
    if not print_key:
        raise ConfigurationError("PRINT_KEY environment variable is required")

    return ServiceSettings(
        printer=load_printer_config(env, development=development),
        print_key=print_key,
        port=_to_int(env.get("PORT"), default=7777, name="PORT"),
        development=development,
    )
