"""Mode 01 PID decoders and the battery voltage reader.

The public coroutines never raise: adapter silence, error replies, malformed
hex and dispatcher timeouts all come back as ``None``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from ..common import LogCallback, trace
from .constants import (
    CURRENT_DATA_MODE,
    CURRENT_DATA_RESPONSE_MODE,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_RETRIES,
    ERROR_TOKEN,
    NO_DATA,
    VOLTAGE_COMMAND,
    VOLTAGE_MAX,
    VOLTAGE_MIN,
    VOLTAGE_RETRIES,
    VOLTAGE_SETTLE_DELAY,
    VOLTAGE_TIMEOUT,
)
from .dispatcher import SendCommand, ensure_adapter_responsive, send_command
from .normalizer import find_last_line, split_response_lines
from .transport import Transport

_logger = logging.getLogger(__name__)

# Tried in order, first match wins: "12.5V", then any decimal, then a
# stricter decimal that refuses a trailing dot.
VOLTAGE_PATTERNS = (
    re.compile(r"(\d+\.?\d*)\s*V", re.IGNORECASE),
    re.compile(r"(\d+\.?\d*)"),
    re.compile(r"([0-9]+(?:\.[0-9]+)?)"),
)


@dataclass(frozen=True, slots=True)
class Temperature:
    """A temperature reading in both scales."""

    celsius: int
    fahrenheit: float


# ----------------------------------------------------------------------
# Formulas
# ----------------------------------------------------------------------
def decode_rpm(a: int, b: int) -> float:
    return (a * 256 + b) / 4


def decode_temperature(a: int) -> Temperature:
    celsius = a - 40
    return Temperature(celsius=celsius, fahrenheit=celsius * 9 / 5 + 32)


def decode_percentage(a: int) -> float:
    """Scale a 0-255 byte to a percentage rounded to one decimal place."""

    return round(a * 100 / 255, 1)


def decode_raw(a: int) -> int:
    return a


@dataclass(frozen=True, slots=True)
class PIDDefinition:
    """How to request and decode one Mode 01 measurement."""

    name: str
    pid: str
    description: str
    unit: Optional[str]
    byte_count: int
    formula: Callable[..., Any]

    @property
    def command(self) -> str:
        return f"{CURRENT_DATA_MODE}{self.pid}"

    @property
    def line_pattern(self) -> re.Pattern[str]:
        return re.compile(rf"{CURRENT_DATA_RESPONSE_MODE}\s*{self.pid}", re.IGNORECASE)

    @property
    def data_pattern(self) -> re.Pattern[str]:
        byte_groups = r"\s*([0-9A-F]{2})" * self.byte_count
        return re.compile(
            rf"{CURRENT_DATA_RESPONSE_MODE}\s*{self.pid}{byte_groups}", re.IGNORECASE
        )

    def decode_line(self, line: str) -> Any:
        """Decode the data bytes of a matched response line, or ``None``."""

        match = self.data_pattern.search(line)
        if match is None:
            return None
        data = parse_hex_bytes(match.groups())
        if data is None:
            return None
        return self.formula(*data)

    def decode_response(self, raw: Optional[str]) -> Any:
        """Decode a full raw response, using the last line that echoes the PID."""

        line = find_last_line(split_response_lines(raw), self.line_pattern)
        if line is None:
            return None
        return self.decode_line(line)


def parse_hex_bytes(pairs: Sequence[str]) -> Optional[list[int]]:
    """Parse two-character hex strings, ``None`` when any of them is not hex."""

    values: list[int] = []
    for pair in pairs:
        try:
            values.append(int(pair, 16))
        except (TypeError, ValueError):
            return None
    return values


ENGINE_LOAD = PIDDefinition("ENGINE_LOAD", "04", "Calculated engine load", "%", 1, decode_percentage)
COOLANT_TEMP = PIDDefinition("COOLANT_TEMP", "05", "Engine coolant temperature", "degC", 1, decode_temperature)
INTAKE_PRESSURE = PIDDefinition("INTAKE_PRESSURE", "0B", "Intake manifold absolute pressure", "kPa", 1, decode_raw)
RPM = PIDDefinition("RPM", "0C", "Engine speed", "rpm", 2, decode_rpm)
SPEED = PIDDefinition("SPEED", "0D", "Vehicle speed", "km/h", 1, decode_raw)
INTAKE_TEMP = PIDDefinition("INTAKE_TEMP", "0F", "Intake air temperature", "degC", 1, decode_temperature)
THROTTLE_POS = PIDDefinition("THROTTLE_POS", "11", "Throttle position", "%", 1, decode_percentage)
FUEL_LEVEL = PIDDefinition("FUEL_LEVEL", "2F", "Fuel tank level input", "%", 1, decode_percentage)

PID_DEFINITIONS: Dict[str, PIDDefinition] = {
    definition.name: definition
    for definition in (
        ENGINE_LOAD,
        COOLANT_TEMP,
        INTAKE_PRESSURE,
        RPM,
        SPEED,
        INTAKE_TEMP,
        THROTTLE_POS,
        FUEL_LEVEL,
    )
}


# ----------------------------------------------------------------------
# Adapter reads
# ----------------------------------------------------------------------
async def read_pid(
    device: Optional[Transport],
    definition: PIDDefinition,
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    *,
    retries: int = DEFAULT_RETRIES,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
) -> Any:
    """Request ``definition`` from the adapter and decode the answer."""

    label = definition.description.lower()
    if device is None:
        trace(_logger, log, logging.ERROR, f"No device connected, cannot fetch {label}")
        return None

    try:
        trace(_logger, log, logging.DEBUG, f"Fetching {label}...")
        response = await send(device, definition.command, retries, timeout)
        value = definition.decode_response(response)
    except Exception as exc:
        trace(_logger, log, logging.ERROR, f"Error fetching {label}: {exc}")
        return None

    if value is None:
        trace(_logger, log, logging.WARNING, f"Could not parse {label} from response: {response!r}")
        return None

    trace(_logger, log, logging.DEBUG, f"{definition.description}: {value}")
    return value


async def get_engine_rpm(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[float]:
    """Engine speed in rpm (PID 0C)."""

    return await read_pid(device, RPM, send, log, **options)


fetch_rpm = get_engine_rpm


async def get_coolant_temperature(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[Temperature]:
    """Engine coolant temperature (PID 05)."""

    return await read_pid(device, COOLANT_TEMP, send, log, **options)


async def get_intake_air_temperature(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[Temperature]:
    """Intake air temperature (PID 0F)."""

    return await read_pid(device, INTAKE_TEMP, send, log, **options)


async def get_throttle_position(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[float]:
    """Throttle position in percent (PID 11)."""

    return await read_pid(device, THROTTLE_POS, send, log, **options)


async def get_fuel_level(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[float]:
    """Fuel tank level in percent (PID 2F)."""

    return await read_pid(device, FUEL_LEVEL, send, log, **options)


async def get_engine_load(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[float]:
    """Calculated engine load in percent (PID 04)."""

    return await read_pid(device, ENGINE_LOAD, send, log, **options)


async def get_manifold_pressure(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[int]:
    """Intake manifold absolute pressure in kPa (PID 0B)."""

    return await read_pid(device, INTAKE_PRESSURE, send, log, **options)


async def get_vehicle_speed(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    **options: Any,
) -> Optional[int]:
    """Vehicle speed in km/h (PID 0D)."""

    return await read_pid(device, SPEED, send, log, **options)


# ----------------------------------------------------------------------
# Battery voltage
# ----------------------------------------------------------------------
def parse_voltage(response: Optional[str]) -> Optional[str]:
    """Extract the voltage text from an ``AT RV`` reply, or ``None``."""

    if not response or not response.strip():
        return None
    if NO_DATA in response or ERROR_TOKEN in response:
        return None
    for pattern in VOLTAGE_PATTERNS:
        match = pattern.search(response)
        if match:
            return match.group(1)
    return None


async def fetch_voltage(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    *,
    settle_delay: float = VOLTAGE_SETTLE_DELAY,
) -> Optional[str]:
    """Read the battery voltage at the OBD port with ``AT RV``.

    The ``AT`` health probe runs first but only advises; a failed probe is
    logged and the read goes ahead. Readings outside 8-16 V are returned
    with a warning.
    """

    if device is None:
        trace(_logger, log, logging.ERROR, "No device connected, cannot fetch voltage")
        return None

    try:
        trace(_logger, log, logging.INFO, "Fetching battery voltage...")

        if not await ensure_adapter_responsive(device, send, log):
            trace(_logger, log, logging.WARNING, "Health check failed, proceeding with voltage read anyway")

        await asyncio.sleep(settle_delay)

        response = await send(device, VOLTAGE_COMMAND, VOLTAGE_RETRIES, VOLTAGE_TIMEOUT)
        if not response or not response.strip() or NO_DATA in response or ERROR_TOKEN in response:
            trace(_logger, log, logging.WARNING, f"Voltage command returned invalid response: {response!r}")
            return None

        voltage = parse_voltage(response)
        if voltage is None:
            trace(_logger, log, logging.WARNING, f"Raw response {response!r} (could not parse voltage)")
            return None

        if VOLTAGE_MIN <= float(voltage) <= VOLTAGE_MAX:
            trace(_logger, log, logging.INFO, f"Detected voltage: {voltage}V")
        else:
            trace(
                _logger,
                log,
                logging.WARNING,
                f"Detected voltage {voltage}V is outside normal range "
                f"({VOLTAGE_MIN:g}-{VOLTAGE_MAX:g}V)",
            )
        return voltage
    except Exception as exc:
        trace(_logger, log, logging.ERROR, f"Error fetching voltage: {exc}")
        return None
