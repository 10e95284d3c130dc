"""ELM327 command/response protocol engine for pyOBDcore."""

from .client import LiveDataSnapshot, OBDClient, OBDClientError, OBDConnectionError
from .decoders import (
    PID_DEFINITIONS,
    PIDDefinition,
    Temperature,
    fetch_rpm,
    fetch_voltage,
    get_coolant_temperature,
    get_engine_load,
    get_engine_rpm,
    get_fuel_level,
    get_intake_air_temperature,
    get_manifold_pressure,
    get_throttle_position,
    get_vehicle_speed,
    read_pid,
)
from .dispatcher import ensure_adapter_responsive, initialize_adapter, send_command
from .dtc import (
    clear_dtc_codes,
    decode_dtc,
    describe_dtc,
    dtc_category,
    encode_dtc,
    get_dtc_codes,
    is_valid_dtc,
    parse_dtc_response,
)
from .errors import AdapterUnavailableError, CommandTimeoutError, ProtocolError, TransportError
from .normalizer import split_response_lines
from .transport import SerialTransport, Transport

__all__ = [
    "OBDClient",
    "OBDClientError",
    "OBDConnectionError",
    "LiveDataSnapshot",
    "PIDDefinition",
    "PID_DEFINITIONS",
    "Temperature",
    "read_pid",
    "fetch_voltage",
    "fetch_rpm",
    "get_engine_rpm",
    "get_coolant_temperature",
    "get_intake_air_temperature",
    "get_throttle_position",
    "get_fuel_level",
    "get_engine_load",
    "get_manifold_pressure",
    "get_vehicle_speed",
    "send_command",
    "ensure_adapter_responsive",
    "initialize_adapter",
    "get_dtc_codes",
    "clear_dtc_codes",
    "parse_dtc_response",
    "decode_dtc",
    "encode_dtc",
    "describe_dtc",
    "dtc_category",
    "is_valid_dtc",
    "split_response_lines",
    "Transport",
    "SerialTransport",
    "ProtocolError",
    "AdapterUnavailableError",
    "CommandTimeoutError",
    "TransportError",
]
