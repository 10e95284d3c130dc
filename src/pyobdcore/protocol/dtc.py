"""Diagnostic trouble code reading, clearing and bit-level codec."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from obd.codes import DTC as DTC_DESCRIPTIONS  # type: ignore[import]

from ..common import LogCallback, trace
from .constants import (
    DTC_CLEAR_COMMAND,
    DTC_CLEAR_RESPONSE_MODE,
    DTC_EMPTY_MARKER,
    DTC_READ_COMMAND,
    DTC_RESPONSE_MODE,
    DTC_RETRIES,
    DTC_TIMEOUT,
    NO_DATA,
)
from .dispatcher import SendCommand, send_command
from .normalizer import split_response_lines
from .transport import Transport

_logger = logging.getLogger(__name__)

# Indexed by the top two bits of the first byte.
DTC_PREFIXES = ("P", "C", "B", "U")
DTC_CATEGORIES = {
    "P": "Powertrain",
    "C": "Chassis",
    "B": "Body",
    "U": "Network",
}

_DTC_PATTERN = re.compile(r"^([PCBU])(\d{2})([0-9A-F])([0-9A-F])$", re.IGNORECASE)
_HEX_PAIR = re.compile(r"^[0-9A-F]{4}$")


def decode_dtc(first_byte: int, second_byte: int) -> str:
    """Unpack two response bytes into a five character trouble code.

    Bits 7-6 of the first byte pick the category, bits 5-0 give the
    two-digit group; the nibbles of the second byte give the last two
    characters.
    """

    prefix = DTC_PREFIXES[(first_byte >> 6) & 0x03]
    first_digit = first_byte & 0x3F
    second_digit = (second_byte >> 4) & 0x0F
    third_digit = second_byte & 0x0F
    return f"{prefix}{first_digit:02d}{second_digit:X}{third_digit:X}"


def encode_dtc(code: str) -> str:
    """Pack a trouble code back into its four hex character wire form."""

    match = _DTC_PATTERN.match(code.strip())
    if match is None:
        raise ValueError(f"Malformed trouble code: {code!r}")

    prefix, group, second, third = match.groups()
    first_digit = int(group)
    if first_digit > 0x3F:
        raise ValueError(f"Trouble code group out of range: {code!r}")

    first_byte = (DTC_PREFIXES.index(prefix.upper()) << 6) | first_digit
    second_byte = (int(second, 16) << 4) | int(third, 16)
    return f"{first_byte:02X}{second_byte:02X}"


def parse_dtc_response(raw: Optional[str]) -> List[str]:
    """Decode every trouble code carried by a Mode 03 response.

    Lines without the ``43`` response mode are ignored. All-zero pairs are
    padding and are skipped; codes are not deduplicated.
    """

    text = str(raw or "").upper()
    lines = split_response_lines(text)
    # The zero-count marker only counts at the start of a line; "43 01 43 00"
    # carries P0143.
    if NO_DATA in text or any(line.startswith(DTC_EMPTY_MARKER) for line in lines):
        return []

    codes: List[str] = []
    for line in lines:
        if DTC_RESPONSE_MODE not in line:
            continue
        data = "".join(line.split(DTC_RESPONSE_MODE, 1)[1].split())
        for index in range(0, len(data) - 3, 4):
            chunk = data[index : index + 4]
            if not _HEX_PAIR.match(chunk) or chunk == "0000":
                continue
            codes.append(decode_dtc(int(chunk[:2], 16), int(chunk[2:], 16)))
    return codes


def is_valid_dtc(code: str) -> bool:
    return _DTC_PATTERN.match(code.strip()) is not None


def dtc_category(code: str) -> Optional[str]:
    """Return the system family (Powertrain, Chassis, Body, Network) of ``code``."""

    if not is_valid_dtc(code):
        return None
    return DTC_CATEGORIES[code.strip()[0].upper()]


def describe_dtc(code: str) -> Optional[str]:
    """Look up the generic SAE description of ``code``, if one is known."""

    return DTC_DESCRIPTIONS.get(code.strip().upper()) or None


async def get_dtc_codes(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
) -> List[str]:
    """Read stored trouble codes (Mode 03). Never raises."""

    if device is None:
        trace(_logger, log, logging.ERROR, "No device connected, cannot fetch DTC codes")
        return []

    try:
        trace(_logger, log, logging.INFO, "Fetching DTC codes...")
        response = await send(device, DTC_READ_COMMAND, DTC_RETRIES, DTC_TIMEOUT)
        trace(_logger, log, logging.DEBUG, f"DTC response: {response!r}")
        codes = parse_dtc_response(response)
    except Exception as exc:
        trace(_logger, log, logging.ERROR, f"Error fetching DTC codes: {exc}")
        return []

    if codes:
        trace(_logger, log, logging.INFO, f"Found {len(codes)} DTC code(s): {', '.join(codes)}")
    else:
        trace(_logger, log, logging.INFO, "No DTC codes found")
    return codes


async def clear_dtc_codes(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
) -> bool:
    """Clear stored trouble codes (Mode 04). Never raises."""

    if device is None:
        trace(_logger, log, logging.ERROR, "No device connected, cannot clear DTC codes")
        return False

    try:
        trace(_logger, log, logging.INFO, "Clearing DTC codes...")
        response = await send(device, DTC_CLEAR_COMMAND, DTC_RETRIES, DTC_TIMEOUT)
    except Exception as exc:
        trace(_logger, log, logging.ERROR, f"Error clearing DTC codes: {exc}")
        return False

    text = str(response or "").upper()
    trace(_logger, log, logging.DEBUG, f"Clear DTC response: {response!r}")
    if DTC_CLEAR_RESPONSE_MODE in text or "OK" in text:
        trace(_logger, log, logging.INFO, "DTC codes cleared successfully")
        return True

    trace(_logger, log, logging.WARNING, "Failed to clear DTC codes")
    return False
