"""Command dispatch with per-attempt timeouts, plus adapter health and init."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..common import LogCallback, trace
from .constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_RETRIES,
    ERROR_TOKEN,
    HEALTH_COMMAND,
    HEALTH_RETRIES,
    HEALTH_TIMEOUT,
    INIT_COMMAND_DELAY,
    INIT_COMMANDS,
    RESET_COMMAND,
    RESET_DELAY,
    UNKNOWN_COMMAND,
)
from .errors import AdapterUnavailableError, CommandTimeoutError
from .normalizer import contains_error_token
from .transport import Transport

SendCommand = Callable[..., Awaitable[str]]

_logger = logging.getLogger(__name__)


async def send_command(
    device: Optional[Transport],
    command: str,
    retries: int = DEFAULT_RETRIES,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
    *,
    log: Optional[LogCallback] = None,
    retry_delay: float = 0.0,
) -> str:
    """Send ``command`` and return the first non-blank raw response.

    Each attempt gets its own ``timeout``; a timed-out, failed or blank
    attempt is retried up to ``retries`` more times. Adapter error replies
    such as ``NO DATA`` are returned unchanged for the caller to interpret.
    """

    if device is None:
        trace(_logger, log, logging.ERROR, f"No adapter connected, cannot send {command}")
        raise AdapterUnavailableError(f"No adapter connected for {command!r}")

    attempts = max(retries, 0) + 1
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        trace(_logger, log, logging.DEBUG, f"Sending {command} (attempt {attempt}/{attempts})")
        try:
            response = await asyncio.wait_for(device.exchange(command), timeout=timeout)
        except asyncio.TimeoutError as exc:
            last_error = exc
            trace(
                _logger,
                log,
                logging.WARNING,
                f"{command} timed out after {timeout:g}s (attempt {attempt}/{attempts})",
            )
        except Exception as exc:
            last_error = exc
            trace(
                _logger,
                log,
                logging.WARNING,
                f"{command} failed on attempt {attempt}/{attempts}: {exc}",
            )
        else:
            if response and response.strip():
                level = logging.INFO if contains_error_token(response) else logging.DEBUG
                trace(_logger, log, level, f"{command} -> {response!r}")
                return response
            last_error = None
            trace(
                _logger,
                log,
                logging.WARNING,
                f"{command} returned an empty response (attempt {attempt}/{attempts})",
            )

        if attempt < attempts and retry_delay > 0:
            await asyncio.sleep(retry_delay)

    trace(_logger, log, logging.ERROR, f"{command} gave no response after {attempts} attempt(s)")
    raise CommandTimeoutError(command, attempts) from last_error


async def ensure_adapter_responsive(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
) -> bool:
    """Probe the adapter with ``AT``. The result is advisory only."""

    trace(_logger, log, logging.INFO, "Performing adapter health check")
    try:
        response = await send(device, HEALTH_COMMAND, HEALTH_RETRIES, HEALTH_TIMEOUT)
    except Exception as exc:
        trace(_logger, log, logging.WARNING, f"Adapter health check failed: {exc}")
        return False

    if not response or ERROR_TOKEN in response or UNKNOWN_COMMAND in response:
        trace(
            _logger,
            log,
            logging.WARNING,
            f"Adapter health check got {response!r}; adapter may be unresponsive",
        )
        return False

    trace(_logger, log, logging.INFO, "Adapter health check passed")
    return True


async def initialize_adapter(
    device: Optional[Transport],
    send: SendCommand = send_command,
    log: Optional[LogCallback] = None,
    *,
    reset_delay: float = RESET_DELAY,
    command_delay: float = INIT_COMMAND_DELAY,
) -> bool:
    """Reset the adapter with ``ATZ`` and apply the stock init sequence.

    Only a failed reset makes this return ``False``; individual init commands
    that fail are logged and skipped.
    """

    if device is None:
        trace(_logger, log, logging.ERROR, "Cannot initialize adapter: no device connected")
        return False

    trace(_logger, log, logging.INFO, "Initializing OBD-II adapter")
    try:
        await send(device, RESET_COMMAND)
    except Exception as exc:
        trace(_logger, log, logging.ERROR, f"Adapter reset failed: {exc}")
        return False

    await asyncio.sleep(reset_delay)

    for command in INIT_COMMANDS:
        await asyncio.sleep(command_delay)
        try:
            response = await send(device, command)
        except Exception as exc:
            trace(_logger, log, logging.WARNING, f"Init command {command} failed: {exc}")
            continue
        trace(_logger, log, logging.DEBUG, f"Init command {command} -> {response!r}")

    trace(_logger, log, logging.INFO, "Adapter initialization sequence completed")
    return True
