"""Transports carrying ELM327 commands to an adapter."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Optional, Protocol, runtime_checkable

import serial  # type: ignore[import]

from .constants import (
    CURRENT_DATA_MODE,
    DEFAULT_BAUDRATE,
    DEFAULT_COMMAND_TIMEOUT,
    PROMPT,
    WAKE_DELAY,
    WAKE_IDLE_THRESHOLD,
)
from .errors import TransportError


@runtime_checkable
class Transport(Protocol):
    """Anything able to perform one command/response cycle with an adapter."""

    async def exchange(self, command: str) -> str:
        """Write ``command`` and return the raw text the adapter answered."""
        ...


def clean_response(raw: str, command: str) -> str:
    """Drop the ``>`` prompt and a leading command echo from ``raw``."""

    text = raw.replace(PROMPT, "").strip()
    if command and text.upper().startswith(command.upper()):
        text = text[len(command) :].strip()
    return text


class SerialTransport:
    """ELM327 adapter reachable through a serial port (USB or RFCOMM).

    pyserial is blocking, so every read and write runs in a worker thread.
    The adapter handles one outstanding command at a time: coroutines queue on
    an asyncio lock and the worker threads on a threading lock, so a cancelled
    exchange whose thread is still reading holds off the next write.

    A bare carriage return makes the ELM327 repeat its last command, so the
    idle wake-up is only sent when that command was a Mode 01 read or when
    nothing was sent yet.
    """

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        *,
        read_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        wake_idle_threshold: Optional[float] = WAKE_IDLE_THRESHOLD,
    ) -> None:
        self._port = port
        self._baudrate = baudrate
        self._read_timeout = read_timeout
        self._wake_idle_threshold = wake_idle_threshold
        self._serial: Optional[serial.Serial] = None
        self._lock = asyncio.Lock()
        self._io_lock = threading.Lock()
        self._last_exchange: Optional[float] = None
        self._last_command: Optional[str] = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    async def open(self) -> None:
        """Open the serial port."""

        if self.is_open:
            return

        self._logger.info("Opening adapter port %s at %d baud", self._port, self._baudrate)

        def _open() -> serial.Serial:
            return serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                timeout=self._read_timeout,
                write_timeout=self._read_timeout,
            )

        try:
            self._serial = await asyncio.to_thread(_open)
        except (serial.SerialException, OSError, ValueError) as exc:
            raise TransportError(f"Unable to open {self._port}: {exc}") from exc
        self._last_exchange = None
        self._last_command = None

    async def close(self) -> None:
        """Close the serial port if it is open."""

        if self._serial is not None:
            port, self._serial = self._serial, None
            await asyncio.to_thread(port.close)
            self._logger.info("Closed adapter port %s", self._port)

    async def exchange(self, command: str) -> str:
        if not self.is_open:
            raise TransportError(f"Port {self._port} is not open")

        async with self._lock:
            if self._needs_wake():
                await self._wake()
            try:
                raw = await asyncio.to_thread(self._exchange_sync, command)
            except serial.SerialException as exc:
                raise TransportError(f"I/O error on {self._port}: {exc}") from exc
            self._last_exchange = time.monotonic()
            self._last_command = command

        return clean_response(raw, command)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _needs_wake(self) -> bool:
        if self._wake_idle_threshold is None:
            return False
        if self._last_command is not None and not self._last_command.startswith(CURRENT_DATA_MODE):
            return False
        if self._last_exchange is None:
            return True
        return time.monotonic() - self._last_exchange > self._wake_idle_threshold

    async def _wake(self) -> None:
        self._logger.debug("Adapter idle, sending wake-up carriage return")
        try:
            await asyncio.to_thread(self._write_and_read, b"\r")
        except serial.SerialException as exc:
            self._logger.debug("Wake-up write failed: %s", exc)
            return
        await asyncio.sleep(WAKE_DELAY)

    def _exchange_sync(self, command: str) -> str:
        data = self._write_and_read(f"{command}\r".encode("ascii"))
        return data.decode("ascii", errors="ignore")

    def _write_and_read(self, payload: bytes) -> bytes:
        with self._io_lock:
            port = self._serial
            if port is None:
                raise serial.SerialException("port closed")
            port.reset_input_buffer()
            port.write(payload)
            port.flush()
            return port.read_until(PROMPT.encode("ascii"))
