"""High-level OBD client binding a transport, a profile and the decoders."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from ..common import LogCallback
from . import decoders, dtc
from .dispatcher import SendCommand, initialize_adapter, send_command
from .errors import TransportError
from .transport import SerialTransport, Transport

if TYPE_CHECKING:
    from ..configs import AdapterProfile


class OBDClientError(RuntimeError):
    """Base exception for OBD client failures."""


class OBDConnectionError(OBDClientError):
    """Raised when a connection to the adapter cannot be established."""


@dataclass(slots=True)
class LiveDataSnapshot:
    """One sequential pass over the live-data measurements."""

    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    voltage: Optional[str] = None
    rpm: Optional[float] = None
    speed: Optional[int] = None
    coolant_temperature: Optional[decoders.Temperature] = None
    intake_air_temperature: Optional[decoders.Temperature] = None
    throttle_position: Optional[float] = None
    fuel_level: Optional[float] = None
    engine_load: Optional[float] = None
    manifold_pressure: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["recorded_at"] = self.recorded_at.isoformat(timespec="seconds")
        return data

    def missing(self) -> list[str]:
        """Names of the measurements that produced no reading."""

        return [name for name, value in self.as_dict().items() if value is None]


class OBDClient:
    """Talk to one ELM327 adapter using the settings of an adapter profile.

    The adapter is half-duplex, so every method awaits its command before
    the next one is issued; callers sharing a client must not overlap calls.
    """

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        profile: "AdapterProfile",
        transport: Optional[Transport] = None,
        log: Optional[LogCallback] = None,
    ) -> None:
        self._profile = profile
        self._transport = transport
        self._owns_transport = transport is None
        self._log = log
        self._stop_event = asyncio.Event()
        self._send: SendCommand = functools.partial(send_command, log=log)

    async def __aenter__(self) -> "OBDClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def profile(self) -> "AdapterProfile":
        return self._profile

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    async def start(self) -> None:
        """Open the adapter port and run the init sequence when configured."""

        if self._transport is None:
            self._transport = await self._open_transport()
        self._stop_event.clear()

        if self._profile.initialize:
            if not await initialize_adapter(self._transport, self._send, self._log):
                self._logger.warning("Adapter initialization failed for %s", self._profile.name)
        self._logger.info("OBD client ready for %s", self._profile.name)

    async def stop(self) -> None:
        """Stop streaming and close the port if this client opened it."""

        self._stop_event.set()
        if self._owns_transport and isinstance(self._transport, SerialTransport):
            await self._transport.close()
            self._transport = None
            self._logger.info("Closed OBD connection for %s", self._profile.name)

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------
    async def read_voltage(self) -> Optional[str]:
        return await decoders.fetch_voltage(self._transport, self._send, self._log)

    async def read_rpm(self) -> Optional[float]:
        return await decoders.get_engine_rpm(self._transport, self._send, self._log, **self._pid_options())

    async def read_speed(self) -> Optional[int]:
        return await decoders.get_vehicle_speed(self._transport, self._send, self._log, **self._pid_options())

    async def read_coolant_temperature(self) -> Optional[decoders.Temperature]:
        return await decoders.get_coolant_temperature(
            self._transport, self._send, self._log, **self._pid_options()
        )

    async def read_intake_air_temperature(self) -> Optional[decoders.Temperature]:
        return await decoders.get_intake_air_temperature(
            self._transport, self._send, self._log, **self._pid_options()
        )

    async def read_throttle_position(self) -> Optional[float]:
        return await decoders.get_throttle_position(
            self._transport, self._send, self._log, **self._pid_options()
        )

    async def read_fuel_level(self) -> Optional[float]:
        return await decoders.get_fuel_level(self._transport, self._send, self._log, **self._pid_options())

    async def read_engine_load(self) -> Optional[float]:
        return await decoders.get_engine_load(self._transport, self._send, self._log, **self._pid_options())

    async def read_manifold_pressure(self) -> Optional[int]:
        return await decoders.get_manifold_pressure(
            self._transport, self._send, self._log, **self._pid_options()
        )

    async def snapshot(self) -> LiveDataSnapshot:
        """Read every live-data measurement once, one command at a time."""

        return LiveDataSnapshot(
            voltage=await self.read_voltage(),
            rpm=await self.read_rpm(),
            speed=await self.read_speed(),
            coolant_temperature=await self.read_coolant_temperature(),
            intake_air_temperature=await self.read_intake_air_temperature(),
            throttle_position=await self.read_throttle_position(),
            fuel_level=await self.read_fuel_level(),
            engine_load=await self.read_engine_load(),
            manifold_pressure=await self.read_manifold_pressure(),
        )

    async def stream(self) -> AsyncIterator[LiveDataSnapshot]:
        """Yield a snapshot every polling interval until :meth:`stop` is called."""

        interval = self._profile.polling_interval
        while not self._stop_event.is_set():
            yield await self.snapshot()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    async def read_dtcs(self, *, describe: bool = True) -> list[tuple[str, str | None]]:
        """Retrieve stored trouble codes, optionally with their descriptions."""

        codes = await dtc.get_dtc_codes(self._transport, self._send, self._log)
        return [(code, dtc.describe_dtc(code) if describe else None) for code in codes]

    async def clear_dtcs(self) -> bool:
        cleared = await dtc.clear_dtc_codes(self._transport, self._send, self._log)
        if cleared:
            self._logger.info("Cleared DTCs for %s", self._profile.name)
        return cleared

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _open_transport(self) -> SerialTransport:
        self._logger.info("Connecting to adapter on %s", self._profile.adapter_port)
        transport = SerialTransport(
            self._profile.adapter_port,
            self._profile.baudrate,
            read_timeout=self._profile.command_timeout,
        )
        try:
            await transport.open()
        except TransportError as exc:
            raise OBDConnectionError(
                f"Unable to establish OBD connection on {self._profile.adapter_port}"
            ) from exc
        return transport

    def _pid_options(self) -> dict[str, Any]:
        return {
            "retries": self._profile.max_retries,
            "timeout": self._profile.command_timeout,
        }
