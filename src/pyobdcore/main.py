"""Application entry point for pyOBDcore."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Sequence

from .common import configure_logging, log_callback
from .configs import DEFAULT_ADAPTER_PORT, AdapterProfile, ProfileError, ProfileService
from .protocol import LiveDataSnapshot, OBDClient, OBDConnectionError, Transport

Confirm = Callable[..., bool]


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point that selects an adapter profile and runs one diagnostic pass."""

    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    logger = logging.getLogger(__name__)

    service = ProfileService(args.profile_dir)

    try:
        profile = prompt_for_profile(service)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user.")
        return

    logger.info("")
    logger.info("Selected profile: %s", profile.name)
    logger.info("Adapter port: %s (%d baud)", profile.adapter_port, profile.baudrate)
    logger.info("Command timeout: %ss, retries: %d", profile.command_timeout, profile.max_retries)
    if profile.metadata:
        logger.info("Metadata:")
        for key, value in sorted(profile.metadata.items()):
            logger.info("  %s: %s", key, value)

    log = log_callback(logging.getLogger("pyobdcore.trace")) if args.trace else None
    try:
        exit_code = asyncio.run(run_diagnostic_session(profile, log=log))
    except KeyboardInterrupt:
        logger.info("Session interrupted by user.")
        return
    sys.exit(exit_code)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    project_root = Path(__file__).resolve().parents[2]
    parser = argparse.ArgumentParser(prog="pyobdcore", description=__doc__)
    parser.add_argument(
        "--profile-dir",
        type=Path,
        default=project_root / "data" / "profiles",
        help="directory holding adapter profiles",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--trace", action="store_true", help="echo every adapter exchange to the console"
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Interactive profile helpers
# ---------------------------------------------------------------------------


def prompt_for_profile(service: ProfileService) -> AdapterProfile:
    """List known profiles and optionally create a new one."""

    logger = logging.getLogger(__name__)
    while True:
        profiles = service.list_profiles()
        logger.info("\nAvailable adapter profiles:")
        if profiles:
            for idx, profile in enumerate(profiles, start=1):
                logger.info("  %d. %s (port=%s)", idx, profile.name, profile.adapter_port)
        else:
            logger.info("  [none]")

        logger.info("\nOptions: [number] select, [n] new profile, [q] quit")
        choice = input("> ").strip().lower()

        if choice in {"q", "quit"}:
            logger.info("Exiting without selecting a profile.")
            sys.exit(0)

        if choice in {"n", "new"}:
            try:
                return create_profile(service)
            except ProfileError as exc:
                logger.warning("Could not create profile: %s", exc)
                continue

        if choice.isdigit():
            index = int(choice) - 1
            if 0 <= index < len(profiles):
                return profiles[index]
            logger.warning("Invalid selection: index out of range.")
            continue

        logger.warning("Unrecognized option. Please try again.")


def create_profile(service: ProfileService) -> AdapterProfile:
    """Interactively gather details and save a new profile."""

    logger = logging.getLogger(__name__)
    logger.info("\nCreating a new adapter profile.")
    name = _prompt_non_empty("Profile name")
    port = input(f"Adapter port [{DEFAULT_ADAPTER_PORT}]: ").strip() or DEFAULT_ADAPTER_PORT
    command_timeout = _prompt_positive_float("Command timeout seconds", 3.0)
    metadata = _prompt_metadata()

    profile = service.create_profile(
        name=name,
        adapter_port=port,
        command_timeout=command_timeout,
        metadata=metadata,
    )
    logger.info("Created profile '%s'.", profile.name)
    return profile


def _prompt_non_empty(label: str) -> str:
    logger = logging.getLogger(__name__)
    while True:
        value = input(f"{label}: ").strip()
        if value:
            return value
        logger.warning("Value cannot be empty. Please try again.")


def _prompt_positive_float(label: str, default: float) -> float:
    raw = input(f"{label} [{default}]: ").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Invalid number; using default of %s.", default)
        return default
    if value <= 0:
        logging.getLogger(__name__).warning("Value must be positive; using default of %s.", default)
        return default
    return value


def _prompt_metadata() -> Dict[str, str]:
    logger = logging.getLogger(__name__)
    logger.info("\nEnter optional metadata as key=value pairs (blank line to finish).")
    metadata: Dict[str, str] = {}
    while True:
        entry = input("metadata> ").strip()
        if not entry:
            break
        if "=" not in entry:
            logger.warning("Please use the form key=value.")
            continue
        key, value = (segment.strip() for segment in entry.split("=", 1))
        if not key:
            logger.warning("Key cannot be empty.")
            continue
        metadata[key] = value
    return metadata


def _ask_yes_no(prompt: str, *, default: bool) -> bool:
    while True:
        choice = input(prompt).strip().lower()
        if not choice:
            return default
        if choice in {"y", "yes"}:
            return True
        if choice in {"n", "no"}:
            return False
        logging.getLogger(__name__).warning("Please answer 'y' or 'n'.")


# ---------------------------------------------------------------------------
# Diagnostic session
# ---------------------------------------------------------------------------


async def run_diagnostic_session(
    profile: AdapterProfile,
    transport: Optional[Transport] = None,
    *,
    log: Optional[Callable[[str], None]] = None,
    confirm: Confirm = _ask_yes_no,
) -> int:
    """Connect, report live data and trouble codes, and offer to clear them."""

    logger = logging.getLogger(__name__)
    client = OBDClient(profile, transport, log=log)

    try:
        await client.start()
    except OBDConnectionError as exc:
        logger.error("Unable to connect to adapter: %s", exc)
        return 1

    try:
        snapshot = await client.snapshot()
        _report_snapshot(snapshot)

        codes = await client.read_dtcs()
        _report_dtcs(codes)

        if codes and confirm("Clear stored trouble codes? [y/N]: ", default=False):
            if await client.clear_dtcs():
                logger.info("Trouble codes cleared.")
            else:
                logger.warning("Adapter did not acknowledge the clear request.")
    finally:
        await client.stop()
    return 0


def _report_snapshot(snapshot: LiveDataSnapshot) -> None:
    logger = logging.getLogger(__name__)
    logger.info("\nLive data (%s):", snapshot.recorded_at.strftime("%Y-%m-%d %H:%M:%S"))
    rows = (
        ("Battery voltage", snapshot.voltage, "V"),
        ("Engine speed", snapshot.rpm, "rpm"),
        ("Vehicle speed", snapshot.speed, "km/h"),
        ("Coolant temperature", _format_temperature(snapshot.coolant_temperature), ""),
        ("Intake air temperature", _format_temperature(snapshot.intake_air_temperature), ""),
        ("Throttle position", snapshot.throttle_position, "%"),
        ("Fuel level", snapshot.fuel_level, "%"),
        ("Engine load", snapshot.engine_load, "%"),
        ("Manifold pressure", snapshot.manifold_pressure, "kPa"),
    )
    for label, value, unit in rows:
        if value is None:
            logger.info("  %-24s no data", label)
        else:
            logger.info("  %-24s %s %s", label, value, unit)


def _format_temperature(reading) -> Optional[str]:
    if reading is None:
        return None
    return f"{reading.celsius} C / {reading.fahrenheit:.1f} F"


def _report_dtcs(codes: Iterable[tuple[str, Optional[str]]]) -> None:
    logger = logging.getLogger(__name__)
    codes = list(codes)
    if not codes:
        logger.info("\nNo diagnostic trouble codes reported.")
        return
    logger.info("\nDiagnostic trouble codes:")
    for code, description in codes:
        logger.info("  %s - %s", code, description or "No description")


if __name__ == "__main__":
    main()
