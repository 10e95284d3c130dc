"""Exceptions raised by the protocol layer."""

from __future__ import annotations


class ProtocolError(RuntimeError):
    """Base exception for adapter communication failures."""


class AdapterUnavailableError(ProtocolError):
    """Raised when a command is issued without a connected adapter."""


class CommandTimeoutError(ProtocolError):
    """Raised when no usable response arrived within the retry budget."""

    def __init__(self, command: str, attempts: int) -> None:
        super().__init__(f"No response to {command!r} after {attempts} attempt(s)")
        self.command = command
        self.attempts = attempts


class TransportError(ProtocolError):
    """Raised by a transport that cannot carry a command."""
