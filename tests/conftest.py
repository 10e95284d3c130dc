"""Shared fakes for protocol tests.

No hardware is involved: transports and send primitives are scripted.
"""

import asyncio

import pytest

from pyobdcore.configs import AdapterProfile
from pyobdcore.protocol.errors import CommandTimeoutError

HANG = object()


class FakeTransport:
    """Transport replaying a fixed sequence of replies.

    A reply may be a string, an exception instance to raise, or ``HANG`` to
    never answer. Once the script runs out the transport hangs.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.commands = []

    async def exchange(self, command):
        self.commands.append(command)
        reply = self.replies.pop(0) if self.replies else HANG
        if reply is HANG:
            await asyncio.sleep(3600)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class RouterTransport:
    """Transport answering by command text, ``NO DATA`` for unknown commands."""

    def __init__(self, replies):
        self.replies = dict(replies)
        self.commands = []

    async def exchange(self, command):
        self.commands.append(command)
        reply = self.replies.get(command, "NO DATA")
        if isinstance(reply, BaseException):
            raise reply
        return reply


class ScriptedSend:
    """Stand-in for ``send_command`` keyed by command text."""

    def __init__(self, replies):
        self.replies = dict(replies)
        self.calls = []

    async def __call__(self, device, command, retries=2, timeout=3.0, **kwargs):
        self.calls.append((command, retries, timeout))
        if command not in self.replies:
            raise CommandTimeoutError(command, retries + 1)
        reply = self.replies[command]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def commands(self):
        return [call[0] for call in self.calls]


class MessageLog:
    """Collects messages passed to a log callback."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    def contains(self, fragment):
        return any(fragment in message for message in self.messages)


@pytest.fixture
def device():
    """An opaque device handle; decoders only check it is not ``None``."""

    return object()


@pytest.fixture
def message_log():
    return MessageLog()


@pytest.fixture
def profile():
    return AdapterProfile(
        name="Test Car",
        adapter_port="/dev/null-adapter",
        command_timeout=0.5,
        max_retries=1,
        polling_interval=0.1,
        initialize=False,
    )
