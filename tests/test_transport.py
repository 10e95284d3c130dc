"""Tests for the serial transport, using a stand-in for ``serial.Serial``."""

import asyncio
import threading
import time

import pytest

from pyobdcore.protocol import transport as transport_module
from pyobdcore.protocol.dispatcher import send_command
from pyobdcore.protocol.errors import TransportError
from pyobdcore.protocol.transport import SerialTransport, Transport, clean_response


class FakeSerial:
    instances = []

    def __init__(self, port, baudrate, timeout, write_timeout):
        self.port = port
        self.baudrate = baudrate
        self.is_open = True
        self.written = []
        self.replies = []
        FakeSerial.instances.append(self)

    def reset_input_buffer(self):
        pass

    def write(self, payload):
        self.written.append(payload)

    def flush(self):
        pass

    def read_until(self, terminator):
        return self.replies.pop(0) if self.replies else b""

    def close(self):
        self.is_open = False


class SlowSerial(FakeSerial):
    """Serial stand-in whose first read blocks past the caller's timeout."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active = 0
        self.max_active = 0
        self.reads = 0
        self._guard = threading.Lock()

    def read_until(self, terminator):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.reads += 1
            first = self.reads == 1
        try:
            if first:
                time.sleep(0.3)
            return super().read_until(terminator)
        finally:
            with self._guard:
                self.active -= 1


@pytest.fixture
def fake_serial(monkeypatch):
    FakeSerial.instances = []
    monkeypatch.setattr(transport_module.serial, "Serial", FakeSerial)
    return FakeSerial


class TestCleanResponse:
    def test_strips_prompt_and_echo(self):
        assert clean_response("010C\r41 0C 1A F8\r\r>", "010C") == "41 0C 1A F8"

    def test_keeps_line_breaks_between_frames(self):
        assert clean_response("43 01 23\r43 03 01\r>", "03") == "43 01 23\r43 03 01"

    def test_without_echo(self):
        assert clean_response("OK\r>", "AT") == "OK"


class TestSerialTransport:
    def test_satisfies_transport_protocol(self):
        assert isinstance(SerialTransport("/dev/rfcomm0"), Transport)

    @pytest.mark.asyncio
    async def test_exchange(self, fake_serial):
        transport = SerialTransport("/dev/rfcomm0", 9600, wake_idle_threshold=None)
        await transport.open()
        port = fake_serial.instances[0]
        port.replies.append(b"010C\r41 0C 1A F8\r\r>")

        assert await transport.exchange("010C") == "41 0C 1A F8"
        assert port.written == [b"010C\r"]
        assert port.baudrate == 9600

    @pytest.mark.asyncio
    async def test_wakes_idle_adapter_first(self, fake_serial):
        transport = SerialTransport("/dev/rfcomm0")
        await transport.open()
        port = fake_serial.instances[0]
        port.replies.extend([b"\r>", b"OK\r>"])

        assert await transport.exchange("AT") == "OK"
        assert port.written == [b"\r", b"AT\r"]

    @pytest.mark.asyncio
    async def test_exchange_requires_open_port(self):
        with pytest.raises(TransportError):
            await SerialTransport("/dev/rfcomm0").exchange("AT")

    @pytest.mark.asyncio
    async def test_close(self, fake_serial):
        transport = SerialTransport("/dev/rfcomm0")
        await transport.open()
        await transport.close()
        assert not transport.is_open
        assert fake_serial.instances[0].is_open is False

    @pytest.mark.asyncio
    async def test_open_failure(self, monkeypatch):
        def _refuse(**kwargs):
            raise transport_module.serial.SerialException("could not open port")

        monkeypatch.setattr(transport_module.serial, "Serial", _refuse)
        with pytest.raises(TransportError):
            await SerialTransport("/dev/missing").open()

    @pytest.mark.asyncio
    async def test_timed_out_read_blocks_the_retry(self, monkeypatch):
        monkeypatch.setattr(transport_module.serial, "Serial", SlowSerial)
        FakeSerial.instances = []
        transport = SerialTransport("/dev/rfcomm0", wake_idle_threshold=None)
        await transport.open()
        port = FakeSerial.instances[0]
        port.replies.extend([b"010C\r41 0C 00 00\r>", b"010C\r41 0C 1A F8\r>"])

        response = await send_command(transport, "010C", retries=2, timeout=0.2)

        assert response == "41 0C 1A F8"
        assert port.max_active == 1
        assert port.written == [b"010C\r", b"010C\r"]

    @pytest.mark.asyncio
    async def test_wake_skipped_after_non_repeatable_command(self, fake_serial):
        transport = SerialTransport("/dev/rfcomm0", wake_idle_threshold=0.0)
        await transport.open()
        port = fake_serial.instances[0]
        port.replies.extend([b"\r>", b"44\r>", b"41 05 7B\r>", b"\r>", b"OK\r>"])

        assert await transport.exchange("04") == "44"
        await asyncio.sleep(0.01)
        assert await transport.exchange("0105") == "41 05 7B"
        await asyncio.sleep(0.01)
        assert await transport.exchange("AT") == "OK"

        assert port.written == [b"\r", b"04\r", b"0105\r", b"\r", b"AT\r"]
