import asyncio
import sys

import pytest

from fastws.errors import (
    ConnectionClosedError,
    FrameTooLargeError,
    InvalidCloseCodeError,
    SendError,
)
from fastws.frame import Frame, OpCode
from fastws.protocol import ReadHalf, Role
from fastws.websocket import WebSocket, WebSocketRead, after_handshake_split

N_CLIENTS = 20


class _Sink:
    def __init__(self):
        self.data = bytearray()
        self.drains = 0

    def write(self, data):
        self.data += data

    def writelines(self, chunks):
        for chunk in chunks:
            self.data += chunk

    async def drain(self):
        self.drains += 1


def _reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


async def _frames(data: bytes, role=Role.CLIENT):
    half = ReadHalf(role)
    half.auto_close = False
    half.auto_pong = False
    reader = _reader(data)
    frames = []
    while True:
        result = await half.read_frame(reader)
        if result.error is not None:
            return frames
        frames.append(result.frame)


@pytest.mark.asyncio
async def test_read_frame_answers_ping_and_returns_next():
    sink = _Sink()
    data = Frame(True, OpCode.PING, b"hi").to_bytes() + Frame.text(b"Hello").to_bytes()
    ws = WebSocket(_reader(data), sink, Role.SERVER)
    frame = await ws.read_frame()
    assert frame == Frame.text(b"Hello")
    assert bytes(sink.data) == Frame.pong(b"hi").to_bytes()


@pytest.mark.asyncio
async def test_close_is_echoed_and_marks_closed():
    sink = _Sink()
    ws = WebSocket.after_handshake(_reader(Frame.close(1000, b"bye").to_bytes()), sink, Role.SERVER)
    frame = await ws.read_frame()
    assert frame.opcode == OpCode.CLOSE
    assert ws.is_closed() is True
    assert bytes(sink.data) == Frame.close(1000, b"bye").to_bytes()
    with pytest.raises(ConnectionClosedError):
        await ws.write_frame(Frame.text(b"late"))


@pytest.mark.asyncio
async def test_data_after_local_close_is_rejected():
    sink = _Sink()
    ws = WebSocket(_reader(Frame.text(b"x").to_bytes()), sink, Role.SERVER)
    await ws.write_frame(Frame.close(1000, b""))
    with pytest.raises(ConnectionClosedError):
        await ws.read_frame()


@pytest.mark.asyncio
async def test_obligated_send_skipped_after_local_close():
    sink = _Sink()
    ws = WebSocket(_reader(Frame.close(1000, b"").to_bytes()), sink, Role.SERVER)
    await ws.write_frame(Frame.close(1001, b""))
    written = bytes(sink.data)
    frame = await ws.read_frame()
    assert frame.opcode == OpCode.CLOSE
    assert bytes(sink.data) == written


@pytest.mark.asyncio
async def test_invalid_close_code_sends_protocol_error():
    sink = _Sink()
    ws = WebSocket(_reader(Frame.close(1006, b"").to_bytes()), sink, Role.SERVER)
    with pytest.raises(InvalidCloseCodeError):
        await ws.read_frame()
    assert bytes(sink.data) == Frame.close(1002, b"").to_bytes()
    assert ws.is_closed() is True


@pytest.mark.asyncio
async def test_max_message_size_property():
    ws = WebSocket(_reader(Frame.binary(b"abcd").to_bytes()), _Sink(), Role.CLIENT)
    ws.max_message_size = 4
    assert ws.read_half.max_message_size == 4
    with pytest.raises(FrameTooLargeError):
        await ws.read_frame()


@pytest.mark.asyncio
async def test_settings_reach_both_halves():
    ws = WebSocket(_reader(b""), _Sink(), Role.CLIENT)
    ws.writev = False
    ws.writev_threshold = 7
    ws.auto_apply_mask = False
    ws.auto_close = False
    ws.auto_pong = False
    assert ws.write_half.vectored is False
    assert (ws.read_half.writev_threshold, ws.write_half.writev_threshold) == (7, 7)
    assert (ws.read_half.auto_apply_mask, ws.write_half.auto_apply_mask) == (False, False)
    assert (ws.read_half.auto_close, ws.read_half.auto_pong) == (False, False)


@pytest.mark.asyncio
async def test_client_write_is_masked_and_server_reads_it():
    sink = _Sink()
    ws = WebSocket(_reader(b""), sink, Role.CLIENT)
    await ws.write_frame(Frame.binary(b"payload"))
    frames = await _frames(bytes(sink.data), Role.SERVER)
    assert frames == [Frame.binary(b"payload")]


@pytest.mark.asyncio
async def test_flush_drains_and_into_inner_returns_streams():
    sink = _Sink()
    reader = _reader(b"")
    ws = WebSocket(reader, sink, Role.SERVER)
    await ws.flush()
    assert sink.drains == 1
    assert ws.into_inner() == (reader, sink)


@pytest.mark.asyncio
async def test_split_shares_state():
    ws = WebSocket(_reader(b""), _Sink(), Role.SERVER)
    rx, tx = ws.split()
    await tx.write_frame(Frame.close(1000, b""))
    assert tx.is_closed() is True
    assert ws.is_closed() is True
    assert rx.read_half is ws.read_half


@pytest.mark.asyncio
async def test_split_read_routes_pong_through_send_fn():
    sent = []

    async def send_fn(frame):
        sent.append(frame)

    data = Frame(True, OpCode.PING, b"p").to_bytes() + Frame.binary(b"data").to_bytes()
    rx, _ = after_handshake_split(_reader(data), _Sink(), Role.CLIENT)
    frame = await rx.read_frame(send_fn)
    assert frame == Frame.binary(b"data")
    assert sent == [Frame.pong(b"p")]


@pytest.mark.asyncio
async def test_split_send_failure_is_send_error():
    async def send_fn(frame):
        raise RuntimeError("boom")

    rx = WebSocketRead(_reader(Frame(True, OpCode.PING, b"").to_bytes()), ReadHalf(Role.CLIENT))
    with pytest.raises(SendError) as info:
        await rx.read_frame(send_fn)
    assert isinstance(info.value.cause, RuntimeError)


@pytest.mark.asyncio
async def test_split_write_flush_and_settings():
    sink = _Sink()
    _, tx = after_handshake_split(_reader(b""), sink, Role.CLIENT)
    tx.auto_apply_mask = False
    tx.writev = False
    await tx.write_frame(Frame.text(b"Hello"))
    await tx.flush()
    assert bytes(sink.data) == Frame.text(b"Hello").to_bytes()
    assert sink.drains == 2


async def _serve_client(reader, writer):
    ws = WebSocket.after_handshake(reader, writer, Role.SERVER)
    ws.writev = False
    frame = await ws.read_frame()
    await ws.write_frame(Frame.binary(frame.payload))
    writer.close()


async def _start_client(port: int, client_id: int) -> int:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    rx, tx = after_handshake_split(reader, writer, Role.CLIENT)
    lock = asyncio.Lock()

    async def send_fn(frame):
        async with lock:
            await tx.write_frame(frame)

    await tx.write_frame(Frame.binary(client_id.to_bytes(8, sys.byteorder)))
    frame = await rx.read_frame(send_fn)
    writer.close()
    assert frame.opcode == OpCode.BINARY
    return int.from_bytes(frame.payload, sys.byteorder)


@pytest.mark.asyncio
async def test_concurrent_split_clients():
    server = await asyncio.start_server(_serve_client, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        ids = await asyncio.gather(*(_start_client(port, n) for n in range(N_CLIENTS)))
    finally:
        server.close()
    assert ids == list(range(N_CLIENTS))