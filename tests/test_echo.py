import asyncio
import socket

import pytest

from fastws import echo, handshake
from fastws.frame import Frame, OpCode


async def _start_echo_server():
    server = await asyncio.start_server(echo.handle_connection, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


async def _close(ws):
    _, writer = ws.into_inner()
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


@pytest.mark.asyncio
async def test_echoes_text_and_binary():
    server, port = await _start_echo_server()
    async with server:
        ws, response = await handshake.connect("127.0.0.1", port, "/")
        assert response.status == 101
        await ws.write_frame(Frame.text(b"hello"))
        reply = await ws.read_frame()
        assert reply.opcode == OpCode.TEXT
        assert reply.payload == b"hello"

        await ws.write_frame(Frame.binary(b"\x00\x01\x02"))
        reply = await ws.read_frame()
        assert reply.opcode == OpCode.BINARY
        assert reply.payload == b"\x00\x01\x02"
        await _close(ws)


@pytest.mark.asyncio
async def test_fragmented_message_is_echoed_whole():
    server, port = await _start_echo_server()
    async with server:
        ws, _ = await handshake.connect("127.0.0.1", port, "/")
        await ws.write_frame(Frame(False, OpCode.TEXT, b"hel"))
        await ws.write_frame(Frame(True, OpCode.CONTINUATION, b"lo"))
        reply = await ws.read_frame()
        assert reply.fin is True
        assert reply.opcode == OpCode.TEXT
        assert reply.payload == b"hello"
        await _close(ws)


@pytest.mark.asyncio
async def test_ping_is_answered_with_pong():
    server, port = await _start_echo_server()
    async with server:
        ws, _ = await handshake.connect("127.0.0.1", port, "/")
        await ws.write_frame(Frame(True, OpCode.PING, b"p"))
        reply = await ws.read_frame()
        assert reply.opcode == OpCode.PONG
        assert reply.payload == b"p"
        await _close(ws)


@pytest.mark.asyncio
async def test_close_is_answered_with_same_payload():
    server, port = await _start_echo_server()
    async with server:
        ws, _ = await handshake.connect("127.0.0.1", port, "/")
        await ws.write_frame(Frame.close(1000, b"bye"))
        assert ws.is_closed()
        reply = await ws.read_frame()
        assert reply.opcode == OpCode.CLOSE
        assert reply.payload == Frame.close(1000, b"bye").payload
        await _close(ws)


@pytest.mark.asyncio
async def test_request_without_key_is_rejected():
    server, port = await _start_echo_server()
    async with server:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(
            b"GET / HTTP/1.1\r\nHost: localhost\r\n"
            b"Upgrade: websocket\r\nConnection: upgrade\r\n"
            b"Sec-WebSocket-Version: 13\r\n\r\n"
        )
        await writer.drain()
        response = await handshake.read_response(reader)
        assert response.status == 400
        writer.close()


@pytest.mark.asyncio
async def test_serve_accepts_connections():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    task = asyncio.create_task(echo.serve("127.0.0.1", port))
    try:
        ws = None
        for _ in range(200):
            try:
                ws, _ = await handshake.connect("127.0.0.1", port, "/")
                break
            except OSError:
                await asyncio.sleep(0.01)
        assert ws is not None
        await ws.write_frame(Frame.text(b"served"))
        reply = await ws.read_frame()
        assert reply.payload == b"served"
        await _close(ws)
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        echo.main(["--port", "notaport"])
    assert info.value.code == 2