"""An echo server: every text or binary message is sent straight back."""

from __future__ import annotations

import argparse
import asyncio
import sys

from .errors import WebSocketError
from .fragment import FragmentCollectorRead
from .frame import OpCode
from .upgrade import accept

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


async def handle_client(ws) -> None:
    """Echo whole messages on ``ws`` until the peer closes the connection."""
    rx, tx = ws.split()
    rx = FragmentCollectorRead(rx)
    while True:
        frame = await rx.read_frame(tx.write_frame)
        if frame.opcode == OpCode.CLOSE:
            break
        if frame.opcode in (OpCode.TEXT, OpCode.BINARY):
            await tx.write_frame(frame)


async def handle_connection(reader, writer) -> None:
    """Upgrade one incoming connection and echo on it; errors are reported, not raised."""
    print("Client connected")
    try:
        ws, _ = await accept(reader, writer)
        await handle_client(ws)
    except (WebSocketError, ConnectionError) as exc:
        print(f"Error in websocket connection: {exc}", file=sys.stderr)
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass


async def serve(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Accept connections on ``host``:``port`` and echo on each until cancelled."""
    server = await asyncio.start_server(handle_connection, host, port)
    print(f"Server started, listening on {host}:{port}")
    async with server:
        await server.serve_forever()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="WebSocket echo server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)
    try:
        asyncio.run(serve(args.host, args.port))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())