"""A client for the Autobahn fuzzing server: echoes every test case back."""

from __future__ import annotations

import argparse
import asyncio
import sys

from . import handshake
from .errors import WebSocketError
from .fragment import FragmentCollector
from .frame import Frame, OpCode

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9001
DEFAULT_AGENT = "fastws"


async def connect(host: str, port: int, path: str) -> FragmentCollector:
    """Open a client WebSocket to ``path`` that yields whole messages."""
    ws, _ = await handshake.connect(host, port, path)
    return FragmentCollector(ws)


async def _close(ws: FragmentCollector) -> None:
    _, writer = ws.into_inner()
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


async def get_case_count(host: str, port: int) -> int:
    """Ask the fuzzing server how many test cases it has."""
    ws = await connect(host, port, "/getCaseCount")
    try:
        message = await ws.read_frame()
        await ws.write_frame(Frame.close(1000, b""))
    finally:
        await _close(ws)
    return int(message.payload.decode("utf-8"))


async def run_case(ws: FragmentCollector) -> int:
    """Echo messages until the server closes; return how many were echoed.

    A protocol error is printed and answered with an empty close frame.
    """
    echoed = 0
    while True:
        try:
            message = await ws.read_frame()
        except WebSocketError as exc:
            print(f"Error: {exc}")
            await ws.write_frame(Frame.close_raw(b""))
            break
        if message.opcode in (OpCode.TEXT, OpCode.BINARY):
            await ws.write_frame(Frame(True, message.opcode, message.payload))
            echoed += 1
        elif message.opcode == OpCode.CLOSE:
            break
    return echoed


async def run(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, agent: str = DEFAULT_AGENT) -> int:
    """Run every test case, then ask the server to update its reports; return the case count."""
    count = await get_case_count(host, port)
    for case in range(1, count + 1):
        ws = await connect(host, port, f"/runCase?case={case}&agent={agent}")
        try:
            await run_case(ws)
        finally:
            await _close(ws)

    ws = await connect(host, port, f"/updateReports?agent={agent}")
    try:
        await ws.write_frame(Frame.close(1000, b""))
    finally:
        await _close(ws)
    return count


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Autobahn test-suite client")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--agent", default=DEFAULT_AGENT)
    args = parser.parse_args(argv)
    asyncio.run(run(args.host, args.port, args.agent))
    return 0


if __name__ == "__main__":
    sys.exit(main())