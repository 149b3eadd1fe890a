"""Client-side WebSocket handshake."""

from __future__ import annotations

import asyncio
import base64
import secrets

from .errors import (
    InvalidConnectionHeaderError,
    InvalidStatusCodeError,
    InvalidUpgradeHeaderError,
    InvalidValueError,
)
from .protocol import Role
from .upgrade import HttpRequest, HttpResponse, _pairs, _read_head
from .websocket import WebSocket


def generate_key() -> str:
    """A random value for the Sec-WebSocket-Key header: 16 bytes, base64-encoded."""
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def build_request(host: str, path: str = "/", key: str | None = None, headers=None) -> HttpRequest:
    """Build a websocket upgrade request; ``headers`` are appended as given."""
    fields = [
        ("Host", host),
        ("Upgrade", "websocket"),
        ("Connection", "upgrade"),
        ("Sec-WebSocket-Key", key if key is not None else generate_key()),
        ("Sec-WebSocket-Version", "13"),
    ]
    fields += _pairs(headers)
    return HttpRequest("GET", path, fields)


async def read_response(reader) -> HttpResponse:
    """Read and parse an HTTP response head from ``reader``."""
    start, headers = await _read_head(reader)
    parts = start.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise InvalidValueError(f"malformed status line: {start!r}")
    reason = parts[2] if len(parts) == 3 else ""
    return HttpResponse(int(parts[1]), reason, headers, parts[0])


def verify(response: HttpResponse) -> HttpResponse:
    """Check that ``response`` accepts the upgrade; return it unchanged."""
    if response.status != 101:
        raise InvalidStatusCodeError(response.status)
    upgrade_value = response.header("Upgrade")
    if upgrade_value is None or upgrade_value.lower() != "websocket":
        raise InvalidUpgradeHeaderError()
    connection = response.header("Connection")
    if connection is None or connection.lower() != "upgrade":
        raise InvalidConnectionHeaderError()
    return response


async def client(reader, writer, host: str, path: str = "/", headers=None):
    """Perform the handshake over open streams; return ``(WebSocket, response)``."""
    request = build_request(host, path, headers=headers)
    writer.write(request.to_bytes())
    await writer.drain()
    response = verify(await read_response(reader))
    return WebSocket.after_handshake(reader, writer, Role.CLIENT), response


async def connect(host: str, port: int, path: str = "/", headers=None):
    """Open a TCP connection and perform the handshake; return ``(WebSocket, response)``."""
    reader, writer = await asyncio.open_connection(host, port)
    try:
        return await client(reader, writer, f"{host}:{port}", path, headers)
    except BaseException:
        writer.close()
        raise