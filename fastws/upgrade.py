"""Server-side WebSocket upgrades over HTTP/1.1."""

from __future__ import annotations

import asyncio
import base64
import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import (
    InvalidSecWebSocketVersionError,
    InvalidValueError,
    MissingSecWebSocketKeyError,
    UnexpectedEOFError,
    WebSocketError,
)
from .protocol import Role
from .websocket import WebSocket

_MAGIC = b"258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
_ASCII_WHITESPACE = " \t\n\r\x0c"


def _pairs(headers) -> list[tuple[str, str]]:
    if headers is None:
        return []
    items = headers.items() if isinstance(headers, Mapping) else headers
    return [(str(name), str(value)) for name, value in items]


def _values(headers, name: str) -> list[str]:
    wanted = name.lower()
    return [value for key, value in _pairs(headers) if key.lower() == wanted]


async def _read_head(reader) -> tuple[str, list[tuple[str, str]]]:
    """Read an HTTP message head; return its start line and header fields."""
    try:
        raw = await reader.readuntil(b"\r\n\r\n")
    except asyncio.IncompleteReadError:
        raise UnexpectedEOFError() from None
    except asyncio.LimitOverrunError:
        raise InvalidValueError("HTTP head too large") from None
    lines = raw[:-4].decode("latin-1").split("\r\n")
    headers = []
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise InvalidValueError(f"malformed header line: {line!r}")
        headers.append((name.strip(), value.strip(" \t")))
    return lines[0], headers


@dataclass
class HttpRequest:
    """An HTTP request head."""

    method: str
    target: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    version: str = "HTTP/1.1"

    def __post_init__(self) -> None:
        self.headers = _pairs(self.headers)

    def header(self, name: str) -> str | None:
        """The first value of header ``name``, compared case-insensitively."""
        values = _values(self.headers, name)
        return values[0] if values else None

    def to_bytes(self) -> bytes:
        lines = [f"{self.method} {self.target} {self.version}"]
        lines += [f"{name}: {value}" for name, value in self.headers]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


@dataclass
class HttpResponse:
    """An HTTP response head."""

    status: int
    reason: str = ""
    headers: list[tuple[str, str]] = field(default_factory=list)
    version: str = "HTTP/1.1"

    def __post_init__(self) -> None:
        self.headers = _pairs(self.headers)

    def header(self, name: str) -> str | None:
        """The first value of header ``name``, compared case-insensitively."""
        values = _values(self.headers, name)
        return values[0] if values else None

    def to_bytes(self) -> bytes:
        lines = [f"{self.version} {self.status} {self.reason}"]
        lines += [f"{name}: {value}" for name, value in self.headers]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


async def read_request(reader) -> HttpRequest:
    """Read and parse an HTTP request head from ``reader``."""
    start, headers = await _read_head(reader)
    parts = start.split(" ")
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise InvalidValueError(f"malformed request line: {start!r}")
    method, target, version = parts
    return HttpRequest(method, target, headers, version)


def sec_websocket_accept(key) -> str:
    """The Sec-WebSocket-Accept value answering a Sec-WebSocket-Key."""
    if isinstance(key, str):
        key = key.encode("latin-1")
    digest = hashlib.sha1(bytes(key) + _MAGIC).digest()
    return base64.b64encode(digest).decode("ascii")


def header_contains_value(headers, name: str, value: str) -> bool:
    """Whether any ``name`` header lists ``value`` among its comma-separated items."""
    wanted = value.lower()
    return any(
        item.strip(_ASCII_WHITESPACE).lower() == wanted
        for raw in _values(headers, name)
        for item in raw.split(",")
    )


def is_upgrade_request(request: HttpRequest) -> bool:
    """Whether ``request`` asks for an upgrade to the websocket protocol."""
    return header_contains_value(
        request.headers, "Connection", "Upgrade"
    ) and header_contains_value(request.headers, "Upgrade", "websocket")


def upgrade(request: HttpRequest) -> HttpResponse:
    """Build the 101 response for a websocket upgrade request.

    Only Sec-WebSocket-Key and Sec-WebSocket-Version are checked.
    """
    key = request.header("Sec-WebSocket-Key")
    if key is None:
        raise MissingSecWebSocketKeyError()
    if request.header("Sec-WebSocket-Version") != "13":
        raise InvalidSecWebSocketVersionError()
    return HttpResponse(
        101,
        "Switching Protocols",
        [
            ("Connection", "upgrade"),
            ("Upgrade", "websocket"),
            ("Sec-WebSocket-Accept", sec_websocket_accept(key)),
        ],
    )


async def accept(reader, writer) -> tuple[WebSocket, HttpRequest]:
    """Read an upgrade request, answer it and return the server WebSocket.

    A request that cannot be upgraded is answered with 400 and the error is raised.
    """
    request = await read_request(reader)
    try:
        response = upgrade(request)
    except WebSocketError:
        rejection = HttpResponse(
            400, "Bad Request", [("Connection", "close"), ("Content-Length", "0")]
        )
        writer.write(rejection.to_bytes())
        await writer.drain()
        raise
    writer.write(response.to_bytes())
    await writer.drain()
    return WebSocket.after_handshake(reader, writer, Role.SERVER), request