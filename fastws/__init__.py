"""WebSocket (RFC 6455) frames, connections, fragment reassembly and HTTP upgrade handshakes over asyncio streams."""

__version__ = "0.10.0"