"""WebSocket frames, opcodes and wire encoding."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import InvalidValueError
from .mask import random_mask, unmask as _xor_mask


class OpCode(enum.IntEnum):
    """Frame opcodes defined by RFC 6455."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    @classmethod
    def from_byte(cls, value: int) -> "OpCode":
        """Return the opcode for ``value``; raise InvalidValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidValueError() from None


_CONTROL = frozenset({OpCode.CLOSE, OpCode.PING, OpCode.PONG})


def is_control(opcode: OpCode) -> bool:
    """Whether ``opcode`` denotes a control frame."""
    return opcode in _CONTROL


def _as_bytes(payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


@dataclass
class Frame:
    """A single WebSocket frame."""

    fin: bool
    opcode: OpCode
    payload: bytes = b""
    mask: bytes | None = None

    def __post_init__(self) -> None:
        self.opcode = OpCode(self.opcode)
        self.payload = _as_bytes(self.payload)
        if self.mask is not None:
            self.mask = bytes(self.mask)
            if len(self.mask) != 4:
                raise ValueError("mask must be exactly 4 bytes")

    @classmethod
    def text(cls, payload) -> "Frame":
        """A final text frame; the payload is not checked for UTF-8."""
        return cls(True, OpCode.TEXT, payload)

    @classmethod
    def binary(cls, payload) -> "Frame":
        """A final binary frame."""
        return cls(True, OpCode.BINARY, payload)

    @classmethod
    def close(cls, code, reason=b"") -> "Frame":
        """A close frame with a status code and reason; neither is validated."""
        body = int(code).to_bytes(2, "big") + _as_bytes(reason)
        return cls(True, OpCode.CLOSE, body)

    @classmethod
    def close_raw(cls, payload) -> "Frame":
        """A close frame with a raw, unvalidated payload."""
        return cls(True, OpCode.CLOSE, payload)

    @classmethod
    def pong(cls, payload) -> "Frame":
        """A final pong frame."""
        return cls(True, OpCode.PONG, payload)

    def is_utf8(self) -> bool:
        """Whether the payload is valid UTF-8."""
        try:
            self.payload.decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True

    def apply_mask(self) -> None:
        """Mask the payload, choosing a random key if the frame has none."""
        if self.mask is None:
            self.mask = random_mask()
        self.payload = _xor_mask(self.payload, self.mask)

    def unmask(self) -> None:
        """Unmask the payload in place; does nothing for an unmasked frame."""
        if self.mask is not None:
            self.payload = _xor_mask(self.payload, self.mask)

    def format_head(self) -> bytes:
        """Encode the frame header, including the masking key if present."""
        first = (0x80 if self.fin else 0) | int(self.opcode)
        mask_bit = 0x80 if self.mask is not None else 0
        length = len(self.payload)
        if length < 126:
            head = bytes([first, mask_bit | length])
        elif length < 65536:
            head = bytes([first, mask_bit | 126]) + length.to_bytes(2, "big")
        else:
            head = bytes([first, mask_bit | 127]) + length.to_bytes(8, "big")
        if self.mask is not None:
            head += self.mask
        return head

    def to_bytes(self) -> bytes:
        """Encode the whole frame as it goes on the wire."""
        return self.format_head() + self.payload

    async def write_vectored(self, writer) -> None:
        """Write header and payload to ``writer`` as two buffers, then drain."""
        writer.writelines([self.format_head(), self.payload])
        await writer.drain()