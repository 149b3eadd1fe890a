"""Per-direction connection state: frame parsing on the read side, frame writing on the write side."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .close import CloseCode
from .errors import (
    ConnectionClosedError,
    ControlFrameFragmentedError,
    FrameTooLargeError,
    InvalidCloseCodeError,
    InvalidCloseFrameError,
    InvalidUTF8Error,
    PingFrameTooLargeError,
    ReservedBitsNotZeroError,
    UnexpectedEOFError,
    WebSocketError,
)
from .frame import Frame, OpCode, is_control

_READ_CHUNK = 64 * 1024
DEFAULT_MAX_MESSAGE_SIZE = 64 << 20
DEFAULT_WRITEV_THRESHOLD = 1024


class Role(enum.Enum):
    """Which end of the connection this endpoint is."""

    SERVER = "server"
    CLIENT = "client"


@dataclass
class ReadResult:
    """Outcome of reading one frame.

    ``send`` is a frame the caller is obliged to write back (a pong or a close
    reply) unless the write side is already closed; it is written before
    ``error`` is raised or ``frame`` is handed on.
    """

    frame: Frame | None = None
    send: Frame | None = None
    error: WebSocketError | None = None


class ReadHalf:
    """Parses frames from a stream reader and applies auto-pong and auto-close."""

    def __init__(self, role) -> None:
        self.role = Role(role)
        self.auto_apply_mask = True
        self.auto_close = True
        self.auto_pong = True
        self.writev_threshold = DEFAULT_WRITEV_THRESHOLD
        self.max_message_size = DEFAULT_MAX_MESSAGE_SIZE
        self._buffer = bytearray()

    async def _fill(self, reader, size: int) -> None:
        while len(self._buffer) < size:
            chunk = await reader.read(_READ_CHUNK)
            if not chunk:
                raise UnexpectedEOFError()
            self._buffer += chunk

    def _take(self, size: int) -> bytes:
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    async def parse_frame_header(self, reader) -> Frame:
        """Read one raw frame, header and payload, without any unmasking."""
        await self._fill(reader, 2)
        first, second = self._buffer[0], self._buffer[1]

        fin = bool(first & 0x80)
        if first & 0x70:
            raise ReservedBitsNotZeroError()
        opcode = OpCode.from_byte(first & 0x0F)
        masked = bool(second & 0x80)
        length_code = second & 0x7F
        extra = {126: 2, 127: 8}.get(length_code, 0)

        del self._buffer[:2]
        await self._fill(reader, extra + (4 if masked else 0))

        payload_len = int.from_bytes(self._take(extra), "big") if extra else length_code
        mask = self._take(4) if masked else None

        if is_control(opcode) and not fin:
            raise ControlFrameFragmentedError()
        if opcode == OpCode.PING and payload_len > 125:
            raise PingFrameTooLargeError()
        if payload_len >= self.max_message_size:
            raise FrameTooLargeError()

        # Anything read past this frame stays buffered for the next call.
        await self._fill(reader, payload_len)
        return Frame(fin, opcode, self._take(payload_len), mask)

    async def read_frame(self, reader) -> ReadResult:
        """Read one frame and work out what must be sent back in response."""
        try:
            frame = await self.parse_frame_header(reader)
        except WebSocketError as exc:
            return ReadResult(error=exc)

        if self.role is Role.SERVER and self.auto_apply_mask:
            frame.unmask()
            frame.mask = None

        if frame.opcode == OpCode.CLOSE and self.auto_close:
            return self._handle_close(frame)
        if frame.opcode == OpCode.PING and self.auto_pong:
            return ReadResult(send=Frame.pong(frame.payload))
        if frame.opcode == OpCode.TEXT and frame.fin and not frame.is_utf8():
            return ReadResult(error=InvalidUTF8Error())
        return ReadResult(frame=frame)

    @staticmethod
    def _handle_close(frame: Frame) -> ReadResult:
        payload = frame.payload
        if len(payload) == 1:
            return ReadResult(error=InvalidCloseFrameError())
        if len(payload) >= 2:
            code = CloseCode(int.from_bytes(payload[:2], "big"))
            reason = payload[2:]
            try:
                reason.decode("utf-8")
            except UnicodeDecodeError:
                return ReadResult(error=InvalidUTF8Error())
            if not code.is_allowed():
                return ReadResult(
                    send=Frame.close(1002, reason),
                    error=InvalidCloseCodeError(),
                )
        return ReadResult(frame=frame, send=Frame.close_raw(payload))


class WriteHalf:
    """Encodes frames onto a stream writer and tracks whether a close was sent."""

    def __init__(self, role) -> None:
        self.role = Role(role)
        self.closed = False
        self.auto_apply_mask = True
        self.vectored = True
        self.writev_threshold = DEFAULT_WRITEV_THRESHOLD

    async def write_frame(self, writer, frame: Frame) -> None:
        """Write ``frame``; raise ConnectionClosedError once a close was sent."""
        if self.role is Role.CLIENT and self.auto_apply_mask:
            frame.apply_mask()

        if frame.opcode == OpCode.CLOSE:
            self.closed = True
        elif self.closed:
            raise ConnectionClosedError()

        if self.vectored and len(frame.payload) > self.writev_threshold:
            await frame.write_vectored(writer)
        else:
            writer.write(frame.to_bytes())
            await writer.drain()