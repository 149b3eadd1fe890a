"""Reassembly of fragmented WebSocket messages."""

from __future__ import annotations

import codecs

from .errors import (
    ConnectionClosedError,
    InvalidContinuationFrameError,
    InvalidFragmentError,
    InvalidUTF8Error,
    SendError,
)
from .frame import Frame, OpCode


def _decode_chunk(decoder, payload: bytes) -> bytes:
    """Return the complete UTF-8 prefix of ``payload``; keep any partial character pending."""
    try:
        text = decoder.decode(payload)
    except UnicodeDecodeError as exc:
        raise InvalidUTF8Error() from exc
    return text.encode("utf-8")


class FragmentAccumulator:
    """Joins fragmented data frames into whole messages.

    Text messages are validated as UTF-8 while they arrive, so an invalid
    sequence is reported as soon as it is seen.
    """

    def __init__(self) -> None:
        self._opcode: OpCode | None = None
        self._buffer: bytearray | None = None
        self._decoder = None

    def _reset(self) -> None:
        self._opcode = None
        self._buffer = None
        self._decoder = None

    def accumulate(self, frame: Frame) -> Frame | None:
        """Feed one frame; return a complete message, or None while one is still open."""
        opcode = frame.opcode
        if opcode in (OpCode.TEXT, OpCode.BINARY):
            if frame.fin:
                if self._buffer is not None:
                    raise InvalidFragmentError()
                return Frame(True, opcode, frame.payload)
            if opcode == OpCode.TEXT:
                decoder = codecs.getincrementaldecoder("utf-8")()
                buffer = bytearray(_decode_chunk(decoder, frame.payload))
            else:
                decoder = None
                buffer = bytearray(frame.payload)
            self._opcode = opcode
            self._buffer = buffer
            self._decoder = decoder
            return None

        if opcode == OpCode.CONTINUATION:
            if self._buffer is None:
                raise InvalidContinuationFrameError()
            if self._decoder is not None:
                self._buffer += _decode_chunk(self._decoder, frame.payload)
            else:
                self._buffer += frame.payload
            if not frame.fin:
                return None
            message = Frame(True, self._opcode, bytes(self._buffer))
            self._reset()
            return message

        return frame


class FragmentCollector:
    """A WebSocket whose ``read_frame`` returns only whole messages."""

    def __init__(self, ws) -> None:
        self.reader = ws.reader
        self.writer = ws.writer
        self.read_half = ws.read_half
        self.write_half = ws.write_half
        self._fragments = FragmentAccumulator()

    async def read_frame(self) -> Frame:
        """Read frames until a complete message or a control frame is available."""
        while True:
            result = await self.read_half.read_frame(self.reader)
            is_closed = self.write_half.closed
            if result.send is not None and not is_closed:
                await self.write_frame(result.send)
            if result.error is not None:
                raise result.error
            if result.frame is None:
                continue
            if is_closed and result.frame.opcode != OpCode.CLOSE:
                raise ConnectionClosedError()
            message = self._fragments.accumulate(result.frame)
            if message is not None:
                return message

    async def write_frame(self, frame: Frame) -> None:
        """Write one frame to the stream."""
        await self.write_half.write_frame(self.writer, frame)

    def into_inner(self):
        """Return the underlying ``(reader, writer)`` pair."""
        return self.reader, self.writer


class FragmentCollectorRead:
    """The read half of a split WebSocket, returning only whole messages."""

    def __init__(self, ws) -> None:
        self.reader = ws.reader
        self.read_half = ws.read_half
        self._fragments = FragmentAccumulator()

    async def read_frame(self, send_fn) -> Frame:
        """Read the next whole message.

        ``send_fn`` is an async callable that must write the frames it is given
        (pongs and close replies) through the write half.
        """
        while True:
            result = await self.read_half.read_frame(self.reader)
            if result.send is not None:
                try:
                    await send_fn(result.send)
                except Exception as exc:
                    raise SendError(exc) from exc
            if result.error is not None:
                raise result.error
            if result.frame is None:
                continue
            message = self._fragments.accumulate(result.frame)
            if message is not None:
                return message