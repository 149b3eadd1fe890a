"""WebSocket connections over asyncio streams, whole or split into halves."""

from __future__ import annotations

from .errors import ConnectionClosedError, SendError
from .frame import Frame, OpCode
from .protocol import ReadHalf, Role, WriteHalf


class WebSocket:
    """A WebSocket over a stream reader/writer pair that has completed the handshake."""

    def __init__(self, reader, writer, role) -> None:
        self.reader = reader
        self.writer = writer
        role = Role(role)
        self.read_half = ReadHalf(role)
        self.write_half = WriteHalf(role)

    @classmethod
    def after_handshake(cls, reader, writer, role) -> "WebSocket":
        """Wrap streams that have already completed the WebSocket handshake."""
        return cls(reader, writer, role)

    @property
    def writev(self) -> bool:
        """Whether large payloads are written as separate buffers."""
        return self.write_half.vectored

    @writev.setter
    def writev(self, value: bool) -> None:
        self.write_half.vectored = value

    @property
    def writev_threshold(self) -> int:
        return self.write_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self.read_half.writev_threshold = value
        self.write_half.writev_threshold = value

    @property
    def auto_close(self) -> bool:
        """Whether received close frames are answered automatically."""
        return self.read_half.auto_close

    @auto_close.setter
    def auto_close(self, value: bool) -> None:
        self.read_half.auto_close = value

    @property
    def auto_pong(self) -> bool:
        """Whether received pings are answered automatically."""
        return self.read_half.auto_pong

    @auto_pong.setter
    def auto_pong(self, value: bool) -> None:
        self.read_half.auto_pong = value

    @property
    def max_message_size(self) -> int:
        """Frames of this many payload bytes or more are rejected."""
        return self.read_half.max_message_size

    @max_message_size.setter
    def max_message_size(self, value: int) -> None:
        self.read_half.max_message_size = value

    @property
    def auto_apply_mask(self) -> bool:
        return self.read_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self.read_half.auto_apply_mask = value
        self.write_half.auto_apply_mask = value

    def is_closed(self) -> bool:
        """Whether a close frame has been written."""
        return self.write_half.closed

    async def read_frame(self) -> Frame:
        """Read the next frame, answering pings and closes as configured."""
        while True:
            result = await self.read_half.read_frame(self.reader)
            is_closed = self.write_half.closed
            if result.send is not None and not is_closed:
                await self.write_half.write_frame(self.writer, result.send)
            if result.error is not None:
                raise result.error
            if result.frame is not None:
                if is_closed and result.frame.opcode != OpCode.CLOSE:
                    raise ConnectionClosedError()
                return result.frame

    async def write_frame(self, frame: Frame) -> None:
        """Write one frame to the stream."""
        await self.write_half.write_frame(self.writer, frame)

    async def flush(self) -> None:
        """Wait until buffered output has been handed to the transport."""
        await self.writer.drain()

    def split(self) -> tuple["WebSocketRead", "WebSocketWrite"]:
        """Separate into independently usable read and write halves."""
        return (
            WebSocketRead(self.reader, self.read_half),
            WebSocketWrite(self.writer, self.write_half),
        )

    def into_inner(self):
        """Return the underlying ``(reader, writer)`` pair."""
        return self.reader, self.writer


class WebSocketRead:
    """The reading half of a split WebSocket."""

    def __init__(self, reader, read_half: ReadHalf) -> None:
        self.reader = reader
        self.read_half = read_half

    @property
    def writev_threshold(self) -> int:
        return self.read_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self.read_half.writev_threshold = value

    @property
    def auto_close(self) -> bool:
        return self.read_half.auto_close

    @auto_close.setter
    def auto_close(self, value: bool) -> None:
        self.read_half.auto_close = value

    @property
    def auto_pong(self) -> bool:
        return self.read_half.auto_pong

    @auto_pong.setter
    def auto_pong(self, value: bool) -> None:
        self.read_half.auto_pong = value

    @property
    def max_message_size(self) -> int:
        return self.read_half.max_message_size

    @max_message_size.setter
    def max_message_size(self, value: int) -> None:
        self.read_half.max_message_size = value

    @property
    def auto_apply_mask(self) -> bool:
        return self.read_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self.read_half.auto_apply_mask = value

    async def read_frame(self, send_fn) -> Frame:
        """Read the next frame.

        ``send_fn`` is an async callable that must write the frames it is given
        through the write half; a failure inside it is raised as SendError.
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
            if result.frame is not None:
                return result.frame


class WebSocketWrite:
    """The writing half of a split WebSocket."""

    def __init__(self, writer, write_half: WriteHalf) -> None:
        self.writer = writer
        self.write_half = write_half

    @property
    def writev(self) -> bool:
        return self.write_half.vectored

    @writev.setter
    def writev(self, value: bool) -> None:
        self.write_half.vectored = value

    @property
    def writev_threshold(self) -> int:
        return self.write_half.writev_threshold

    @writev_threshold.setter
    def writev_threshold(self, value: int) -> None:
        self.write_half.writev_threshold = value

    @property
    def auto_apply_mask(self) -> bool:
        return self.write_half.auto_apply_mask

    @auto_apply_mask.setter
    def auto_apply_mask(self, value: bool) -> None:
        self.write_half.auto_apply_mask = value

    def is_closed(self) -> bool:
        """Whether a close frame has been written."""
        return self.write_half.closed

    async def write_frame(self, frame: Frame) -> None:
        """Write one frame to the stream."""
        await self.write_half.write_frame(self.writer, frame)

    async def flush(self) -> None:
        """Wait until buffered output has been handed to the transport."""
        await self.writer.drain()


def after_handshake_split(reader, writer, role) -> tuple[WebSocketRead, WebSocketWrite]:
    """Create split halves directly from streams that completed the handshake."""
    role = Role(role)
    return WebSocketRead(reader, ReadHalf(role)), WebSocketWrite(writer, WriteHalf(role))