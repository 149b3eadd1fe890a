"""WebSocket close status codes and their classification."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CloseKind(enum.Enum):
    """The category a close status code belongs to."""

    NORMAL = "normal"
    AWAY = "away"
    PROTOCOL = "protocol"
    UNSUPPORTED = "unsupported"
    STATUS = "status"
    ABNORMAL = "abnormal"
    INVALID = "invalid"
    POLICY = "policy"
    SIZE = "size"
    EXTENSION = "extension"
    ERROR = "error"
    RESTART = "restart"
    AGAIN = "again"
    TLS = "tls"
    RESERVED = "reserved"
    IANA = "iana"
    LIBRARY = "library"
    BAD = "bad"


_NAMED_CODES = {
    1000: CloseKind.NORMAL,
    1001: CloseKind.AWAY,
    1002: CloseKind.PROTOCOL,
    1003: CloseKind.UNSUPPORTED,
    1005: CloseKind.STATUS,
    1006: CloseKind.ABNORMAL,
    1007: CloseKind.INVALID,
    1008: CloseKind.POLICY,
    1009: CloseKind.SIZE,
    1010: CloseKind.EXTENSION,
    1011: CloseKind.ERROR,
    1012: CloseKind.RESTART,
    1013: CloseKind.AGAIN,
    1015: CloseKind.TLS,
}

_FORBIDDEN = frozenset(
    {
        CloseKind.BAD,
        CloseKind.RESERVED,
        CloseKind.STATUS,
        CloseKind.ABNORMAL,
        CloseKind.TLS,
    }
)


def _check_range(code: int) -> int:
    code = int(code)
    if not 0 <= code <= 0xFFFF:
        raise ValueError(f"close code out of range: {code}")
    return code


def classify(code: int) -> CloseKind:
    """Return the category of a numeric close status code."""
    code = _check_range(code)
    named = _NAMED_CODES.get(code)
    if named is not None:
        return named
    if 1 <= code <= 999:
        return CloseKind.BAD
    if 1016 <= code <= 2999:
        return CloseKind.RESERVED
    if 3000 <= code <= 3999:
        return CloseKind.IANA
    if 4000 <= code <= 4999:
        return CloseKind.LIBRARY
    return CloseKind.BAD


@dataclass(frozen=True)
class CloseCode:
    """A close status code sent or received in a Close frame."""

    code: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", _check_range(self.code))

    def kind(self) -> CloseKind:
        """The category of this code."""
        return classify(self.code)

    def is_allowed(self) -> bool:
        """Whether this code may appear on the wire."""
        return self.kind() not in _FORBIDDEN

    def __int__(self) -> int:
        return self.code