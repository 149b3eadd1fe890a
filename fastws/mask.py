"""XOR masking of WebSocket payloads."""

from __future__ import annotations

import secrets


def _as_mask(mask) -> bytes:
    key = bytes(mask)
    if len(key) != 4:
        raise ValueError("mask must be exactly 4 bytes")
    return key


def unmask(payload, mask) -> bytes:
    """XOR ``payload`` with the repeating 4-byte ``mask`` and return the result.

    Masking is its own inverse, so the same call masks and unmasks.
    """
    key = _as_mask(mask)
    size = len(payload)
    if size == 0:
        return b""
    keystream = (key * (size // 4 + 1))[:size]
    value = int.from_bytes(payload, "big") ^ int.from_bytes(keystream, "big")
    return value.to_bytes(size, "big")


def random_mask() -> bytes:
    """Return a fresh random 4-byte masking key."""
    return secrets.token_bytes(4)