"""Minimal Borsh reader for Anchor event and account payloads."""

import struct
from collections.abc import Callable
from typing import TypeVar

import base58

T = TypeVar("T")

PUBKEY_LEN = 32


class BorshDecodeError(ValueError):
    """Payload is truncated or malformed."""


class BorshReader:
    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self._offset = offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read_bytes(self, n: int) -> bytes:
        if n > self.remaining:
            raise BorshDecodeError(
                f"need {n} bytes at offset {self._offset}, have {self.remaining}"
            )
        chunk = self._data[self._offset:self._offset + n]
        self._offset += n
        return chunk

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_bool(self) -> bool:
        value = self.read_u8()
        if value > 1:
            raise BorshDecodeError(f"invalid bool byte {value}")
        return value == 1

    def read_u64(self) -> int:
        return struct.unpack("<Q", self.read_bytes(8))[0]

    def read_i64(self) -> int:
        return struct.unpack("<q", self.read_bytes(8))[0]

    def read_pubkey(self) -> str:
        return base58.b58encode(self.read_bytes(PUBKEY_LEN)).decode()

    def read_option(self, read: Callable[[], T]) -> T | None:
        return read() if self.read_bool() else None


def pubkey_bytes(pubkey: str) -> bytes:
    """Raw 32 bytes of a base58 pubkey."""
    raw = base58.b58decode(pubkey)
    if len(raw) != PUBKEY_LEN:
        raise BorshDecodeError(f"pubkey {pubkey!r} is {len(raw)} bytes")
    return raw
