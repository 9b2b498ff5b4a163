"""Message signing and verification."""

from __future__ import annotations

import hmac
from abc import ABC, abstractmethod


class Authenticator(ABC):
    """Signs messages and checks signatures."""

    @abstractmethod
    def sign(self, message: bytes, password: str) -> bytes:
        """Return the signature of ``message``."""

    @abstractmethod
    def verify(self, message: bytes, signature: bytes) -> bool:
        """Tell whether ``signature`` belongs to ``message``."""


def _rotl8(value: int, amount: int) -> int:
    amount %= 8
    return ((value << amount) | (value >> (8 - amount))) & 0xFF


def mock_digest32(data: bytes) -> bytes:
    """A 32-byte mixing digest; it is not cryptographic."""
    acc = bytearray(32)
    for i, b in enumerate(data):
        idx = i % 32
        acc[idx] = _rotl8((acc[idx] + b) & 0xFF, b & 0x07) ^ ((b * 31) & 0xFF)
        acc[(idx + 13) % 32] ^= (b + ((i & 0xFF) * 17)) & 0xFF

    for _ in range(8):
        for i in range(32):
            j = (i * 7 + 1) % 32
            acc[i] = _rotl8((acc[i] + acc[j]) & 0xFF, acc[j] & 0x0F) ^ i

    return bytes(acc)


class SimpleAuthenticator(Authenticator):
    """Signs with a shared key: hex of the digest of message followed by key."""

    def __init__(self, key: bytes = b"") -> None:
        self.key = bytes(key)

    def _expected(self, message: bytes) -> bytes:
        return mock_digest32(bytes(message) + self.key).hex().encode("ascii")

    def sign(self, message: bytes, password: str) -> bytes:
        return self._expected(message)

    def verify(self, message: bytes, signature: bytes) -> bool:
        return hmac.compare_digest(self._expected(message), bytes(signature))