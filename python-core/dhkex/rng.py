"""
Entropy sources for secret generation.

Entropy is always an explicit dependency: every generate operation takes a
RandomSource argument instead of reaching for a hidden global. Thread safety
of a shared source is the source's own contract.
"""

import hashlib
import hmac
import logging
import os
import threading
from typing import Protocol, runtime_checkable

from .errors import RngFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class RandomSource(Protocol):
    """Anything that can produce ``n`` cryptographically secure random bytes."""

    def random_bytes(self, n: int) -> bytes:
        ...


class SystemRandomSource:
    """The operating system CSPRNG (``os.urandom``)."""

    def random_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    def __repr__(self) -> str:
        return "SystemRandomSource()"


class DeterministicRandomSource:
    """
    Reproducible HMAC-SHA256 counter-mode byte stream.

    Block i of the stream is HMAC-SHA256(seed, i as 8 big-endian bytes).
    Two sources built from the same seed produce the same stream; successive
    reads from one source never repeat.

    Warning:
        For tests and known-answer vectors only. Anyone holding the seed can
        recompute every secret generated from it.
    """

    def __init__(self, seed: bytes):
        if not seed:
            raise ValueError("Seed must not be empty")
        self._seed = bytes(seed)
        self._counter = 0
        self._pending = b""
        self._lock = threading.Lock()

    def random_bytes(self, n: int) -> bytes:
        if n < 0:
            raise ValueError("n must be non-negative")
        with self._lock:
            while len(self._pending) < n:
                block = hmac.new(self._seed, self._counter.to_bytes(8, "big"), hashlib.sha256).digest()
                self._pending += block
                self._counter += 1
            out, self._pending = self._pending[:n], self._pending[n:]
        return out

    def __repr__(self) -> str:
        return "DeterministicRandomSource(<seed redacted>)"


def default_source() -> RandomSource:
    return SystemRandomSource()


def read_entropy(source: RandomSource, n: int) -> bytes:
    """
    Draw exactly ``n`` bytes from ``source``.

    Any failure of the source, including a short or non-bytes result, is
    reported as RngFailure. Nothing is retried.

    Raises:
        RngFailure: If the source cannot supply ``n`` bytes
    """
    try:
        data = source.random_bytes(n)
    except Exception as e:
        logger.error(f"Entropy source {type(source).__name__} failed: {e}")
        raise RngFailure(f"Entropy source failed: {e}") from e

    if not isinstance(data, (bytes, bytearray)) or len(data) != n:
        logger.error(f"Entropy source {type(source).__name__} returned malformed output")
        raise RngFailure(f"Entropy source did not return {n} bytes")
    return data
