#!/usr/bin/env python3
"""
DHKEX Key Value Types

Opaque values produced and consumed by the key-exchange backends:

- SecretKey:    a backend scalar. Secret-classified.
- SharedSecret: the result of an exchange. Secret-classified.
- PublicKey:    a curve point encoding. Not secret; freely copied.

Secret Lifecycle:
    Secret-classified values own a SecureBuffer and wipe it when their owner
    releases them: on ``with`` exit (including exits through an exception),
    on an explicit wipe(), and on garbage collection. They refuse to be
    copied or pickled, never print their bytes, and compare in constant
    time.

    Backends read secret bytes through SecretValue._reveal(), the single
    controlled read that feeds a scalar multiplication.

Example:
    >>> with X25519.generate_secret() as secret:
    ...     public = X25519.derive_public(secret)
    ... # secret storage is all-zero here
"""

# ============================================================================
# Import Statements
# ============================================================================

from enum import Enum
from typing import Optional

from .memory import BytesLike, SecureBuffer, is_all_zero, secure_compare


class PointFormat(Enum):
    """Byte encodings of a public key."""
    RAW = "raw"                    # X25519: 32-byte little-endian u-coordinate
    COMPRESSED = "compressed"      # SEC1: tag byte + x-coordinate
    UNCOMPRESSED = "uncompressed"  # SEC1: 0x04 + x-coordinate + y-coordinate


# ============================================================================
# Secret-Classified Values
# ============================================================================


class SecretValue:
    """
    Base class for secret-classified values.

    Instances are created by the backends only; the constructor takes
    ownership of ``storage`` and wipes it when the value is released.

    Attributes:
        backend: The KeyExchange backend class that produced the value
    """

    kind = "secret value"

    def __init__(self, backend: type, storage: SecureBuffer):
        self._backend = backend
        self._storage = storage

    @classmethod
    def _from_bytes(cls, backend: type, data: BytesLike) -> "SecretValue":
        return cls(backend, SecureBuffer.from_bytes(data))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.wipe()
        return False

    def __del__(self):
        self.wipe()

    def wipe(self) -> None:
        """Overwrite the owned storage. Idempotent."""
        storage = getattr(self, "_storage", None)
        if storage is not None:
            storage.wipe()

    @property
    def is_wiped(self) -> bool:
        return self._storage.is_wiped

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def backend(self) -> type:
        return self._backend

    def __len__(self) -> int:
        return len(self._storage)

    def view(self) -> memoryview:
        """
        Read-only view over the owned storage, without copying.

        Raises:
            ValueError: If the value has been wiped
        """
        return self._storage.view()

    def _reveal(self) -> bytes:
        """Copy out the secret bytes for the curve library. Backends only."""
        return bytes(self._storage.view())

    @property
    def storage(self) -> SecureBuffer:
        """The owned SecureBuffer, exposed for erasure instrumentation."""
        return self._storage

    # ------------------------------------------------------------------
    # Comparison and copy protection
    # ------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, SecretValue) or type(other) is not type(self):
            return NotImplemented
        if other._backend is not self._backend:
            return False
        return secure_compare(self.view(), other.view())

    __hash__ = None

    def __repr__(self) -> str:
        state = "wiped" if self.is_wiped else "live"
        return f"{type(self).__name__}({self._backend.name}, <{len(self)} bytes redacted>, {state})"

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError(f"{type(self).__name__} cannot be pickled")


class SecretKey(SecretValue):
    """A backend secret scalar (32 bytes for both X25519 and P-256)."""

    kind = "secret key"


class SharedSecret(SecretValue):
    """
    Output of an exchange. Only ever produced by KeyExchange.exchange().

    Note:
        X25519 shared secrets are not validated; a malicious peer can force
        an all-zero value. Use is_all_zero() if the protocol requires
        rejecting it.
    """

    kind = "shared secret"

    def is_all_zero(self) -> bool:
        """Constant-time test for the degenerate all-zero result."""
        return is_all_zero(self.view())


# ============================================================================
# Public Keys
# ============================================================================


class PublicKey:
    """
    A backend public key in its canonical byte form.

    X25519 keys are 32 raw bytes; P-256 keys are held as uncompressed SEC1
    points (65 bytes). Equality and hashing use the canonical bytes.
    """

    __slots__ = ("_backend", "_data")

    def __init__(self, backend: type, data: bytes):
        self._backend = backend
        self._data = bytes(data)

    @property
    def backend(self) -> type:
        return self._backend

    @property
    def canonical_bytes(self) -> bytes:
        return self._data

    def to_bytes(self, point_format: Optional[PointFormat] = None) -> bytes:
        """
        Encode the key. ``point_format`` selects the SEC1 form for P-256 and
        defaults to the backend's default encoding.
        """
        return self._backend.public_key_bytes(self, point_format)

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return other._backend is self._backend and secure_compare(self._data, other._data)

    def __hash__(self) -> int:
        return hash((self._backend.name, self._data))

    def __repr__(self) -> str:
        return f"PublicKey({self._backend.name}, {self._data.hex()})"

    def __setattr__(self, name, value):
        if hasattr(self, "_data"):
            raise AttributeError("PublicKey is immutable")
        object.__setattr__(self, name, value)

