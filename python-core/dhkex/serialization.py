#!/usr/bin/env python3
"""
DHKEX Serialization Adapter

Fixed-length byte encodings for moving key material across a wire or into
storage. There is no length prefix, version byte or framing; callers own any
surrounding protocol.

Formats:
    X25519 public key   32 bytes raw (PointFormat.RAW)
    P-256 public key    33 bytes compressed SEC1 (default)
                        65 bytes uncompressed SEC1 (PointFormat.UNCOMPRESSED)
    secret keys         32 bytes, only with allow_secret=True

Decoding validates length, and for P-256 curve membership, before a typed
value is returned. Malformed input raises InvalidEncoding.

The adapter can be switched off with DHKEX_SERIALIZATION=0, in which case
every function here raises ConfigurationError.

Example:
    >>> wire = encode_public_key(public)
    >>> peer = decode_public_key("p256", wire)
"""

import logging
from typing import Optional, Type, Union

from .config import SERIALIZATION_ENV, active_config
from .errors import ConfigurationError, InvalidEncoding, KexError
from .kex import KeyExchange, get_backend
from .keys import PointFormat, PublicKey, SecretKey, SecretValue

logger = logging.getLogger(__name__)

BackendRef = Union[str, Type[KeyExchange]]

PUBLIC = "public"
SECRET = "secret"


# ============================================================================
# Helpers
# ============================================================================


def _require_enabled() -> None:
    if not active_config().serialization:
        raise ConfigurationError(f"Serialization adapter is disabled ({SERIALIZATION_ENV}=0)")


def _resolve_backend(backend: BackendRef) -> Type[KeyExchange]:
    if isinstance(backend, str):
        return get_backend(backend)
    if isinstance(backend, type) and issubclass(backend, KeyExchange):
        return backend
    raise TypeError(f"Expected a backend name or KeyExchange class, got {backend!r}")


def _require_secret_opt_in(allow_secret: bool) -> None:
    if not allow_secret:
        raise KexError("Secret key serialization requires allow_secret=True")


# ============================================================================
# Public Keys
# ============================================================================


def encode_public_key(public: PublicKey, point_format: Optional[PointFormat] = None) -> bytes:
    """
    Encode a public key.

    Args:
        public: Key to encode
        point_format: Encoding; the backend default when None

    Returns:
        bytes: 32 bytes (X25519), 33 or 65 bytes (P-256)
    """
    _require_enabled()
    if not isinstance(public, PublicKey):
        raise TypeError(f"Expected PublicKey, got {type(public).__name__}")
    return public.to_bytes(point_format)


def decode_public_key(backend: BackendRef, data: bytes) -> PublicKey:
    """
    Decode a public key for ``backend``.

    P-256 accepts either SEC1 form and checks the point lies on the curve.

    Raises:
        InvalidEncoding: Wrong length or, for P-256, an invalid point
    """
    _require_enabled()
    cls = _resolve_backend(backend)
    try:
        return cls.public_from_bytes(bytes(data))
    except InvalidEncoding as e:
        logger.debug(f"Rejected {cls.name} public key encoding: {e.message}")
        raise


# ============================================================================
# Secret Keys (opt-in)
# ============================================================================


def encode_secret_key(secret: SecretKey, allow_secret: bool = False) -> bytearray:
    """
    Export a secret key's bytes.

    The result is a bytearray so the caller can wipe it with
    memory.secure_wipe() when done.

    Raises:
        KexError: Unless allow_secret is True
    """
    _require_enabled()
    _require_secret_opt_in(allow_secret)
    if not isinstance(secret, SecretKey):
        raise TypeError(f"Expected SecretKey, got {type(secret).__name__}")
    return bytearray(secret.view())


def decode_secret_key(backend: BackendRef, data: bytes, allow_secret: bool = False) -> SecretKey:
    """
    Import a secret key. Backend validation applies (X25519 clamps, P-256
    reduces modulo the group order and rejects zero).

    Raises:
        KexError: Unless allow_secret is True
        InvalidEncoding: If the bytes are not a valid secret key
    """
    _require_enabled()
    _require_secret_opt_in(allow_secret)
    cls = _resolve_backend(backend)
    return cls.secret_from_bytes(data)


# ============================================================================
# Generic Entry Points
# ============================================================================


def encode(
    value: Union[PublicKey, SecretKey],
    point_format: Optional[PointFormat] = None,
    allow_secret: bool = False,
) -> Union[bytes, bytearray]:
    """Encode a PublicKey or, with allow_secret=True, a SecretKey."""
    if isinstance(value, PublicKey):
        return encode_public_key(value, point_format)
    if isinstance(value, SecretKey):
        return encode_secret_key(value, allow_secret=allow_secret)
    if isinstance(value, SecretValue):
        raise TypeError(f"{type(value).__name__} values are never serialized")
    raise TypeError(f"Cannot encode {type(value).__name__}")


def decode(
    backend: BackendRef,
    data: bytes,
    kind: str = PUBLIC,
    allow_secret: bool = False,
) -> Union[PublicKey, SecretKey]:
    """Decode ``data`` as a ``kind`` ("public" or "secret") value of ``backend``."""
    if kind == PUBLIC:
        return decode_public_key(backend, data)
    if kind == SECRET:
        return decode_secret_key(backend, data, allow_secret=allow_secret)
    raise ValueError(f"Unknown value kind {kind!r}; expected {PUBLIC!r} or {SECRET!r}")


def encoded_size(backend: BackendRef, kind: str = PUBLIC, point_format: Optional[PointFormat] = None) -> int:
    """
    Length in bytes of an encoded value.

    Example:
        >>> encoded_size("p256")
        33
        >>> encoded_size("p256", point_format=PointFormat.UNCOMPRESSED)
        65
    """
    _require_enabled()
    cls = _resolve_backend(backend)
    if kind == SECRET:
        return cls.secret_key_size
    if kind != PUBLIC:
        raise ValueError(f"Unknown value kind {kind!r}; expected {PUBLIC!r} or {SECRET!r}")

    point_format = cls._check_point_format(point_format)
    if point_format is PointFormat.COMPRESSED:
        # tag byte + x-coordinate
        return 1 + (cls.public_key_size - 1) // 2
    return cls.public_key_size
