#!/usr/bin/env python3
"""
DHKEX X25519 Backend

Curve25519 Diffie-Hellman (RFC 7748) on top of the ``cryptography`` package.

Sizes:
    secret key     32 bytes, clamped
    public key     32 bytes, raw little-endian u-coordinate
    shared secret  32 bytes

Validation Policy:
    This backend is permissive. Peer public keys are any 32 bytes and are
    never checked for low order. A low-order peer point yields an all-zero
    shared secret instead of an error. OpenSSL refuses to hand out such a
    result, so the adapter supplies the all-zero value itself. Callers that
    must reject it check SharedSecret.is_all_zero().
"""

import logging
from typing import Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import x25519

from .errors import InvalidEncoding
from .kdf import labeled_expand, labeled_extract
from .kex import KeyExchange, PeerPublic, register_backend
from .keys import PointFormat, PublicKey, SecretKey, SharedSecret
from .memory import secure_wipe
from .rng import RandomSource, read_entropy

logger = logging.getLogger(__name__)

X25519_KEY_LEN = 32


def clamp(scalar: bytearray) -> None:
    """
    Clamp an X25519 scalar in place (RFC 7748 section 5).

    Clears the three low bits, clears the top bit and sets the second
    highest bit.
    """
    scalar[0] &= 248
    scalar[31] &= 127
    scalar[31] |= 64


@register_backend
class X25519(KeyExchange):
    """Diffie-Hellman over Curve25519."""

    name = "x25519"
    kem_id = 0x0020
    secret_key_size = X25519_KEY_LEN
    public_key_size = X25519_KEY_LEN
    shared_secret_size = X25519_KEY_LEN
    default_point_format = PointFormat.RAW
    point_formats = (PointFormat.RAW,)

    @classmethod
    def _generate_secret(cls, rng: RandomSource) -> SecretKey:
        scalar = bytearray(read_entropy(rng, cls.secret_key_size))
        try:
            clamp(scalar)
            return SecretKey._from_bytes(cls, scalar)
        finally:
            secure_wipe(scalar)

    @classmethod
    def secret_from_bytes(cls, data: bytes) -> SecretKey:
        """
        Build a SecretKey from 32 caller-supplied bytes. The stored scalar
        is clamped.

        Raises:
            InvalidEncoding: If data is not 32 bytes
        """
        if len(data) != cls.secret_key_size:
            raise InvalidEncoding(f"X25519 secret key must be {cls.secret_key_size} bytes, got {len(data)}")
        scalar = bytearray(data)
        try:
            clamp(scalar)
            return SecretKey._from_bytes(cls, scalar)
        finally:
            secure_wipe(scalar)

    @classmethod
    def _private_key(cls, secret: SecretKey) -> x25519.X25519PrivateKey:
        return x25519.X25519PrivateKey.from_private_bytes(secret._reveal())

    @classmethod
    def derive_public(cls, secret: SecretKey) -> PublicKey:
        cls._check_secret(secret)
        public = cls._private_key(secret).public_key()
        return PublicKey(cls, public.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        ))

    @classmethod
    def exchange(cls, secret: SecretKey, peer_public: PeerPublic) -> SharedSecret:
        """
        Multiply the peer's u-coordinate by ``secret``.

        Args:
            secret: Local X25519 secret key
            peer_public: Peer PublicKey, or its 32 raw bytes

        Returns:
            SharedSecret: 32 bytes; all-zero for low-order peer points

        Raises:
            InvalidEncoding: If raw peer bytes are not 32 bytes long
        """
        cls._check_secret(secret)
        peer_bytes = cls._peer_bytes(peer_public)
        if len(peer_bytes) != cls.public_key_size:
            raise InvalidEncoding(f"X25519 public key must be {cls.public_key_size} bytes, got {len(peer_bytes)}")

        peer = x25519.X25519PublicKey.from_public_bytes(peer_bytes)
        try:
            shared = cls._private_key(secret).exchange(peer)
        except ValueError:
            # OpenSSL rejects the all-zero output of a low-order point.
            logger.debug("X25519 peer point is low order; returning all-zero shared secret")
            shared = bytes(cls.shared_secret_size)
        return SharedSecret._from_bytes(cls, shared)

    @classmethod
    def public_from_bytes(cls, data: bytes) -> PublicKey:
        if len(data) != cls.public_key_size:
            raise InvalidEncoding(f"X25519 public key must be {cls.public_key_size} bytes, got {len(data)}")
        return PublicKey(cls, bytes(data))

    @classmethod
    def public_key_bytes(cls, public: PublicKey, point_format: Optional[PointFormat] = None) -> bytes:
        cls._check_public(public)
        cls._check_point_format(point_format)
        return public.canonical_bytes

    # def DeriveKeyPair(ikm):
    #   dkp_prk = LabeledExtract("", "dkp_prk", ikm)
    #   sk = LabeledExpand(dkp_prk, "sk", "", Nsk)
    #   return (sk, pk(sk))
    @classmethod
    def _derive_secret(cls, ikm: bytes, hash_algorithm: Optional[hashes.HashAlgorithm]) -> SecretKey:
        suite_id = cls.suite_id()
        dkp_prk = labeled_extract(b"", suite_id, b"dkp_prk", ikm, hash_algorithm)
        scalar = bytearray(labeled_expand(dkp_prk, suite_id, b"sk", b"", cls.secret_key_size, hash_algorithm))
        try:
            clamp(scalar)
            return SecretKey._from_bytes(cls, scalar)
        finally:
            secure_wipe(scalar)
