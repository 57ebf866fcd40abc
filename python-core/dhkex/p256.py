#!/usr/bin/env python3
"""
DHKEX P-256 Backend

Elliptic-curve Diffie-Hellman over NIST P-256 (secp256r1), implemented with
the ``cryptography`` package.

Sizes:
    secret key     32 bytes, big-endian scalar in [1, n)
    public key     65 bytes uncompressed SEC1 (canonical), 33 bytes compressed
    shared secret  32 bytes, big-endian x-coordinate of the shared point

Validation Policy:
    This backend is strict. Peer points are decoded and checked to lie on
    the curve; the identity encoding and off-curve points raise
    InvalidPublicKey before any multiplication takes place. The curve has
    cofactor 1, so an on-curve non-identity point is in the prime-order
    group.
"""

import logging
from typing import Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .errors import DeriveKeyPairError, InvalidEncoding, InvalidPublicKey, RngFailure
from .kdf import labeled_expand, labeled_extract
from .kex import KeyExchange, PeerPublic, register_backend
from .keys import PointFormat, PublicKey, SecretKey, SharedSecret
from .memory import secure_wipe
from .rng import RandomSource, read_entropy

logger = logging.getLogger(__name__)

# ============================================================================
# Curve Constants
# ============================================================================

CURVE = ec.SECP256R1()

# Order of the base point
ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

SCALAR_LEN = 32
COMPRESSED_LEN = 33
UNCOMPRESSED_LEN = 65

SEC1_IDENTITY = 0x00

# Rejection sampling discards a candidate with probability below 2^-32, so
# running out of attempts means the entropy source is broken.
MAX_SAMPLING_ATTEMPTS = 64

# RFC 9180 bitmask for P-256 DeriveKeyPair candidates
DKP_BITMASK = 0xFF


def _scalar_in_range(scalar: bytearray) -> bool:
    return 0 < int.from_bytes(scalar, "big") < ORDER


@register_backend
class DhP256(KeyExchange):
    """Diffie-Hellman over NIST P-256."""

    name = "p256"
    kem_id = 0x0010
    secret_key_size = SCALAR_LEN
    public_key_size = UNCOMPRESSED_LEN
    shared_secret_size = SCALAR_LEN
    default_point_format = PointFormat.COMPRESSED
    point_formats = (PointFormat.COMPRESSED, PointFormat.UNCOMPRESSED)

    # ------------------------------------------------------------------
    # Secret keys
    # ------------------------------------------------------------------

    @classmethod
    def _generate_secret(cls, rng: RandomSource) -> SecretKey:
        # Rejection sampling keeps the scalar uniform in [1, n)
        for _ in range(MAX_SAMPLING_ATTEMPTS):
            candidate = bytearray(read_entropy(rng, SCALAR_LEN))
            try:
                if _scalar_in_range(candidate):
                    return SecretKey._from_bytes(cls, candidate)
            finally:
                secure_wipe(candidate)
        raise RngFailure(f"Entropy source produced no valid P-256 scalar in {MAX_SAMPLING_ATTEMPTS} attempts")

    @classmethod
    def secret_from_bytes(cls, data: bytes) -> SecretKey:
        """
        Build a SecretKey from a 32-byte big-endian scalar.

        The scalar is reduced modulo the group order; a scalar that reduces
        to zero is rejected.

        Raises:
            InvalidEncoding: If data is not 32 bytes or reduces to zero
        """
        if len(data) != SCALAR_LEN:
            raise InvalidEncoding(f"P-256 secret key must be {SCALAR_LEN} bytes, got {len(data)}")
        scalar = int.from_bytes(data, "big") % ORDER
        if scalar == 0:
            raise InvalidEncoding("P-256 secret key is zero modulo the group order")
        reduced = bytearray(scalar.to_bytes(SCALAR_LEN, "big"))
        try:
            return SecretKey._from_bytes(cls, reduced)
        finally:
            secure_wipe(reduced)

    @classmethod
    def _private_key(cls, secret: SecretKey) -> ec.EllipticCurvePrivateKey:
        return ec.derive_private_key(int.from_bytes(secret._reveal(), "big"), CURVE)

    # ------------------------------------------------------------------
    # Public keys
    # ------------------------------------------------------------------

    @classmethod
    def derive_public(cls, secret: SecretKey) -> PublicKey:
        cls._check_secret(secret)
        public = cls._private_key(secret).public_key()
        return PublicKey(cls, public.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        ))

    @classmethod
    def validate_public_key(cls, data: bytes) -> ec.EllipticCurvePublicKey:
        """
        Decode a SEC1 point and check that it is a usable peer key.

        Args:
            data: Compressed (33 bytes) or uncompressed (65 bytes) SEC1 point

        Returns:
            EllipticCurvePublicKey: The decoded point

        Raises:
            InvalidPublicKey: For the identity, off-curve points and
                malformed encodings
        """
        data = bytes(data)
        if not data:
            raise InvalidPublicKey("Empty P-256 public key")
        if data[0] == SEC1_IDENTITY:
            raise InvalidPublicKey("P-256 public key is the point at infinity")
        if len(data) not in (COMPRESSED_LEN, UNCOMPRESSED_LEN):
            raise InvalidPublicKey(f"P-256 public key must be {COMPRESSED_LEN} or {UNCOMPRESSED_LEN} bytes, got {len(data)}")
        try:
            return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, data)
        except ValueError as e:
            raise InvalidPublicKey(f"P-256 public key rejected: {e}") from e

    @classmethod
    def public_from_bytes(cls, data: bytes) -> PublicKey:
        """
        Decode a compressed or uncompressed SEC1 point.

        Raises:
            InvalidEncoding: If the bytes are not a valid non-identity point
        """
        try:
            point = cls.validate_public_key(data)
        except InvalidPublicKey as e:
            raise InvalidEncoding(e.message) from e
        return PublicKey(cls, point.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        ))

    @classmethod
    def public_key_bytes(cls, public: PublicKey, point_format: Optional[PointFormat] = None) -> bytes:
        cls._check_public(public)
        point_format = cls._check_point_format(point_format)
        data = public.canonical_bytes
        if point_format is PointFormat.UNCOMPRESSED:
            return data
        # 0x02 for even y, 0x03 for odd y, followed by x
        return bytes([0x02 | (data[-1] & 1)]) + data[1:1 + SCALAR_LEN]

    # ------------------------------------------------------------------
    # Exchange
    # ------------------------------------------------------------------

    @classmethod
    def exchange(cls, secret: SecretKey, peer_public: PeerPublic) -> SharedSecret:
        """
        ECDH with a validated peer point.

        Args:
            secret: Local P-256 secret key
            peer_public: Peer PublicKey, or an encoded SEC1 point

        Returns:
            SharedSecret: The 32-byte x-coordinate of secret * peer

        Raises:
            InvalidPublicKey: If the peer point is the identity, off-curve,
                or malformed
        """
        cls._check_secret(secret)
        encoded = cls._peer_bytes(peer_public)

        try:
            peer = cls.validate_public_key(encoded)
        except InvalidPublicKey:
            logger.warning("Rejected invalid P-256 peer public key")
            raise

        shared = cls._private_key(secret).exchange(ec.ECDH(), peer)
        return SharedSecret._from_bytes(cls, shared)

    # ------------------------------------------------------------------
    # Deterministic derivation
    # ------------------------------------------------------------------

    @classmethod
    def _derive_secret(cls, ikm: bytes, hash_algorithm: Optional[hashes.HashAlgorithm]) -> SecretKey:
        """
        RFC 9180 DeriveKeyPair for P-256: expand counter-indexed candidates
        until one is a valid scalar.

        Raises:
            DeriveKeyPairError: If all 256 candidates are rejected
        """
        suite_id = cls.suite_id()
        dkp_prk = labeled_extract(b"", suite_id, b"dkp_prk", ikm, hash_algorithm)
        for counter in range(256):
            candidate = bytearray(labeled_expand(
                dkp_prk, suite_id, b"candidate", bytes([counter]), SCALAR_LEN, hash_algorithm
            ))
            try:
                candidate[0] &= DKP_BITMASK
                if _scalar_in_range(candidate):
                    return SecretKey._from_bytes(cls, candidate)
            finally:
                secure_wipe(candidate)
        logger.error("P-256 DeriveKeyPair exhausted every candidate")
        raise DeriveKeyPairError()
