"""
Labeled HKDF (RFC 9180 section 4) for deterministic key derivation.

    LabeledExtract(salt, label, ikm) =
        Extract(salt, "HPKE-v1" || suite_id || label || ikm)
    LabeledExpand(prk, label, info, L) =
        Expand(prk, I2OSP(L, 2) || "HPKE-v1" || suite_id || label || info, L)

The KEM suite id is "KEM" || I2OSP(kem_id, 2).
"""

from typing import Optional

from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from .memory import secure_wipe

VERSION_LABEL = b"HPKE-v1"


def kem_suite_id(kem_id: int) -> bytes:
    return b"KEM" + kem_id.to_bytes(2, "big")


def _hash(algorithm: Optional[hashes.HashAlgorithm]) -> hashes.HashAlgorithm:
    return hashes.SHA256() if algorithm is None else algorithm


def labeled_extract(
    salt: bytes,
    suite_id: bytes,
    label: bytes,
    ikm: bytes,
    algorithm: Optional[hashes.HashAlgorithm] = None,
) -> bytes:
    """HKDF-Extract over the labeled IKM. An empty salt means HashLen zeros."""
    algorithm = _hash(algorithm)
    if not salt:
        salt = b"\x00" * algorithm.digest_size

    labeled_ikm = bytearray(VERSION_LABEL + suite_id + label)
    labeled_ikm += ikm
    try:
        h = hmac.HMAC(salt, algorithm)
        h.update(labeled_ikm)
        return h.finalize()
    finally:
        secure_wipe(labeled_ikm)


def labeled_expand(
    prk: bytes,
    suite_id: bytes,
    label: bytes,
    info: bytes,
    length: int,
    algorithm: Optional[hashes.HashAlgorithm] = None,
) -> bytes:
    """HKDF-Expand with the labeled info string."""
    if not 0 < length <= 0xFFFF:
        raise ValueError(f"length must be between 1 and 65535, got {length}")
    labeled_info = length.to_bytes(2, "big") + VERSION_LABEL + suite_id + label + info
    return HKDFExpand(algorithm=_hash(algorithm), length=length, info=labeled_info).derive(prk)
