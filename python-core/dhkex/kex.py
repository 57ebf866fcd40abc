#!/usr/bin/env python3
"""
DHKEX Key-Exchange Capability Interface

Every backend implements the KeyExchange contract as a class used through
classmethods only; there are no backend instances. Consumer code is written
once against this interface and handed whichever backend class the package
was configured with.

Contract:
    generate_secret(rng)         -> SecretKey      (RngFailure)
    derive_public(secret)        -> PublicKey      (pure, deterministic)
    exchange(secret, peer)       -> SharedSecret   (backend validation policy)
    secret_from_bytes(data)      -> SecretKey      (InvalidEncoding)
    public_from_bytes(data)      -> PublicKey      (InvalidEncoding)
    derive_keypair(ikm)          -> (SecretKey, PublicKey)

Invariants:
    - exchange(a, derive_public(b)) == exchange(b, derive_public(a))
    - derive_public(s) returns identical bytes on every call

Validation policy is per backend and deliberately different: X25519
computes a (possibly all-zero) result for any peer bytes, P-256 rejects
off-curve and identity points with InvalidPublicKey.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Dict, Optional, Tuple, Type, Union

from cryptography.hazmat.primitives import hashes

from .config import KexConfig, active_config
from .errors import ConfigurationError, InvalidEncoding
from .kdf import kem_suite_id
from .keys import PointFormat, PublicKey, SecretKey, SharedSecret
from .rng import RandomSource, default_source

logger = logging.getLogger(__name__)

PeerPublic = Union[PublicKey, bytes, bytearray, memoryview]


# ============================================================================
# Capability Interface
# ============================================================================


class KeyExchange(ABC):
    """
    Abstract Diffie-Hellman capability.

    Class attributes every backend defines:
        name: Backend identifier used by configuration ("x25519", "p256")
        kem_id: RFC 9180 KEM identifier, used for derive_keypair()
        secret_key_size: Length of a SecretKey in bytes
        public_key_size: Length of the canonical public key in bytes
        shared_secret_size: Length of a SharedSecret in bytes
        default_point_format: Encoding used when none is requested
        point_formats: Encodings the backend supports
    """

    name: ClassVar[str]
    kem_id: ClassVar[int]
    secret_key_size: ClassVar[int]
    public_key_size: ClassVar[int]
    shared_secret_size: ClassVar[int]
    default_point_format: ClassVar[PointFormat]
    point_formats: ClassVar[Tuple[PointFormat, ...]]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @classmethod
    def generate_secret(cls, rng: Optional[RandomSource] = None) -> SecretKey:
        """
        Generate a uniformly distributed secret from ``rng``.

        Args:
            rng: Entropy source; a fresh SystemRandomSource when omitted

        Raises:
            RngFailure: If the entropy source fails
        """
        source = default_source() if rng is None else rng
        secret = cls._generate_secret(source)
        logger.debug(f"Generated {cls.name} secret key")
        return secret

    @classmethod
    def generate_keypair(cls, rng: Optional[RandomSource] = None) -> Tuple[SecretKey, PublicKey]:
        secret = cls.generate_secret(rng)
        try:
            return secret, cls.derive_public(secret)
        except BaseException:
            secret.wipe()
            raise

    @classmethod
    @abstractmethod
    def _generate_secret(cls, rng: RandomSource) -> SecretKey:
        ...

    @classmethod
    @abstractmethod
    def derive_public(cls, secret: SecretKey) -> PublicKey:
        """Multiply the backend base point by ``secret``."""

    @classmethod
    @abstractmethod
    def exchange(cls, secret: SecretKey, peer_public: PeerPublic) -> SharedSecret:
        """Multiply the peer point by ``secret`` and return the shared secret."""

    @classmethod
    @abstractmethod
    def secret_from_bytes(cls, data: bytes) -> SecretKey:
        """Build a SecretKey from caller bytes, applying backend validation."""

    @classmethod
    @abstractmethod
    def public_from_bytes(cls, data: bytes) -> PublicKey:
        """Decode an encoded public key, raising InvalidEncoding on bad input."""

    @classmethod
    @abstractmethod
    def public_key_bytes(cls, public: PublicKey, point_format: Optional[PointFormat] = None) -> bytes:
        """Encode ``public`` in ``point_format`` (backend default when None)."""

    # ------------------------------------------------------------------
    # Deterministic derivation (RFC 9180 DeriveKeyPair)
    # ------------------------------------------------------------------

    @classmethod
    def suite_id(cls) -> bytes:
        return kem_suite_id(cls.kem_id)

    @classmethod
    def derive_keypair(
        cls,
        ikm: bytes,
        hash_algorithm: Optional[hashes.HashAlgorithm] = None,
    ) -> Tuple[SecretKey, PublicKey]:
        """
        Deterministically derive a keypair from input keying material.

        The IKM should carry at least as much entropy as a secret key
        (256 bits).

        Raises:
            InvalidEncoding: If ikm is empty
            DeriveKeyPairError: If no valid scalar could be derived (P-256)
        """
        if not ikm:
            raise InvalidEncoding("Input keying material must not be empty")
        secret = cls._derive_secret(ikm, hash_algorithm)
        try:
            return secret, cls.derive_public(secret)
        except BaseException:
            secret.wipe()
            raise

    @classmethod
    @abstractmethod
    def _derive_secret(cls, ikm: bytes, hash_algorithm: Optional[hashes.HashAlgorithm]) -> SecretKey:
        ...

    # ------------------------------------------------------------------
    # Argument checks (programmer errors)
    # ------------------------------------------------------------------

    @classmethod
    def _check_secret(cls, secret) -> None:
        if not isinstance(secret, SecretKey):
            raise TypeError(f"Expected SecretKey, got {type(secret).__name__}")
        if secret.backend is not cls:
            raise TypeError(f"{secret.backend.name} secret key passed to {cls.name} backend")

    @classmethod
    def _check_public(cls, public) -> None:
        if not isinstance(public, PublicKey):
            raise TypeError(f"Expected PublicKey, got {type(public).__name__}")
        if public.backend is not cls:
            raise TypeError(f"{public.backend.name} public key passed to {cls.name} backend")

    @classmethod
    def _peer_bytes(cls, peer_public) -> bytes:
        """Canonical bytes of a peer PublicKey, or a copy of encoded peer bytes."""
        if isinstance(peer_public, PublicKey):
            cls._check_public(peer_public)
            return peer_public.canonical_bytes
        if not isinstance(peer_public, (bytes, bytearray, memoryview)):
            raise TypeError(f"Expected PublicKey or bytes-like peer key, got {type(peer_public).__name__}")
        return bytes(peer_public)

    @classmethod
    def _check_point_format(cls, point_format: Optional[PointFormat]) -> PointFormat:
        if point_format is None:
            return cls.default_point_format
        if point_format not in cls.point_formats:
            raise ValueError(f"{cls.name} does not support {point_format.value} encoding")
        return point_format


# ============================================================================
# Backend Registry
# ============================================================================

_REGISTRY: Dict[str, Type[KeyExchange]] = {}

# Module holding each backend, imported only when the backend is selected.
BACKEND_MODULES = {
    "x25519": "dhkex.x25519",
    "p256": "dhkex.p256",
}


def register_backend(cls: Type[KeyExchange]) -> Type[KeyExchange]:
    """Class decorator recording a backend under its ``name``."""
    _REGISTRY[cls.name] = cls
    return cls


def load_backends(config: KexConfig) -> Dict[str, Type[KeyExchange]]:
    """
    Import the backend modules selected by ``config``.

    Returns:
        Mapping of backend name to backend class, in selection order

    Raises:
        ConfigurationError: If a selected backend cannot be loaded
    """
    backends: Dict[str, Type[KeyExchange]] = {}
    for name in config.backends:
        module_name = BACKEND_MODULES.get(name)
        if module_name is None:
            raise ConfigurationError(f"No module provides backend {name!r}")
        importlib.import_module(module_name)
        if name not in _REGISTRY:
            raise ConfigurationError(f"Module {module_name} did not register backend {name!r}")
        backends[name] = _REGISTRY[name]
    logger.info(f"Key-exchange backends loaded: {list(backends)}")
    return backends


def get_backend(name: str) -> Type[KeyExchange]:
    """
    Look up an enabled backend by name.

    Raises:
        ConfigurationError: If the backend was not selected at import time
    """
    config = active_config()
    if not config.is_enabled(name) or name not in _REGISTRY:
        raise ConfigurationError(
            f"Backend {name!r} is not enabled; enabled backends: {list(available_backends())}"
        )
    return _REGISTRY[name]


def available_backends() -> Tuple[str, ...]:
    """Names of the enabled backends, in selection order."""
    return tuple(name for name in active_config().backends if name in _REGISTRY)
