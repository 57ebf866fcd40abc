"""
DHKEX - Diffie-Hellman Key Exchange Abstraction.

One capability interface for Diffie-Hellman key exchange, backed by X25519
(RFC 7748) or NIST P-256, so handshake and session-key code is written once
against KeyExchange whichever curve backend is enabled.

Modules:
    kex: KeyExchange capability interface and backend registry
    x25519: X25519 backend (permissive; low-order peers give all-zero secrets)
    p256: P-256 backend (strict; invalid peer points raise InvalidPublicKey)
    keys: SecretKey, PublicKey and SharedSecret value types
    memory: Secure buffers and wiping
    rng: Injected entropy sources
    serialization: Fixed-length encodings of key material
    config: Backend and serialization selection

Configuration:
    The backends and the serialization adapter are selected once, when this
    package is imported, from DHKEX_BACKENDS and DHKEX_SERIALIZATION (see
    dhkex.config). A disabled backend is exported as None.

Usage:
    >>> from dhkex import X25519
    >>> alice_secret, alice_public = X25519.generate_keypair()
    >>> bob_secret, bob_public = X25519.generate_keypair()
    >>> with X25519.exchange(alice_secret, bob_public) as shared:
    ...     session_key = derive_session_key(shared.view())

    >>> from dhkex import get_backend
    >>> backend = get_backend("p256")
    >>> secret = backend.generate_secret()
"""

from .config import KexConfig, active_config, set_active_config
from .errors import (
    ConfigurationError,
    DeriveKeyPairError,
    InvalidEncoding,
    InvalidPublicKey,
    KexError,
    RngFailure,
)
from .kex import KeyExchange, available_backends, get_backend, load_backends
from .keys import PointFormat, PublicKey, SecretKey, SharedSecret
from .memory import SecureBuffer, secure_wipe
from .rng import DeterministicRandomSource, RandomSource, SystemRandomSource
from . import serialization

_config = KexConfig.from_env()
set_active_config(_config)
_backends = load_backends(_config)

# Disabled backends are exported as None
if "x25519" in _backends:
    X25519 = _backends["x25519"]
    _X25519_AVAILABLE = True
else:
    X25519 = None
    _X25519_AVAILABLE = False

if "p256" in _backends:
    DhP256 = _backends["p256"]
    _P256_AVAILABLE = True
else:
    DhP256 = None
    _P256_AVAILABLE = False

__all__ = [
    # Interface
    'KeyExchange', 'X25519', 'DhP256', 'get_backend', 'available_backends',
    # Values
    'SecretKey', 'PublicKey', 'SharedSecret', 'PointFormat', 'SecureBuffer', 'secure_wipe',
    # Entropy
    'RandomSource', 'SystemRandomSource', 'DeterministicRandomSource',
    # Configuration
    'KexConfig', 'active_config',
    # Errors
    'KexError', 'RngFailure', 'InvalidEncoding', 'InvalidPublicKey',
    'DeriveKeyPairError', 'ConfigurationError',
    'serialization',
]

__version__ = "1.0.0"
