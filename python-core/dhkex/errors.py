#!/usr/bin/env python3
"""
DHKEX Error Hierarchy

Every recoverable failure raised by the key-exchange layer derives from
KexError and carries an integer code for programmatic handling. Programmer
errors (wrong backend, use after wipe) are reported with the built-in
TypeError and ValueError instead.

Error codes:
    -1   KexError            generic key-exchange failure
    -2   RngFailure          the entropy source could not supply randomness
    -3   InvalidEncoding     wrong length or malformed byte encoding
    -4   InvalidPublicKey    P-256 peer point is off the curve or the identity
    -5   DeriveKeyPairError  deterministic key derivation ran out of candidates
    -100 ConfigurationError  invalid backend or serialization selection
"""


class KexError(Exception):
    """
    Base exception class for all key-exchange errors.

    Attributes:
        message: Human-readable description of the error
        code: Integer error code (see module docstring)

    Example:
        try:
            shared = DhP256.exchange(secret, peer_bytes)
        except KexError as e:
            print(f"Key exchange error {e.code}: {e.message}")
    """

    def __init__(self, message: str, code: int = -1):
        super().__init__(message)
        self.message = message
        self.code = code


class RngFailure(KexError):
    """Raised when the entropy source fails. Never retried internally."""

    def __init__(self, message: str = "Entropy source failure"):
        super().__init__(message, code=-2)


class InvalidEncoding(KexError):
    """
    Raised when bytes handed to a decoder have the wrong length or are
    structurally malformed. No partially constructed value is ever returned.
    """

    def __init__(self, message: str = "Invalid encoding"):
        super().__init__(message, code=-3)


class InvalidPublicKey(KexError):
    """
    Raised by the P-256 backend when a peer point is not on the curve or is
    the identity element. The exchange is aborted and no shared secret exists.

    The X25519 backend never raises this error.
    """

    def __init__(self, message: str = "Invalid public key"):
        super().__init__(message, code=-4)


class DeriveKeyPairError(KexError):
    """Raised when deterministic key derivation exhausts its candidates."""

    def __init__(self, message: str = "DeriveKeyPair failed all attempts"):
        super().__init__(message, code=-5)


class ConfigurationError(KexError):
    """Raised for an invalid backend or serialization selection."""

    def __init__(self, message: str = "Invalid key-exchange configuration"):
        super().__init__(message, code=-100)
