"""
Unit Tests for the DHKEX X25519 Backend

Covers the RFC 7748 known-answer vectors, clamping, the permissive
low-order policy and RFC 9180 DeriveKeyPair.
"""

import logging
import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'python-core'))

from dhkex import DhP256, InvalidEncoding, RngFailure, SystemRandomSource, X25519
from dhkex.x25519 import clamp


# RFC 7748 section 6.1
ALICE_SECRET = bytes.fromhex("77076d0a7318a57d3c16c17251b26645df4c2f87ebc0992ab177fba51db92c2a")
ALICE_PUBLIC = bytes.fromhex("8520f0098930a754748b7ddcb43ef75a0dbf3a0d26381af4eba4a98eaa9b4e6a")
BOB_SECRET = bytes.fromhex("5dab087e624a8a4b79e17f8b83800ee66f3bb1292618b6fd1c2f8b27ff88e0eb")
BOB_PUBLIC = bytes.fromhex("de9edb7d7b7dc1b4d35b61c2ece435373f8343c85b78674dadfc7e146f882b4f")
SHARED = bytes.fromhex("4a5d9d5ba4ce2de1728e3bf480350f25e07e21c947d19e3376f09b3c1e161742")

# RFC 9180 appendix A.1 (DHKEM(X25519, HKDF-SHA256))
IKM_E = bytes.fromhex("7268600d403fce431561aef583ee1613527cff655c1343f29812e66706df3234")
PK_EM = bytes.fromhex("37fda3567bdbd628e88668c3c8d7e97d1d1253b6d4ea6d44c150f741f1bf4431")

# Low-order u-coordinates (RFC 7748 section 7)
LOW_ORDER_POINTS = [bytes(32), b"\x01" + bytes(31)]


class FailingSource:
    def random_bytes(self, n):
        raise OSError("entropy pool unavailable")


class TestX25519KnownVectors:
    """RFC 7748 interoperability."""

    def test_alice_public_key(self):
        """Test public key derivation for Alice."""
        secret = X25519.secret_from_bytes(ALICE_SECRET)
        assert X25519.derive_public(secret).to_bytes() == ALICE_PUBLIC

    def test_bob_public_key(self):
        """Test public key derivation for Bob."""
        secret = X25519.secret_from_bytes(BOB_SECRET)
        assert X25519.derive_public(secret).to_bytes() == BOB_PUBLIC

    def test_shared_secret_both_sides(self):
        """Test that both sides compute the published shared secret."""
        alice = X25519.secret_from_bytes(ALICE_SECRET)
        bob = X25519.secret_from_bytes(BOB_SECRET)

        with X25519.exchange(alice, X25519.public_from_bytes(BOB_PUBLIC)) as shared_a:
            assert bytes(shared_a.view()) == SHARED
        with X25519.exchange(bob, ALICE_PUBLIC) as shared_b:
            assert bytes(shared_b.view()) == SHARED


class TestX25519Secrets:
    """Secret key generation and construction."""

    def test_generated_secret_is_clamped(self, seeded_rng):
        """Test that generation applies RFC 7748 clamping."""
        for _ in range(8):
            secret = X25519.generate_secret(seeded_rng)
            view = secret.view()
            assert view[0] & 0x07 == 0
            assert view[31] & 0x80 == 0
            assert view[31] & 0x40 == 0x40

    def test_secret_from_bytes_clamps(self):
        """Test that imported secrets are clamped."""
        secret = X25519.secret_from_bytes(b"\xff" * 32)
        view = secret.view()

        assert view[0] == 0xf8
        assert view[31] == 0x7f
        assert bytes(view[1:31]) == b"\xff" * 30

    def test_clamp_in_place(self):
        """Test the clamp helper."""
        scalar = bytearray(32)
        clamp(scalar)
        assert scalar[31] == 0x40
        assert scalar[0] == 0

    def test_secret_wrong_length(self):
        """Test that secrets of the wrong length are rejected."""
        for length in (0, 31, 33):
            with pytest.raises(InvalidEncoding):
                X25519.secret_from_bytes(b"\x01" * length)

    def test_distinct_secrets(self):
        """Test that two generated secrets differ."""
        rng = SystemRandomSource()
        assert X25519.generate_secret(rng) != X25519.generate_secret(rng)

    def test_default_rng(self):
        """Test generation without an explicit source."""
        secret = X25519.generate_secret()
        assert len(secret) == 32

    def test_rng_failure(self):
        """Test that a failing entropy source raises RngFailure."""
        with pytest.raises(RngFailure) as exc_info:
            X25519.generate_secret(FailingSource())

        assert exc_info.value.code == -2
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_deterministic_rng_reproducible(self):
        """Test that equal seeds generate equal keys."""
        from dhkex import DeterministicRandomSource

        a = X25519.generate_secret(DeterministicRandomSource(b"seed"))
        b = X25519.generate_secret(DeterministicRandomSource(b"seed"))
        assert a == b


class TestX25519Exchange:
    """Exchange semantics."""

    def test_symmetry(self, seeded_rng):
        """Test that both parties derive the same secret."""
        a, a_pub = X25519.generate_keypair(seeded_rng)
        b, b_pub = X25519.generate_keypair(seeded_rng)

        assert X25519.exchange(a, b_pub) == X25519.exchange(b, a_pub)

    def test_public_key_is_deterministic(self, seeded_rng):
        """Test that derive_public is a pure function."""
        secret = X25519.generate_secret(seeded_rng)
        assert X25519.derive_public(secret).to_bytes() == X25519.derive_public(secret).to_bytes()

    def test_raw_peer_bytes(self, seeded_rng):
        """Test that raw bytes and PublicKey peers give the same result."""
        a = X25519.generate_secret(seeded_rng)
        _, b_pub = X25519.generate_keypair(seeded_rng)

        assert X25519.exchange(a, b_pub) == X25519.exchange(a, b_pub.to_bytes())
        assert X25519.exchange(a, b_pub) == X25519.exchange(a, bytearray(b_pub.to_bytes()))

    def test_peer_wrong_length(self, seeded_rng):
        """Test that raw peer bytes of the wrong length are rejected."""
        secret = X25519.generate_secret(seeded_rng)
        for length in (31, 33):
            with pytest.raises(InvalidEncoding):
                X25519.exchange(secret, b"\x09" * length)

    @pytest.mark.parametrize("point", LOW_ORDER_POINTS)
    def test_low_order_point_gives_zero_secret(self, seeded_rng, caplog, point):
        """Test that low-order peers yield an all-zero secret, not an error."""
        caplog.set_level(logging.DEBUG, logger="dhkex.x25519")
        secret = X25519.generate_secret(seeded_rng)

        shared = X25519.exchange(secret, X25519.public_from_bytes(point))

        assert shared.is_all_zero()
        assert bytes(shared.view()) == bytes(32)
        assert "low order" in caplog.text

    def test_normal_secret_not_all_zero(self, seeded_rng):
        """Test is_all_zero on an ordinary exchange."""
        a = X25519.generate_secret(seeded_rng)
        _, b_pub = X25519.generate_keypair(seeded_rng)
        assert not X25519.exchange(a, b_pub).is_all_zero()

    def test_wrong_backend_secret(self, seeded_rng):
        """Test that a P-256 secret is refused."""
        p_secret = DhP256.generate_secret(seeded_rng)
        _, x_public = X25519.generate_keypair(seeded_rng)

        with pytest.raises(TypeError):
            X25519.exchange(p_secret, x_public)
        with pytest.raises(TypeError):
            X25519.derive_public(p_secret)

    def test_non_bytes_peer_refused(self, seeded_rng):
        """Test that an int or str peer is a programmer error, not a zero point."""
        secret = X25519.generate_secret(seeded_rng)

        for peer in (32, "09" * 32, None):
            with pytest.raises(TypeError):
                X25519.exchange(secret, peer)

    def test_wrong_backend_public(self, seeded_rng):
        """Test that a P-256 public key is refused."""
        x_secret = X25519.generate_secret(seeded_rng)
        _, p_public = DhP256.generate_keypair(seeded_rng)

        with pytest.raises(TypeError):
            X25519.exchange(x_secret, p_public)


class TestX25519PublicKeys:
    """Public key decoding."""

    def test_any_32_bytes_accepted(self):
        """Test that X25519 does not validate public keys."""
        public = X25519.public_from_bytes(b"\xff" * 32)
        assert public.to_bytes() == b"\xff" * 32

    def test_wrong_length_rejected(self):
        """Test that wrong lengths are rejected."""
        for length in (0, 31, 33, 65):
            with pytest.raises(InvalidEncoding):
                X25519.public_from_bytes(b"\x01" * length)


class TestX25519DeriveKeyPair:
    """RFC 9180 DeriveKeyPair."""

    def test_rfc9180_vector(self):
        """Test the A.1 ephemeral key derivation."""
        _, public = X25519.derive_keypair(IKM_E)
        assert public.to_bytes() == PK_EM

    def test_deterministic(self):
        """Test that the same IKM gives the same keypair."""
        a, a_pub = X25519.derive_keypair(b"\x01" * 32)
        b, b_pub = X25519.derive_keypair(b"\x01" * 32)

        assert a == b
        assert a_pub == b_pub
        assert X25519.derive_keypair(b"\x02" * 32)[1] != a_pub

    def test_empty_ikm(self):
        """Test that empty IKM is rejected."""
        with pytest.raises(InvalidEncoding):
            X25519.derive_keypair(b"")

    def test_suite_id(self):
        """Test the KEM suite identifier."""
        assert X25519.suite_id() == b"KEM\x00\x20"
