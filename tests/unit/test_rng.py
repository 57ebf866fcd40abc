"""
Unit Tests for DHKEX Entropy Sources
"""

import pytest
import sys
import threading
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / 'python-core'))

from dhkex.errors import RngFailure
from dhkex.rng import (
    DeterministicRandomSource,
    RandomSource,
    SystemRandomSource,
    default_source,
    read_entropy,
)


class TestSystemRandomSource:
    """OS CSPRNG source."""

    def test_lengths(self):
        """Test that the requested number of bytes is returned."""
        source = SystemRandomSource()
        assert len(source.random_bytes(16)) == 16
        assert len(source.random_bytes(32)) == 32

    def test_randomness(self):
        """Test that successive reads differ."""
        source = SystemRandomSource()
        assert source.random_bytes(32) != source.random_bytes(32)

    def test_protocol(self):
        """Test that both sources satisfy RandomSource."""
        assert isinstance(SystemRandomSource(), RandomSource)
        assert isinstance(DeterministicRandomSource(b"seed"), RandomSource)
        assert isinstance(default_source(), SystemRandomSource)


class TestDeterministicRandomSource:
    """Seeded HMAC counter stream."""

    def test_reproducible(self):
        """Test that equal seeds give equal streams."""
        a = DeterministicRandomSource(b"seed")
        b = DeterministicRandomSource(b"seed")
        assert a.random_bytes(100) == b.random_bytes(100)

    def test_different_seeds(self):
        """Test that different seeds give different streams."""
        assert DeterministicRandomSource(b"a").random_bytes(32) != DeterministicRandomSource(b"b").random_bytes(32)

    def test_stream_is_continuous(self):
        """Test that chunked reads equal one large read."""
        a = DeterministicRandomSource(b"seed")
        b = DeterministicRandomSource(b"seed")

        chunks = a.random_bytes(10) + a.random_bytes(40) + a.random_bytes(14)
        assert chunks == b.random_bytes(64)

    def test_no_repeats(self):
        """Test that successive reads differ."""
        source = DeterministicRandomSource(b"seed")
        assert source.random_bytes(32) != source.random_bytes(32)

    def test_empty_seed(self):
        """Test that an empty seed is rejected."""
        with pytest.raises(ValueError):
            DeterministicRandomSource(b"")

    def test_repr_hides_seed(self):
        """Test that the seed never appears in repr."""
        assert "secret-seed" not in repr(DeterministicRandomSource(b"secret-seed"))

    def test_thread_safety(self):
        """Test that concurrent readers consume disjoint parts of the stream."""
        source = DeterministicRandomSource(b"seed")
        results = []

        def reader():
            for _ in range(50):
                results.append(source.random_bytes(32))

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 200
        assert len(set(results)) == 200


class TestReadEntropy:
    """Failure mapping."""

    def test_exception_mapped(self):
        """Test that source exceptions become RngFailure."""

        class Broken:
            def random_bytes(self, n):
                raise OSError("no entropy")

        with pytest.raises(RngFailure) as exc_info:
            read_entropy(Broken(), 32)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_short_read(self):
        """Test that a short read is a failure."""

        class Short:
            def random_bytes(self, n):
                return b"\x01" * (n - 1)

        with pytest.raises(RngFailure):
            read_entropy(Short(), 32)

    def test_wrong_type(self):
        """Test that non-bytes output is a failure."""

        class Text:
            def random_bytes(self, n):
                return "x" * n

        with pytest.raises(RngFailure):
            read_entropy(Text(), 32)

    def test_success(self):
        """Test a normal read."""
        assert len(read_entropy(SystemRandomSource(), 32)) == 32
