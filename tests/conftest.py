# DHKEX Test Configuration
# This file contains test settings and fixtures

import pytest
import sys
import os

# Add python-core to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'python-core'))

from dhkex import DeterministicRandomSource, KexConfig, active_config, set_active_config
from dhkex.p256 import DhP256
from dhkex.x25519 import X25519


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return os.path.dirname(os.path.dirname(__file__))


@pytest.fixture(scope="session")
def python_core_path(project_root):
    """Return path to python-core directory."""
    return os.path.join(project_root, 'python-core')


@pytest.fixture
def seeded_rng():
    """Reproducible entropy source."""
    return DeterministicRandomSource(b"dhkex-test-seed")


@pytest.fixture(params=[X25519, DhP256], ids=["x25519", "p256"])
def backend(request):
    """Run a test once per backend."""
    return request.param


@pytest.fixture
def restore_config():
    """Put the import-time configuration back after a test swaps it."""
    original = active_config()
    yield original
    set_active_config(original)


@pytest.fixture
def serialization_disabled(restore_config):
    """Activate a configuration with the serialization adapter switched off."""
    set_active_config(KexConfig(backends=restore_config.backends, serialization=False))
    return active_config()
