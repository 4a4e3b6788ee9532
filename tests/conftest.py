import pytest

from pgp_forwarding.engine import OpenPGPEngine


@pytest.fixture
def engine():
    return OpenPGPEngine()


@pytest.fixture
def bob_key(engine):
    """Bob's v4 private key"""
    return engine.generate_key([{"name": "Bob", "email": "info@bob.com"}], version=4)


@pytest.fixture
def alice_key(engine):
    """An unrelated second recipient"""
    return engine.generate_key([{"name": "Alice", "email": "info@alice.com"}], version=4)


@pytest.fixture
def charlie_identity():
    return {"name": "Charlie", "email": "info@charlie.com", "comment": "Forwarded from Bob"}
