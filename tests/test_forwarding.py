"""
End-to-end tests: Bob forwards to Charlie through a relay.
"""

import pytest

from pgp_forwarding import forwarding, generate_forwarding_material, transform
from pgp_forwarding.config import ForwardingConfig
from pgp_forwarding.engine import decrypt_message, encrypt_message
from pgp_forwarding.engine.keys import Key
from pgp_forwarding.errors import (
    ConfigError,
    InvalidScalarError,
    SessionKeyDecryptionError,
    UnsupportedKeyError,
)
from pgp_forwarding.proxy import verify_forwarding_keypair

MESSAGE = "Hello Bob, hello world"


@pytest.fixture(params=[4, 5])
def any_bob_key(request, engine):
    """Bob's private key in each supported key version"""
    return engine.generate_key([{"name": "Bob", "email": "info@bob.com"}], version=request.param)


def test_forwarding_keys_are_distinct(any_bob_key, charlie_identity):
    bob_key = any_bob_key
    material = generate_forwarding_material(bob_key, charlie_identity)
    charlie_key = material.final_recipient_key
    bob_subkey = bob_key.get_encryption_key()
    charlie_subkey = charlie_key.get_encryption_key()

    assert charlie_key.version == bob_key.version
    assert charlie_subkey.secret_scalar != bob_subkey.secret_scalar
    assert charlie_key.primary.secret != bob_key.primary.secret

    assert charlie_key.key_id != bob_key.key_id
    assert charlie_key.fingerprint != bob_key.fingerprint
    assert charlie_subkey.key_id != bob_subkey.key_id
    assert charlie_subkey.public_point != bob_subkey.public_point
    assert material.original_key_id == bob_subkey.key_id
    assert material.forwarding_key_id == charlie_subkey.key_id
    assert charlie_key.user_ids == ("Charlie (Forwarded from Bob) <info@charlie.com>",)


def test_forwarding_subkey_kdf_params(any_bob_key, charlie_identity):
    bob_key = any_bob_key
    material = generate_forwarding_material(bob_key, charlie_identity)
    bob_subkey = bob_key.get_encryption_key()
    params = material.final_recipient_key.get_encryption_key().kdf_params

    assert params.version == 2
    assert params.flags == 0x3
    assert params.replacement_fingerprint.hex() == bob_subkey.fingerprint.hex()
    assert len(params.replacement_fingerprint) == (20 if bob_key.version == 4 else 32)
    assert params.replacement_kdf_params == bob_subkey.kdf_params.write()


def test_forwarding_public_point_matches_factor(bob_key, charlie_identity):
    material = generate_forwarding_material(bob_key, charlie_identity)
    assert verify_forwarding_keypair(
        bob_key.get_encryption_key().public_point,
        material.final_recipient_key.get_encryption_key().public_point,
        material.proxy_factor,
    )


@pytest.mark.parametrize("version", [4, 5])
def test_end_to_end(engine, version, charlie_identity):
    bob_key = engine.generate_key([{"name": "Bob", "email": "info@bob.com"}], version=version)
    material = generate_forwarding_material(bob_key, charlie_identity, engine=engine)
    charlie_key = material.final_recipient_key
    assert charlie_key.version == version

    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    assert decrypt_message(ciphertext, [bob_key]).data == MESSAGE

    transformed = transform(ciphertext, *material.relay_parameters())
    assert decrypt_message(transformed, [charlie_key]).data == MESSAGE


def test_charlie_cannot_read_untransformed(any_bob_key, charlie_identity):
    bob_key = any_bob_key
    material = generate_forwarding_material(bob_key, charlie_identity)
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])

    with pytest.raises(SessionKeyDecryptionError, match="Session key decryption failed"):
        decrypt_message(ciphertext, [material.final_recipient_key])


def test_bob_cannot_read_transformed(bob_key, charlie_identity):
    material = generate_forwarding_material(bob_key, charlie_identity)
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    transformed = transform(ciphertext, *material.relay_parameters())

    with pytest.raises(SessionKeyDecryptionError):
        decrypt_message(transformed, [bob_key])


def test_key_version_override(bob_key, charlie_identity):
    config = ForwardingConfig(key_version=5)
    material = generate_forwarding_material(bob_key, charlie_identity, config=config)
    charlie_key = material.final_recipient_key
    assert charlie_key.version == 5
    assert len(charlie_key.fingerprint) == 32

    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    transformed = transform(ciphertext, *material.relay_parameters())
    assert decrypt_message(transformed, [charlie_key]).data == MESSAGE


def test_multiple_identities(bob_key):
    material = generate_forwarding_material(
        bob_key, ["Charlie <info@charlie.com>", {"name": "Charles"}]
    )
    assert material.final_recipient_key.user_ids == ("Charlie <info@charlie.com>", "Charles")


def test_invalid_config(bob_key, charlie_identity):
    with pytest.raises(ConfigError):
        generate_forwarding_material(bob_key, charlie_identity, config=ForwardingConfig(key_version=3))
    with pytest.raises(ConfigError):
        generate_forwarding_material(
            bob_key, charlie_identity, config=ForwardingConfig(max_derivation_attempts=0)
        )
    with pytest.raises(ConfigError):
        generate_forwarding_material(bob_key, charlie_identity, config=ForwardingConfig(kdf_hash=2))


def test_key_without_encryption_subkey(bob_key, charlie_identity):
    signing_only = Key(primary=bob_key.primary, user_ids=bob_key.user_ids, subkeys=())
    with pytest.raises(UnsupportedKeyError):
        generate_forwarding_material(signing_only, charlie_identity)


def test_public_key_cannot_be_forwarded(bob_key, charlie_identity):
    with pytest.raises(UnsupportedKeyError):
        generate_forwarding_material(bob_key.to_public(), charlie_identity)


def test_derivation_attempts_exhausted(bob_key, charlie_identity, monkeypatch):
    calls = []

    def reject(subkey, factor):
        calls.append(factor)
        raise InvalidScalarError("Scalar has no clamped representative")

    monkeypatch.setattr(forwarding, "derive_forwarding_keypair", reject)
    with pytest.raises(InvalidScalarError):
        generate_forwarding_material(
            bob_key, charlie_identity, config=ForwardingConfig(max_derivation_attempts=3)
        )
    assert len(calls) == 3
