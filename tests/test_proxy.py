"""
Tests for proxy factors and forwarding key derivation.
"""

import dataclasses

import pytest

from pgp_forwarding import curve25519
from pgp_forwarding.constants import OID_CURVE25519, OID_ED25519
from pgp_forwarding.errors import InvalidScalarError, UnsupportedKeyError
from pgp_forwarding.proxy import (
    ProxyFactor,
    derive_forwarding_keypair,
    generate_proxy_factor,
    verify_forwarding_keypair,
)


def _derive(subkey):
    for _ in range(128):
        factor = generate_proxy_factor()
        try:
            return factor, derive_forwarding_keypair(subkey, factor)
        except InvalidScalarError:
            continue
    pytest.fail("No usable proxy factor drawn")


def test_generate_proxy_factor_range():
    factors = {generate_proxy_factor().value for _ in range(20)}
    assert len(factors) == 20
    assert all(0 < value < curve25519.ORDER for value in factors)


@pytest.mark.parametrize("value", [0, curve25519.ORDER, -1])
def test_proxy_factor_rejects_out_of_range(value):
    with pytest.raises(InvalidScalarError):
        ProxyFactor(value)


def test_proxy_factor_repr_hides_value():
    factor = generate_proxy_factor()
    assert str(factor.value) not in repr(factor)
    assert factor.to_bytes().hex() not in repr(factor)


def test_proxy_factor_bytes():
    factor = generate_proxy_factor()
    data = factor.to_bytes()
    assert len(data) == 32
    assert ProxyFactor.from_bytes(data) == factor
    with pytest.raises(InvalidScalarError):
        ProxyFactor.from_bytes(data[:31])


def test_proxy_factor_inverse():
    factor = generate_proxy_factor()
    assert factor.value * factor.inverse() % curve25519.ORDER == 1


def test_derived_key_satisfies_k_times_q_prime(bob_key):
    subkey = bob_key.get_encryption_key()
    factor, keypair = _derive(subkey)

    assert keypair.oid == OID_CURVE25519
    assert keypair.public_point != subkey.public_point
    assert verify_forwarding_keypair(subkey.public_point, keypair.public_point, factor)
    assert not verify_forwarding_keypair(
        subkey.public_point, keypair.public_point, generate_proxy_factor()
    )


def test_derived_secret_is_clamped(bob_key):
    subkey = bob_key.get_encryption_key()
    factor, keypair = _derive(subkey)

    secret = keypair.secret_scalar
    assert secret & 7 == 0
    assert 2**254 <= secret < 2**255
    assert secret % curve25519.ORDER == subkey.secret_scalar * factor.inverse() % curve25519.ORDER
    assert str(secret) not in repr(keypair)


def test_derive_requires_secret(bob_key):
    public_subkey = bob_key.to_public().get_encryption_key()
    with pytest.raises(UnsupportedKeyError):
        derive_forwarding_keypair(public_subkey, generate_proxy_factor())


def test_derive_rejects_other_curves(bob_key):
    subkey = dataclasses.replace(bob_key.get_encryption_key(), oid=OID_ED25519)
    with pytest.raises(UnsupportedKeyError):
        derive_forwarding_keypair(subkey, generate_proxy_factor())
