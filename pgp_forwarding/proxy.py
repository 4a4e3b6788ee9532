"""
Proxy factor generation and forwarding key derivation.

For an original ECDH secret d and a random proxy factor k the forwarding
secret is d' = d * k^-1 mod n.  A relay that multiplies a sender's
ephemeral point P = r*G by k hands the forwarding holder k*P, and

    d' * (k * P) = d * k^-1 * k * r * G = d * r * G

which is exactly the shared secret the original holder would compute.  The
relay holds neither d nor d' and learns nothing about it.
"""

import os
from dataclasses import dataclass

from . import curve25519
from .constants import OID_CURVE25519
from .errors import InvalidScalarError, UnsupportedKeyError
from .interfaces import EncryptionSubkey

_FACTOR_BITS = curve25519.ORDER.bit_length()


@dataclass(frozen=True, repr=False)
class ProxyFactor:
    """The relay's secret scalar k, 1 <= k < n"""

    value: int

    def __post_init__(self):
        if not 0 < self.value < curve25519.ORDER:
            raise InvalidScalarError("Proxy factor out of range")

    def __repr__(self):
        return "ProxyFactor(<secret>)"

    def __int__(self):
        return self.value

    def inverse(self):
        return curve25519.mod_inverse(self.value)

    def to_bytes(self):
        """32-byte little-endian encoding for hand-off to the relay"""
        return self.value.to_bytes(32, "little")

    @classmethod
    def from_bytes(cls, data):
        if len(data) != 32:
            raise InvalidScalarError(f"Proxy factor must be 32 bytes, got {len(data)}")
        return cls(int.from_bytes(data, "little"))


def generate_proxy_factor():
    """Draw k uniformly from [1, n-1], redrawing on 0 or overflow"""
    mask = (1 << _FACTOR_BITS) - 1
    while True:
        candidate = int.from_bytes(os.urandom(32), "little") & mask
        if 0 < candidate < curve25519.ORDER:
            return ProxyFactor(candidate)


@dataclass(frozen=True, repr=False)
class ForwardingKeyPair:
    """
    Key material of a forwarding subkey.

    secret_scalar is stored in X25519-clamped form, so any X25519
    implementation computes d' * P with it.
    """

    secret_scalar: int
    public_point: bytes
    oid: bytes = OID_CURVE25519

    def __repr__(self):
        return f"ForwardingKeyPair(public_point={self.public_point.hex()})"


def derive_forwarding_keypair(original_subkey: EncryptionSubkey, factor: ProxyFactor):
    """
    Derive the forwarding keypair (d', Q') from an original subkey and k.

    Raises:
        UnsupportedKeyError: If the subkey is not a Curve25519 ECDH subkey
            with secret material.
        InvalidScalarError: If d' is zero or has no clamped form; callers
            retry with a new proxy factor.
    """
    if bytes(original_subkey.oid) != OID_CURVE25519:
        raise UnsupportedKeyError("Only Curve25519 ECDH subkeys can be forwarded")
    d = original_subkey.secret_scalar
    if d is None:
        raise UnsupportedKeyError("Forwarding requires the original secret key")

    derived = d * factor.inverse() % curve25519.ORDER
    if derived == 0:
        raise InvalidScalarError("Derived scalar reduces to zero")
    secret = curve25519.clamped_representative(derived)

    public = curve25519.scalar_multiply(curve25519.base_point(), secret)
    return ForwardingKeyPair(
        secret_scalar=secret,
        public_point=curve25519.encode_point(public),
        oid=OID_CURVE25519,
    )


def verify_forwarding_keypair(original_public_point, forwarding_public_point, factor):
    """Check k * Q' == Q for encoded public points"""
    forwarding = curve25519.decode_point(forwarding_public_point)
    original = curve25519.decode_point(original_public_point)
    return curve25519.scalar_multiply(forwarding, factor.value) == original
