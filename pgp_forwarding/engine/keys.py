"""
Curve25519 OpenPGP keys: an Ed25519 primary key with an ECDH subkey.

Only what forwarding and message encryption need is modelled: public key
packet bodies (for fingerprints), key IDs and secret material.  Signatures
and key serialization are left to a full OpenPGP implementation.
"""

import hashlib
import time
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from .. import curve25519
from ..constants import (
    OID_CURVE25519,
    OID_ED25519,
    SUPPORTED_KEY_VERSIONS,
    PublicKeyAlgorithm,
)
from ..errors import UnsupportedKeyError
from ..kdf import KDFParams
from .packets import encode_mpi


@dataclass(frozen=True, repr=False)
class KeyPacket:
    """Public key material plus, for private keys, the raw secret"""

    version: int
    created: int
    algorithm: int
    oid: bytes
    public_point: bytes
    kdf_params: Optional[KDFParams] = None
    # Ed25519 seed, or the clamped X25519 scalar in little-endian order
    secret: Optional[bytes] = None

    def __repr__(self):
        kind = "private" if self.secret is not None else "public"
        return f"KeyPacket(v{self.version}, algorithm={self.algorithm}, {kind}, key_id={self.key_id.hex()})"

    def public_material(self):
        material = bytes([len(self.oid)]) + self.oid + encode_mpi(self.public_point)
        if self.algorithm == PublicKeyAlgorithm.ECDH:
            material += self.kdf_params.write()
        return material

    def public_body(self):
        """Body of the public key packet, as hashed into the fingerprint"""
        material = self.public_material()
        body = bytes([self.version]) + self.created.to_bytes(4, "big") + bytes([self.algorithm])
        if self.version == 5:
            body += len(material).to_bytes(4, "big")
        return body + material

    @property
    def fingerprint(self):
        body = self.public_body()
        if self.version == 5:
            return hashlib.sha256(b"\x9a" + len(body).to_bytes(4, "big") + body).digest()
        return hashlib.sha1(b"\x99" + len(body).to_bytes(2, "big") + body).digest()

    @property
    def key_id(self):
        fingerprint = self.fingerprint
        if self.version == 5:
            return fingerprint[:8]
        return fingerprint[-8:]

    @property
    def secret_scalar(self):
        if self.algorithm != PublicKeyAlgorithm.ECDH or self.secret is None:
            return None
        return int.from_bytes(self.secret, "little")

    @property
    def is_encryption_key(self):
        return self.algorithm == PublicKeyAlgorithm.ECDH

    def to_public(self):
        return replace(self, secret=None)


@dataclass(frozen=True)
class Key:
    primary: KeyPacket
    user_ids: Tuple[str, ...]
    subkeys: Tuple[KeyPacket, ...]

    @property
    def key_id(self):
        return self.primary.key_id

    @property
    def fingerprint(self):
        return self.primary.fingerprint

    @property
    def version(self):
        return self.primary.version

    @property
    def is_private(self):
        return self.primary.secret is not None

    def get_encryption_key(self):
        for subkey in self.subkeys:
            if subkey.is_encryption_key:
                return subkey
        raise UnsupportedKeyError(f"Key {self.key_id.hex()} has no encryption subkey")

    def get_decryption_keys(self):
        return [s for s in self.subkeys if s.is_encryption_key and s.secret is not None]

    def to_public(self):
        return Key(
            primary=self.primary.to_public(),
            user_ids=self.user_ids,
            subkeys=tuple(subkey.to_public() for subkey in self.subkeys),
        )


def format_user_id(identity):
    """Render {'name', 'email', 'comment'} as 'name (comment) <email>'"""
    if isinstance(identity, str):
        return identity
    parts = []
    if identity.get("name"):
        parts.append(identity["name"])
    if identity.get("comment"):
        parts.append(f"({identity['comment']})")
    if identity.get("email"):
        parts.append(f"<{identity['email']}>")
    if not parts:
        raise ValueError("User ID needs at least a name or an email")
    return " ".join(parts)


def _check_version(version):
    if version not in SUPPORTED_KEY_VERSIONS:
        raise UnsupportedKeyError(f"Unsupported key version {version}")


def _raw_private(private_key):
    return private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _raw_public(public_key):
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def build_encryption_subkey(version, secret_scalar, public_point, kdf_params, created=None):
    """
    ECDH Curve25519 subkey from explicit material.

    secret_scalar may be None for a public subkey; otherwise it must be in
    clamped form and match public_point.
    """
    _check_version(version)
    curve25519.decode_point(public_point)
    secret = None
    if secret_scalar is not None:
        secret = secret_scalar.to_bytes(32, "little")
        expected = _raw_public(X25519PrivateKey.from_private_bytes(secret).public_key())
        if bytes(public_point[1:]) != expected:
            raise UnsupportedKeyError("Secret scalar does not match the public point")
    return KeyPacket(
        version=version,
        created=int(time.time()) if created is None else created,
        algorithm=PublicKeyAlgorithm.ECDH,
        oid=OID_CURVE25519,
        public_point=bytes(public_point),
        kdf_params=kdf_params,
        secret=secret,
    )


def generate_encryption_subkey(version, created=None, kdf_params=None):
    private_key = X25519PrivateKey.generate()
    secret = curve25519.clamp(_raw_private(private_key))
    public_point = b"\x40" + _raw_public(private_key.public_key())
    return build_encryption_subkey(
        version, secret, public_point, kdf_params or KDFParams.standard(), created
    )


def generate_key(user_ids, version=4, created=None):
    """Generate an Ed25519 primary key with a Curve25519 encryption subkey"""
    _check_version(version)
    created = int(time.time()) if created is None else created

    signing_key = Ed25519PrivateKey.generate()
    primary = KeyPacket(
        version=version,
        created=created,
        algorithm=PublicKeyAlgorithm.EDDSA,
        oid=OID_ED25519,
        public_point=b"\x40" + _raw_public(signing_key.public_key()),
        secret=_raw_private(signing_key),
    )
    subkey = generate_encryption_subkey(version, created)
    return Key(
        primary=primary,
        user_ids=tuple(format_user_id(identity) for identity in user_ids),
        subkeys=(subkey,),
    )


def replace_encryption_subkey(key, subkey):
    """Copy of key with its encryption subkey swapped for subkey"""
    if subkey.version != key.version:
        raise UnsupportedKeyError(
            f"Subkey version {subkey.version} does not match key version {key.version}"
        )
    current = key.get_encryption_key()
    subkeys = tuple(subkey if s is current else s for s in key.subkeys)
    return replace(key, subkeys=subkeys)
