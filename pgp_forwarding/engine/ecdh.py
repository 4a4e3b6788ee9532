"""
ECDH session key wrapping for Curve25519 subkeys (RFC 6637).

Encryption:
  1. Generate an ephemeral X25519 key pair {v, V = v*G}
  2. Shared secret S = v * R for the recipient point R
  3. Key-wrapping key Z = KDF(S, Param) where
        Param = oid_len || oid || 18 || kdf_params || "Anonymous Sender    " || fingerprint[:20]
  4. m = cipher_id || session_key || checksum, PKCS#5 padded to 8 bytes
  5. C = AESKeyWrap(Z, m); the packet carries V and C

A subkey whose KDF parameters name a replacement fingerprint or replacement
parameters contributes those to Param instead of its own, which is what lets
a forwarding subkey unwrap a session key wrapped for the original subkey.
"""

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash
from cryptography.hazmat.primitives.keywrap import InvalidUnwrap, aes_key_unwrap, aes_key_wrap

from .. import curve25519
from ..constants import HashAlgorithm, PublicKeyAlgorithm, SymmetricAlgorithm
from ..errors import SessionKeyDecryptionError, UnsupportedKeyError
from .packets import PublicKeyEncryptedSessionKey

ANONYMOUS_SENDER = b"Anonymous Sender    "

_HASHES = {
    HashAlgorithm.SHA256: hashes.SHA256,
    HashAlgorithm.SHA384: hashes.SHA384,
    HashAlgorithm.SHA512: hashes.SHA512,
}


def kdf_param(subkey):
    """The Param input of the RFC 6637 KDF for subkey"""
    params = subkey.kdf_params
    fingerprint = params.context_fingerprint(subkey.fingerprint)
    return (
        bytes([len(subkey.oid)])
        + bytes(subkey.oid)
        + bytes([PublicKeyAlgorithm.ECDH])
        + params.context_params()
        + ANONYMOUS_SENDER
        + bytes(fingerprint[:20])
    )


def derive_wrapping_key(shared_secret, subkey):
    hash_id, cipher_id = subkey.kdf_params.context_algorithms()
    ckdf = ConcatKDFHash(
        algorithm=_HASHES[hash_id](),
        length=cipher_id.key_size,
        otherinfo=kdf_param(subkey),
        backend=default_backend(),
    )
    return ckdf.derive(shared_secret)


def _checksum(session_key):
    return (sum(session_key) & 0xFFFF).to_bytes(2, "big")


def wrap_session_key(subkey, cipher_algo, session_key):
    """Encrypt session_key to subkey; returns a session key packet"""
    if not subkey.is_encryption_key:
        raise UnsupportedKeyError("Subkey is not an ECDH key")

    # Generate ephemeral key pair and derive the shared secret
    recipient = X25519PublicKey.from_public_bytes(bytes(subkey.public_point[1:]))
    ephemeral = X25519PrivateKey.generate()
    shared_secret = ephemeral.exchange(recipient)

    wrapping_key = derive_wrapping_key(shared_secret, subkey)

    # m = cipher id || key || checksum, padded to a multiple of 8
    m = bytes([cipher_algo]) + session_key + _checksum(session_key)
    padder = padding.PKCS7(64).padder()
    padded = padder.update(m) + padder.finalize()

    ephemeral_public = ephemeral.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return PublicKeyEncryptedSessionKey(
        key_id=subkey.key_id,
        ephemeral_point=b"\x40" + ephemeral_public,
        wrapped_key=aes_key_wrap(wrapping_key, padded, backend=default_backend()),
    )


def unwrap_session_key(subkey, pkesk):
    """
    Recover (cipher algorithm, session key) from pkesk with subkey's secret.

    Every failure surfaces as SessionKeyDecryptionError.
    """
    if subkey.secret is None:
        raise UnsupportedKeyError("Decryption requires a secret subkey")
    try:
        curve25519.decode_point(pkesk.ephemeral_point)
        private_key = X25519PrivateKey.from_private_bytes(subkey.secret)
        ephemeral = X25519PublicKey.from_public_bytes(bytes(pkesk.ephemeral_point[1:]))
        shared_secret = private_key.exchange(ephemeral)

        wrapping_key = derive_wrapping_key(shared_secret, subkey)
        padded = aes_key_unwrap(wrapping_key, pkesk.wrapped_key, backend=default_backend())

        unpadder = padding.PKCS7(64).unpadder()
        m = unpadder.update(padded) + unpadder.finalize()
        cipher_algo = SymmetricAlgorithm(m[0])
        session_key, checksum = m[1:-2], m[-2:]
    except (InvalidUnwrap, ValueError, IndexError) as e:
        raise SessionKeyDecryptionError() from e

    if len(session_key) != cipher_algo.key_size or checksum != _checksum(session_key):
        raise SessionKeyDecryptionError()
    return cipher_algo, session_key
