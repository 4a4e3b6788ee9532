"""
Minimal OpenPGP engine for Curve25519 keys.

Implements the KeyEngine and PacketCodec interfaces the forwarding code
depends on, plus message encryption and decryption honouring replacement
KDF parameters.
"""

from ..config import DEFAULT_KEY_VERSION
from . import keys, message
from .keys import Key, KeyPacket
from .message import DecryptedMessage, decrypt_message, encrypt_message
from .packets import Packet, PublicKeyEncryptedSessionKey, is_ecdh_pkesk, pkesk_key_id


class OpenPGPEngine:
    """Key construction and packet codec backed by the cryptography package"""

    # KeyEngine

    def generate_key(self, user_ids, version=DEFAULT_KEY_VERSION):
        return keys.generate_key(user_ids, version=version)

    def build_encryption_subkey(self, version, secret_scalar, public_point, kdf_params):
        return keys.build_encryption_subkey(version, secret_scalar, public_point, kdf_params)

    def replace_encryption_subkey(self, key, subkey):
        return keys.replace_encryption_subkey(key, subkey)

    # PacketCodec

    def read_packets(self, ciphertext):
        return message.read_message(ciphertext)

    def write_packets(self, packets, armored):
        return message.encode_message(packets, armored)

    def parse_pkesk(self, packet):
        if not is_ecdh_pkesk(packet):
            return None
        return PublicKeyEncryptedSessionKey.from_packet(packet)

    def recipient_key_id(self, packet):
        return pkesk_key_id(packet)

    # Messages

    def encrypt(self, plaintext, public_keys, **kwargs):
        return encrypt_message(plaintext, public_keys, **kwargs)

    def decrypt(self, ciphertext, private_keys):
        return decrypt_message(ciphertext, private_keys)


_default_engine = OpenPGPEngine()


def default_engine():
    return _default_engine


__all__ = [
    "DecryptedMessage",
    "Key",
    "KeyPacket",
    "OpenPGPEngine",
    "Packet",
    "PublicKeyEncryptedSessionKey",
    "decrypt_message",
    "default_engine",
    "encrypt_message",
]
