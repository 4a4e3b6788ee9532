"""
Message encryption and decryption.

A message is a list of session key packets (one per recipient) followed by
an integrity protected data packet holding a literal data packet.
"""

import logging
import os
from dataclasses import dataclass
from typing import Union

from ..config import DEFAULT_MESSAGE_CIPHER
from ..constants import PacketTag, SymmetricAlgorithm
from ..errors import PacketError, SessionKeyDecryptionError
from . import armor as _armor
from .ecdh import unwrap_session_key, wrap_session_key
from .packets import (
    LiteralData,
    PublicKeyEncryptedSessionKey,
    decrypt_integrity_protected,
    encrypt_integrity_protected,
    pkesk_key_id,
    read_packets,
    write_packets,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecryptedMessage:
    data: Union[str, bytes]
    filename: bytes
    algorithm: SymmetricAlgorithm


def read_message(message):
    """Parse armored or binary message data; returns (packets, armored)"""
    if _armor.is_armored(message):
        return read_packets(_armor.dearmor(message)), True
    if isinstance(message, str):
        raise PacketError("Text input is not an armored PGP message")
    return read_packets(message), False


def encode_message(packets, armored=True):
    data = write_packets(packets)
    return _armor.armor(data) if armored else data


def _as_list(keys):
    if isinstance(keys, (list, tuple)):
        return list(keys)
    return [keys]


def encrypt_message(message, public_keys, cipher=DEFAULT_MESSAGE_CIPHER, armor=True, session_key=None):
    """Encrypt text or bytes to every key in public_keys"""
    cipher = SymmetricAlgorithm(cipher)
    if session_key is None:
        session_key = os.urandom(cipher.key_size)

    packets = [
        wrap_session_key(key.get_encryption_key(), cipher, session_key).to_packet()
        for key in _as_list(public_keys)
    ]

    if isinstance(message, str):
        literal = LiteralData.from_text(message)
    else:
        literal = LiteralData(data=bytes(message))
    packets.append(encrypt_integrity_protected(session_key, cipher, literal.to_packet().serialize()))
    return encode_message(packets, armor)


def decrypt_session_key(packets, private_keys):
    """
    Try every decryption subkey against the session key packets addressed to it.

    Packets for other recipients are never parsed, so a malformed one does
    not get in the way.
    """
    for key in _as_list(private_keys):
        for subkey in key.get_decryption_keys():
            for packet in packets:
                if pkesk_key_id(packet) != subkey.key_id:
                    continue
                try:
                    pkesk = PublicKeyEncryptedSessionKey.from_packet(packet)
                    return unwrap_session_key(subkey, pkesk)
                except (PacketError, SessionKeyDecryptionError):
                    logger.debug(f"Session key packet for {subkey.key_id.hex()} did not unwrap")
    raise SessionKeyDecryptionError()


def decrypt_message(message, private_keys):
    """Decrypt an armored or binary message with any of private_keys"""
    packets, _ = read_message(message)
    algorithm, session_key = decrypt_session_key(packets, private_keys)

    encrypted = [p for p in packets if p.tag == PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA]
    if not encrypted:
        raise PacketError("No integrity protected data packet")
    inner = read_packets(decrypt_integrity_protected(session_key, algorithm, encrypted[0]))

    literals = [p for p in inner if p.tag == PacketTag.LITERAL_DATA]
    if not literals:
        raise PacketError("No literal data packet")
    literal = LiteralData.from_packet(literals[0])
    data = literal.text if literal.format in (b"u", b"t") else literal.data
    return DecryptedMessage(data=data, filename=literal.filename, algorithm=algorithm)
