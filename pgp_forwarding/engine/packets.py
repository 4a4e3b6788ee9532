"""
OpenPGP packet framing and the message packets the engine produces.

Packets are immutable.  A packet read from a message keeps the exact bytes
it was read from, so reserializing an untouched packet reproduces it
byte-for-byte whatever header format the sender used.
"""

import hashlib
import hmac
import os
from dataclasses import dataclass, field, replace
from typing import Optional

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..constants import PacketTag, PublicKeyAlgorithm, SymmetricAlgorithm
from ..errors import DecryptionError, PacketError

_MDC_HEADER = b"\xd3\x14"
_MDC_SIZE = 22


@dataclass(frozen=True)
class Packet:
    tag: int
    body: bytes
    raw: Optional[bytes] = field(default=None, compare=False, repr=False)

    def serialize(self):
        if self.raw is not None:
            return self.raw
        return encode_header(self.tag, len(self.body)) + self.body


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

def encode_header(tag, length):
    """New-format packet header"""
    header = bytearray([0xC0 | tag])
    if length < 192:
        header.append(length)
    elif length < 8384:
        length -= 192
        header += bytes([(length >> 8) + 192, length & 0xFF])
    else:
        header.append(0xFF)
        header += length.to_bytes(4, "big")
    return bytes(header)


def _new_format_length(data, pos):
    """Return (length, next offset, partial) for a new-format length at pos"""
    if pos >= len(data):
        raise PacketError("Truncated packet header")
    first = data[pos]
    if first < 192:
        return first, pos + 1, False
    if first < 224:
        if pos + 1 >= len(data):
            raise PacketError("Truncated packet header")
        return ((first - 192) << 8) + data[pos + 1] + 192, pos + 2, False
    if first == 255:
        if pos + 5 > len(data):
            raise PacketError("Truncated packet header")
        return int.from_bytes(data[pos + 1:pos + 5], "big"), pos + 5, False
    # partial body length, another length follows the chunk
    return 1 << (first & 0x1F), pos + 1, True


def _read_packet(data, offset):
    """Return (tag, body, end offset) for the packet at offset"""
    ctb = data[offset]
    if not ctb & 0x80:
        raise PacketError(f"Invalid packet header octet 0x{ctb:02x}")
    pos = offset + 1

    if ctb & 0x40:
        tag = ctb & 0x3F
        body = bytearray()
        partial = True
        while partial:
            length, pos, partial = _new_format_length(data, pos)
            end = pos + length
            if end > len(data):
                raise PacketError(f"Packet with tag {tag} is truncated")
            body += data[pos:end]
            pos = end
        return tag, bytes(body), pos

    # old format
    tag = (ctb >> 2) & 0x0F
    length_type = ctb & 0x03
    if length_type == 3:
        return tag, data[pos:], len(data)
    size = (1, 2, 4)[length_type]
    if pos + size > len(data):
        raise PacketError("Truncated packet header")
    start = pos + size
    end = start + int.from_bytes(data[pos:start], "big")
    if end > len(data):
        raise PacketError(f"Packet with tag {tag} is truncated")
    return tag, data[start:end], end


def read_packets(data):
    """
    Split binary message data into a tuple of packets.

    Partial body lengths are joined into one body; raw keeps the chunked
    framing as sent.
    """
    data = bytes(data)
    packets = []
    offset = 0
    while offset < len(data):
        tag, body, end = _read_packet(data, offset)
        packets.append(Packet(tag=tag, body=body, raw=data[offset:end]))
        offset = end
    if not packets:
        raise PacketError("Empty message")
    return tuple(packets)


def write_packets(packets):
    return b"".join(packet.serialize() for packet in packets)


# ---------------------------------------------------------------------------
# Multiprecision integers
# ---------------------------------------------------------------------------

def encode_mpi(value):
    """Encode big-endian bytes as an MPI"""
    value = bytes(value).lstrip(b"\x00")
    bits = int.from_bytes(value, "big").bit_length()
    return bits.to_bytes(2, "big") + value


def read_mpi(data, offset):
    """Return (value bytes, next offset)"""
    if offset + 2 > len(data):
        raise PacketError("Truncated MPI")
    bits = int.from_bytes(data[offset:offset + 2], "big")
    end = offset + 2 + (bits + 7) // 8
    if end > len(data):
        raise PacketError("Truncated MPI")
    return bytes(data[offset + 2:end]), end


# ---------------------------------------------------------------------------
# Public-key encrypted session key (tag 1), version 3, ECDH
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PublicKeyEncryptedSessionKey:
    key_id: bytes
    ephemeral_point: bytes
    wrapped_key: bytes
    algorithm: int = PublicKeyAlgorithm.ECDH
    version: int = 3

    @classmethod
    def from_packet(cls, packet):
        body = packet.body
        if len(body) < 10:
            raise PacketError("Session key packet too short")
        if body[0] != 3:
            raise PacketError(f"Unsupported session key packet version {body[0]}")
        if body[9] != PublicKeyAlgorithm.ECDH:
            raise PacketError(f"Unsupported session key algorithm {body[9]}")

        point, offset = read_mpi(body, 10)
        if offset >= len(body):
            raise PacketError("Missing wrapped session key")
        size = body[offset]
        wrapped = body[offset + 1:offset + 1 + size]
        if len(wrapped) != size or offset + 1 + size != len(body):
            raise PacketError("Malformed wrapped session key")
        return cls(key_id=body[1:9], ephemeral_point=point, wrapped_key=wrapped)

    def to_packet(self):
        body = bytearray([self.version])
        body += self.key_id
        body.append(self.algorithm)
        body += encode_mpi(self.ephemeral_point)
        body.append(len(self.wrapped_key))
        body += self.wrapped_key
        return Packet(tag=PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY, body=bytes(body))

    def with_recipient(self, key_id, ephemeral_point):
        """Copy addressed to key_id with a new point; wrapped key untouched"""
        if len(key_id) != 8:
            raise PacketError("Key ID must be 8 bytes")
        return replace(self, key_id=bytes(key_id), ephemeral_point=bytes(ephemeral_point))


def is_ecdh_pkesk(packet):
    body = packet.body
    return (
        packet.tag == PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY
        and len(body) >= 10
        and body[0] == 3
        and body[9] == PublicKeyAlgorithm.ECDH
    )


def pkesk_key_id(packet):
    """Recipient key ID of an ECDH session key packet, read without parsing the rest"""
    if not is_ecdh_pkesk(packet):
        return None
    return bytes(packet.body[1:9])


# ---------------------------------------------------------------------------
# Literal data (tag 11)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LiteralData:
    data: bytes
    format: bytes = b"b"
    filename: bytes = b""
    date: int = 0

    @classmethod
    def from_text(cls, text, date=0):
        return cls(data=text.encode("utf-8"), format=b"u", date=date)

    @classmethod
    def from_packet(cls, packet):
        body = packet.body
        if len(body) < 6:
            raise PacketError("Literal data packet too short")
        name_len = body[1]
        date_start = 2 + name_len
        if date_start + 4 > len(body):
            raise PacketError("Malformed literal data packet")
        return cls(
            data=body[date_start + 4:],
            format=body[0:1],
            filename=body[2:date_start],
            date=int.from_bytes(body[date_start:date_start + 4], "big"),
        )

    def to_packet(self):
        body = self.format + bytes([len(self.filename)]) + self.filename
        body += self.date.to_bytes(4, "big") + self.data
        return Packet(tag=PacketTag.LITERAL_DATA, body=body)

    @property
    def text(self):
        return self.data.decode("utf-8")


# ---------------------------------------------------------------------------
# Symmetrically encrypted integrity protected data (tag 18), version 1
# ---------------------------------------------------------------------------

def _cfb(key, cipher_algo, data, decrypt=False):
    """
    OpenPGP CFB with a zero IV over the AES block function.

    Each keystream block is the encryption of the previous ciphertext block,
    so encryption and decryption differ only in which side feeds back.
    """
    block_size = SymmetricAlgorithm(cipher_algo).block_size
    block = Cipher(algorithms.AES(key), modes.ECB(), backend=default_backend()).encryptor()

    feedback = bytes(block_size)
    out = bytearray()
    for i in range(0, len(data), block_size):
        chunk = data[i:i + block_size]
        keystream = block.update(feedback)
        result = bytes(a ^ b for a, b in zip(chunk, keystream))
        out += result
        feedback = chunk if decrypt else result
    return bytes(out)


def encrypt_integrity_protected(session_key, cipher_algo, inner):
    """Encrypt serialized inner packets into a SEIPD packet"""
    block_size = SymmetricAlgorithm(cipher_algo).block_size

    # Random prefix with its last two octets repeated
    prefix = os.urandom(block_size)
    prefix += prefix[-2:]

    # MDC covers the prefix, the data and the MDC packet header
    to_hash = prefix + inner + _MDC_HEADER
    plaintext = to_hash + hashlib.sha1(to_hash).digest()

    ciphertext = _cfb(session_key, cipher_algo, plaintext)
    return Packet(tag=PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA, body=b"\x01" + ciphertext)


def decrypt_integrity_protected(session_key, cipher_algo, packet):
    """Decrypt a SEIPD packet and return the inner packet bytes"""
    body = packet.body
    if not body or body[0] != 1:
        raise PacketError("Unsupported integrity protected data version")
    block_size = SymmetricAlgorithm(cipher_algo).block_size

    plaintext = _cfb(session_key, cipher_algo, body[1:], decrypt=True)
    if len(plaintext) < block_size + 2 + _MDC_SIZE:
        raise DecryptionError("Encrypted data too short")

    mdc = plaintext[-_MDC_SIZE:]
    expected = _MDC_HEADER + hashlib.sha1(plaintext[:-20]).digest()
    if not hmac.compare_digest(mdc, expected):
        raise DecryptionError("Modification detected.")
    return plaintext[block_size + 2:-_MDC_SIZE]
