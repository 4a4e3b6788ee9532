"""
ECDH KDF parameters and the forwarding KDF context override.

A Curve25519 ECDH subkey stores a small KDF parameter block after its public
point.  RFC 6637 defines version 1:

    03 || 01 || hash_id || cipher_id

Forwarding subkeys use version 2, which appends a flags octet and the fields
the flags announce:

    len || 02 || hash_id || cipher_id || flags
        [|| replacement_fingerprint]      flags & 0x01
        [|| replacement_kdf_params]       flags & 0x02 (a v1 block)

When deriving the key-wrapping key, an engine uses the replacement
fingerprint and parameters instead of the subkey's own.  The session key
wrapped for the original subkey was derived with the original fingerprint,
and the relay never touches the wrapped bytes, so the forwarding holder must
rebuild exactly that context.

Flags are a bitmask: unknown bits are kept, and bytes following the known
fields are carried verbatim in ``extensions``.
"""

from dataclasses import dataclass
from typing import Optional

from .config import (
    KDF_FLAG_REPLACEMENT_FINGERPRINT,
    KDF_FLAG_REPLACEMENT_PARAMS,
    KDF_FLAGS_FORWARDING,
    KDF_VERSION_FORWARDING,
    KDF_VERSION_STANDARD,
    ForwardingConfig,
)
from .constants import HashAlgorithm, SymmetricAlgorithm
from .errors import PacketError

# v4 fingerprints are 20 bytes, v5 fingerprints 32
FINGERPRINT_SIZES = (20, 32)


@dataclass(frozen=True)
class KDFParams:
    version: int
    hash: int
    cipher: int
    flags: int = 0
    replacement_fingerprint: Optional[bytes] = None
    replacement_kdf_params: Optional[bytes] = None
    extensions: bytes = b""

    def __post_init__(self):
        if self.version != KDF_VERSION_FORWARDING:
            return
        if self.flags & KDF_FLAG_REPLACEMENT_FINGERPRINT and (
            self.replacement_fingerprint is None
            or len(self.replacement_fingerprint) not in FINGERPRINT_SIZES
        ):
            raise PacketError("Replacement fingerprint flag set without a valid fingerprint")
        if self.flags & KDF_FLAG_REPLACEMENT_PARAMS and (
            self.replacement_kdf_params is None
            or _take_params(self.replacement_kdf_params) != (self.replacement_kdf_params, b"")
        ):
            raise PacketError("Replacement parameters flag set without valid parameters")

    @classmethod
    def standard(cls, hash=HashAlgorithm.SHA256, cipher=SymmetricAlgorithm.AES128):
        """Version 1 parameters as written by ordinary key generation"""
        return cls(version=KDF_VERSION_STANDARD, hash=int(hash), cipher=int(cipher))

    @classmethod
    def read(cls, data, offset=0):
        """Parse a length-prefixed block at offset; return (params, next offset)"""
        if offset >= len(data):
            raise PacketError("Missing KDF parameters")
        size = data[offset]
        if size in (0, 0xFF):
            raise PacketError(f"Reserved KDF parameter length {size}")
        body = bytes(data[offset + 1:offset + 1 + size])
        if len(body) != size:
            raise PacketError("Truncated KDF parameters")
        return cls._parse_body(body), offset + 1 + size

    @classmethod
    def parse(cls, data):
        params, end = cls.read(data)
        if end != len(data):
            raise PacketError("Trailing bytes after KDF parameters")
        return params

    @classmethod
    def _parse_body(cls, body):
        if len(body) < 3:
            raise PacketError("KDF parameters too short")
        version, hash_id, cipher_id = body[0], body[1], body[2]

        if version == KDF_VERSION_STANDARD:
            if len(body) != 3:
                raise PacketError("Version 1 KDF parameters must be 3 bytes")
            return cls(version=version, hash=hash_id, cipher=cipher_id)

        if version != KDF_VERSION_FORWARDING:
            raise PacketError(f"Unsupported KDF parameters version {version}")
        if len(body) < 4:
            raise PacketError("Version 2 KDF parameters missing flags")

        flags = body[3]
        fingerprint, replacement, extensions = _split_replacements(flags, body[4:])
        return cls(
            version=version,
            hash=hash_id,
            cipher=cipher_id,
            flags=flags,
            replacement_fingerprint=fingerprint,
            replacement_kdf_params=replacement,
            extensions=extensions,
        )

    def write(self):
        """Serialize as stored in the key packet"""
        if self.version == KDF_VERSION_STANDARD:
            return self.write_v1()
        body = bytearray([self.version, self.hash, self.cipher, self.flags])
        if self.flags & KDF_FLAG_REPLACEMENT_FINGERPRINT:
            body += self.replacement_fingerprint
        if self.flags & KDF_FLAG_REPLACEMENT_PARAMS:
            body += self.replacement_kdf_params
        body += self.extensions
        return bytes([len(body)]) + bytes(body)

    def write_v1(self):
        """The RFC 6637 form of these parameters, ignoring any replacements"""
        return bytes([3, KDF_VERSION_STANDARD, self.hash, self.cipher])

    @property
    def is_forwarding(self):
        return self.version == KDF_VERSION_FORWARDING and (
            self.flags & KDF_FLAGS_FORWARDING == KDF_FLAGS_FORWARDING
        )

    def context_params(self):
        """KDF parameter bytes that enter the key-wrapping KDF"""
        if self.version == KDF_VERSION_FORWARDING and self.flags & KDF_FLAG_REPLACEMENT_PARAMS:
            return self.replacement_kdf_params
        return self.write_v1()

    def context_fingerprint(self, own_fingerprint):
        """Fingerprint that enters the key-wrapping KDF"""
        if self.version == KDF_VERSION_FORWARDING and self.flags & KDF_FLAG_REPLACEMENT_FINGERPRINT:
            return self.replacement_fingerprint
        return own_fingerprint

    def context_algorithms(self):
        """(hash, cipher) ids of the effective KDF context"""
        params = self.context_params()
        return HashAlgorithm(params[2]), SymmetricAlgorithm(params[3])


def _split_replacements(flags, rest):
    """Split the tail of a v2 block into fingerprint, replacement params, extensions"""
    want_params = bool(flags & KDF_FLAG_REPLACEMENT_PARAMS)

    if not flags & KDF_FLAG_REPLACEMENT_FINGERPRINT:
        replacement, extensions = _take_params(rest) if want_params else (None, rest)
        if want_params and replacement is None:
            raise PacketError("Malformed replacement KDF parameters")
        return None, replacement, extensions

    # The fingerprint length is implied by whatever the other fields leave over
    candidates = []
    for size in FINGERPRINT_SIZES:
        if len(rest) < size:
            continue
        tail = rest[size:]
        if want_params:
            replacement, extensions = _take_params(tail)
            if replacement is None:
                continue
        else:
            replacement, extensions = None, tail
        candidates.append((rest[:size], replacement, extensions))

    if not candidates:
        raise PacketError("Malformed replacement fingerprint")
    exact = [c for c in candidates if not c[2]]
    return exact[0] if exact else candidates[0]


def _take_params(data):
    if not data or data[0] != 3 or len(data) < 4 or data[1] != KDF_VERSION_STANDARD:
        return None, data
    return bytes(data[:4]), bytes(data[4:])


def build_forwarding_kdf(original_subkey, config=None):
    """
    KDF parameters for a forwarding subkey derived from original_subkey.

    The replacement fingerprint is the original subkey's own fingerprint and
    the replacement parameters are the original's effective v1 block, so the
    forwarding holder derives the same key-wrapping key the sender used.
    """
    config = config or ForwardingConfig()
    original_params = original_subkey.kdf_params
    return KDFParams(
        version=KDF_VERSION_FORWARDING,
        hash=int(config.kdf_hash),
        cipher=int(config.kdf_cipher),
        flags=KDF_FLAGS_FORWARDING,
        replacement_fingerprint=bytes(original_subkey.fingerprint),
        replacement_kdf_params=original_params.context_params(),
    )
