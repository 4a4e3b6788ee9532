"""
OpenPGP algorithm identifiers and curve OIDs.
"""

from enum import IntEnum


class PacketTag(IntEnum):
    """OpenPGP packet tags"""

    PUBLIC_KEY_ENCRYPTED_SESSION_KEY = 1
    SIGNATURE = 2
    SECRET_KEY = 5
    PUBLIC_KEY = 6
    SECRET_SUBKEY = 7
    COMPRESSED_DATA = 8
    LITERAL_DATA = 11
    USER_ID = 13
    PUBLIC_SUBKEY = 14
    SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA = 18
    MODIFICATION_DETECTION_CODE = 19


class PublicKeyAlgorithm(IntEnum):
    """OpenPGP public key algorithm identifiers"""

    ECDH = 18
    EDDSA = 22


class SymmetricAlgorithm(IntEnum):
    """OpenPGP symmetric algorithm identifiers (AES family only)"""

    AES128 = 7
    AES192 = 8
    AES256 = 9

    @property
    def key_size(self):
        """Key size in bytes"""
        return {7: 16, 8: 24, 9: 32}[self.value]

    @property
    def block_size(self):
        return 16


class HashAlgorithm(IntEnum):
    """OpenPGP hash algorithm identifiers usable by the ECDH KDF"""

    SHA256 = 8
    SHA384 = 9
    SHA512 = 10


# Curve OIDs, DER body without the tag octet (RFC 6637 section 9)
OID_CURVE25519 = bytes.fromhex("2b060104019755010501")  # 1.3.6.1.4.1.3029.1.5.1
OID_ED25519 = bytes.fromhex("2b06010401da470f01")  # 1.3.6.1.4.1.11591.15.1

SUPPORTED_KEY_VERSIONS = (4, 5)
