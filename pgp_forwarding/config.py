"""
Configuration for forwarding material generation.

Module constants hold the scheme's fixed defaults; ForwardingConfig carries
the per-call choices (notably the key packet version) explicitly instead of
through any process-wide toggle.
"""

from dataclasses import dataclass
from typing import Optional

from .constants import SUPPORTED_KEY_VERSIONS, HashAlgorithm, SymmetricAlgorithm
from .errors import ConfigError

# ============================================================================
# KDF PARAMETERS
# ============================================================================

# Version 1 is the RFC 6637 layout; version 2 adds flags and replacements
KDF_VERSION_STANDARD = 1
KDF_VERSION_FORWARDING = 2

# Flag bits of a version 2 KDF parameter block
KDF_FLAG_REPLACEMENT_FINGERPRINT = 0x01
KDF_FLAG_REPLACEMENT_PARAMS = 0x02
KDF_FLAGS_FORWARDING = KDF_FLAG_REPLACEMENT_FINGERPRINT | KDF_FLAG_REPLACEMENT_PARAMS

# Curve25519 ECDH defaults (SHA256 + AES128 key wrap)
DEFAULT_KDF_HASH = HashAlgorithm.SHA256
DEFAULT_KDF_CIPHER = SymmetricAlgorithm.AES128

# ============================================================================
# KEY AND MESSAGE DEFAULTS
# ============================================================================

DEFAULT_KEY_VERSION = 4
DEFAULT_MESSAGE_CIPHER = SymmetricAlgorithm.AES256

# About half of all proxy factors give a derived scalar without an X25519
# clamped form, so a few redraws are normal.
MAX_DERIVATION_ATTEMPTS = 128


@dataclass(frozen=True)
class ForwardingConfig:
    """Options for generate_forwarding_material"""

    # None follows the version of the key being forwarded
    key_version: Optional[int] = None
    kdf_hash: HashAlgorithm = DEFAULT_KDF_HASH
    kdf_cipher: SymmetricAlgorithm = DEFAULT_KDF_CIPHER
    max_derivation_attempts: int = MAX_DERIVATION_ATTEMPTS

    def validate(self):
        """Raise ConfigError if any option is out of range"""
        if self.key_version is not None and self.key_version not in SUPPORTED_KEY_VERSIONS:
            raise ConfigError(f"Unsupported key version {self.key_version}")
        try:
            HashAlgorithm(self.kdf_hash)
            SymmetricAlgorithm(self.kdf_cipher)
        except ValueError as e:
            raise ConfigError(f"Unsupported algorithm: {e}") from e
        if self.max_derivation_attempts < 1:
            raise ConfigError("max_derivation_attempts must be at least 1")
        return self

    def resolve_key_version(self, original_version):
        """Key version for the forwarding key"""
        if self.key_version is None:
            return original_version
        return self.key_version
