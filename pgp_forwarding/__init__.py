"""
OpenPGP key forwarding via Curve25519 proxy re-encryption.

Key Components:
1. curve25519 - point decoding/encoding, Montgomery ladder, scalar inversion
2. proxy      - proxy factor generation and forwarding key derivation
3. kdf        - ECDH KDF parameters and the replacement-fingerprint override
4. transform  - relay-side rewriting of encrypted session key packets
5. forwarding - one-call generation of forwarding material
6. engine     - minimal OpenPGP engine for Curve25519 keys and messages
"""

from .config import ForwardingConfig
from .errors import (
    ConfigError,
    DecryptionError,
    ForwardingError,
    InvalidScalarError,
    NoMatchingRecipientError,
    PacketError,
    PointDecodeError,
    SessionKeyDecryptionError,
    UnsupportedKeyError,
)
from .forwarding import ForwardingMaterial, generate_forwarding_material
from .kdf import KDFParams, build_forwarding_kdf
from .proxy import (
    ForwardingKeyPair,
    ProxyFactor,
    derive_forwarding_keypair,
    generate_proxy_factor,
    verify_forwarding_keypair,
)
from .transform import find_recipients, require_recipient, transform, transform_packets

VERSION = "0.1.0"

__all__ = [
    "ConfigError",
    "DecryptionError",
    "ForwardingConfig",
    "ForwardingError",
    "ForwardingKeyPair",
    "ForwardingMaterial",
    "InvalidScalarError",
    "KDFParams",
    "NoMatchingRecipientError",
    "PacketError",
    "PointDecodeError",
    "ProxyFactor",
    "SessionKeyDecryptionError",
    "UnsupportedKeyError",
    "VERSION",
    "build_forwarding_kdf",
    "derive_forwarding_keypair",
    "find_recipients",
    "generate_forwarding_material",
    "generate_proxy_factor",
    "require_recipient",
    "transform",
    "transform_packets",
    "verify_forwarding_keypair",
]
