"""
Capability interfaces the forwarding code depends on.

Forwarding only needs a handful of accessors from an OpenPGP engine.  Any
object providing them can stand in for the bundled engine.
"""

from typing import Iterable, Optional, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class EncryptionSubkey(Protocol):
    """An ECDH Curve25519 subkey"""

    @property
    def key_id(self) -> bytes:
        """8-byte key ID"""
        ...

    @property
    def fingerprint(self) -> bytes:
        """20-byte (v4) or 32-byte (v5) fingerprint"""
        ...

    @property
    def version(self) -> int:
        ...

    @property
    def oid(self) -> bytes:
        ...

    @property
    def public_point(self) -> bytes:
        """Encoded public point, 0x40 || u"""
        ...

    @property
    def secret_scalar(self) -> Optional[int]:
        """Private scalar, or None for a public-only subkey"""
        ...

    @property
    def kdf_params(self):
        """The subkey's KDFParams"""
        ...


@runtime_checkable
class ForwardableKey(Protocol):
    """A transferable key with one or more encryption subkeys"""

    @property
    def key_id(self) -> bytes:
        ...

    @property
    def fingerprint(self) -> bytes:
        ...

    @property
    def version(self) -> int:
        ...

    @property
    def subkeys(self) -> Sequence[EncryptionSubkey]:
        ...

    def get_encryption_key(self) -> EncryptionSubkey:
        """
        Select the subkey used for encryption.

        Raises:
            UnsupportedKeyError: If the key has no usable encryption subkey.
        """
        ...


@runtime_checkable
class KeyEngine(Protocol):
    """Key generation and construction"""

    def generate_key(self, user_ids: Iterable, version: int) -> ForwardableKey:
        """Generate a new key with a signing primary and an encryption subkey"""
        ...

    def build_encryption_subkey(
        self, version: int, secret_scalar: int, public_point: bytes, kdf_params
    ) -> EncryptionSubkey:
        """Materialize a subkey from explicit private/public material"""
        ...

    def replace_encryption_subkey(
        self, key: ForwardableKey, subkey: EncryptionSubkey
    ) -> ForwardableKey:
        """Return a copy of key whose encryption subkey is subkey"""
        ...


@runtime_checkable
class SessionKeyPacket(Protocol):
    """A parsed public-key encrypted session key packet"""

    @property
    def key_id(self) -> bytes:
        ...

    @property
    def ephemeral_point(self) -> bytes:
        ...

    def with_recipient(self, key_id: bytes, ephemeral_point: bytes):
        """Return a new packet addressed to key_id with a new ephemeral point"""
        ...

    def to_packet(self):
        """Framed packet for reserialization"""
        ...


@runtime_checkable
class PacketCodec(Protocol):
    """Parsing and serialization of message packet sequences"""

    def read_packets(self, ciphertext) -> Tuple[tuple, bool]:
        """
        Parse a message.

        Returns:
            (packets, armored) where packets is an ordered tuple and armored
            tells whether the input was ASCII armored.
        """
        ...

    def write_packets(self, packets: Iterable, armored: bool):
        ...

    def parse_pkesk(self, packet) -> Optional[SessionKeyPacket]:
        """Parse packet as an ECDH session key packet, or None for other packets"""
        ...

    def recipient_key_id(self, packet) -> Optional[bytes]:
        """
        Key ID an ECDH session key packet is addressed to, or None.

        Reads only the fixed header fields, so a packet with a malformed
        body still reports its recipient.
        """
        ...
