"""
Forwarding material generation.

Message flow (Bob forwards to Charlie through a relay):
1. Bob generates forwarding material: a new key for Charlie whose encryption
   subkey is derived from Bob's, plus the proxy factor k
2. Bob gives Charlie the new key and gives the relay k and the two subkey IDs
3. A sender encrypts to Bob as usual
4. The relay transforms the ciphertext with k, never seeing the plaintext
5. Charlie decrypts the transformed ciphertext with his own key

Charlie's key cannot decrypt messages the relay has not transformed, and the
relay alone cannot decrypt anything.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import ForwardingConfig
from .engine import default_engine
from .errors import InvalidScalarError
from .interfaces import ForwardableKey, KeyEngine
from .kdf import build_forwarding_kdf
from .proxy import ProxyFactor, derive_forwarding_keypair, generate_proxy_factor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwardingMaterial:
    """Everything produced for one forwarding relationship"""

    proxy_factor: ProxyFactor
    final_recipient_key: ForwardableKey
    original_key_id: bytes
    forwarding_key_id: bytes

    def relay_parameters(self):
        """What the relay needs: (proxy factor, original ID, forwarding ID)"""
        return self.proxy_factor, self.original_key_id, self.forwarding_key_id


def _identities(recipient_identity):
    if isinstance(recipient_identity, (list, tuple)):
        return list(recipient_identity)
    return [recipient_identity]


def _draw_forwarding_keypair(original_subkey, attempts):
    """Draw proxy factors until one yields a usable forwarding secret"""
    for attempt in range(1, attempts + 1):
        factor = generate_proxy_factor()
        try:
            return factor, derive_forwarding_keypair(original_subkey, factor)
        except InvalidScalarError:
            logger.debug(f"Proxy factor rejected on attempt {attempt}, drawing another")
    logger.warning(f"No usable proxy factor after {attempts} attempts")
    raise InvalidScalarError(f"No usable proxy factor after {attempts} attempts")


def generate_forwarding_material(
    original_key: ForwardableKey,
    recipient_identity,
    config: Optional[ForwardingConfig] = None,
    engine: Optional[KeyEngine] = None,
):
    """
    Generate a forwarding key for recipient_identity and its proxy factor.

    Args:
        original_key: Private key whose encryption subkey is forwarded.
        recipient_identity: User ID dict ({'name', 'email', 'comment'}),
            string, or a list of them, for the forwarding key.
        config: ForwardingConfig; key_version None keeps the original's.
        engine: KeyEngine used to generate and assemble the new key.

    Returns:
        ForwardingMaterial with the proxy factor and the forwarding key.
    """
    config = (config or ForwardingConfig()).validate()
    engine = engine or default_engine()

    original_subkey = original_key.get_encryption_key()
    version = config.resolve_key_version(original_key.version)

    # New primary key and user IDs for the forwarding recipient
    forwarding_key = engine.generate_key(_identities(recipient_identity), version=version)

    factor, keypair = _draw_forwarding_keypair(original_subkey, config.max_derivation_attempts)
    kdf_params = build_forwarding_kdf(original_subkey, config)

    subkey = engine.build_encryption_subkey(
        version, keypair.secret_scalar, keypair.public_point, kdf_params
    )
    final_key = engine.replace_encryption_subkey(forwarding_key, subkey)
    logger.debug(
        f"Forwarding subkey {subkey.key_id.hex()} generated for {original_subkey.key_id.hex()}"
    )

    return ForwardingMaterial(
        proxy_factor=factor,
        final_recipient_key=final_key,
        original_key_id=bytes(original_subkey.key_id),
        forwarding_key_id=bytes(subkey.key_id),
    )


# Demonstration of key forwarding
if __name__ == "__main__":
    from .engine import decrypt_message, encrypt_message
    from .errors import SessionKeyDecryptionError
    from .transform import transform

    engine = default_engine()
    bob = engine.generate_key([{"name": "Bob", "email": "info@bob.com"}], version=4)
    print(f"Bob's encryption subkey: {bob.get_encryption_key().key_id.hex()}")

    message = "Hello Bob, hello world"
    ciphertext = encrypt_message(message, [bob.to_public()])
    print(f"\nOriginal message: {message}")

    material = generate_forwarding_material(
        bob, [{"name": "Charlie", "email": "info@charlie.com", "comment": "Forwarded from Bob"}]
    )
    charlie = material.final_recipient_key
    print(f"Charlie's encryption subkey: {material.forwarding_key_id.hex()}")

    # Relay re-targets the ciphertext
    transformed = transform(ciphertext, *material.relay_parameters())
    print("\nMessage transformed by relay")

    decrypted = decrypt_message(transformed, [charlie])
    print(f"Decrypted message by Charlie: {decrypted.data}")

    try:
        decrypt_message(ciphertext, [charlie])
    except SessionKeyDecryptionError as e:
        print(f"Charlie cannot read the untransformed message: {e}")
