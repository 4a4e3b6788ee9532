"""
Relay-side ciphertext transform.

The relay knows the proxy factor k and two key IDs, nothing else.  For each
session key packet addressed to the original subkey it replaces the
ephemeral point P with k*P and the recipient key ID with the forwarding
subkey's.  The wrapped session key is left untouched, so its integrity
check still binds it to the original KDF context.

Only packets addressed to the original subkey are parsed.  Every other
packet, malformed or not, is passed on as the exact bytes it arrived in.
Each rewritten packet is a new object: a packet leaves the transform either
fully rewritten or exactly as it came in.
"""

import logging
from typing import Optional

from . import curve25519
from .engine import default_engine
from .errors import NoMatchingRecipientError
from .interfaces import PacketCodec
from .proxy import ProxyFactor

logger = logging.getLogger(__name__)


def _as_factor(factor):
    if isinstance(factor, ProxyFactor):
        return factor
    if isinstance(factor, (bytes, bytearray)):
        return ProxyFactor.from_bytes(bytes(factor))
    return ProxyFactor(factor)


def transform_packets(packets, factor, original_id, forwarding_id, codec: Optional[PacketCodec] = None):
    """
    Yield packets with those addressed to original_id re-targeted.

    Works on any ordered iterable, so a streaming caller can feed packets
    as they are parsed.  Raises PacketError or PointDecodeError when a
    packet addressed to original_id is malformed.
    """
    codec = codec or default_engine()
    factor = _as_factor(factor)
    original_id = bytes(original_id)
    forwarding_id = bytes(forwarding_id)

    for packet in packets:
        if codec.recipient_key_id(packet) != original_id:
            yield packet
            continue

        pkesk = codec.parse_pkesk(packet)
        point = curve25519.decode_point(pkesk.ephemeral_point)
        transformed = curve25519.scalar_multiply(point, factor.value)
        rewritten = pkesk.with_recipient(forwarding_id, curve25519.encode_point(transformed))
        logger.debug(f"Re-targeted session key packet {original_id.hex()} -> {forwarding_id.hex()}")
        yield rewritten.to_packet()


def transform(ciphertext, factor, original_id, forwarding_id, codec: Optional[PacketCodec] = None, armored=None):
    """
    Transform a whole message for the forwarding recipient.

    The result uses the input's encoding unless armored is given.  A message
    without a packet for original_id comes back unchanged; use
    require_recipient beforehand to treat that as an error.
    """
    codec = codec or default_engine()
    packets, was_armored = codec.read_packets(ciphertext)

    # Fully materialized before serializing, so a failure emits nothing
    rewritten = tuple(transform_packets(packets, factor, original_id, forwarding_id, codec))
    if all(a is b for a, b in zip(packets, rewritten)):
        logger.debug(f"No session key packet for {bytes(original_id).hex()}, nothing to transform")

    return codec.write_packets(rewritten, was_armored if armored is None else armored)


def find_recipients(ciphertext, codec: Optional[PacketCodec] = None):
    """Key IDs of the ECDH session key packets in ciphertext, in order"""
    codec = codec or default_engine()
    packets, _ = codec.read_packets(ciphertext)
    recipients = []
    for packet in packets:
        key_id = codec.recipient_key_id(packet)
        if key_id is not None:
            recipients.append(key_id)
    return recipients


def require_recipient(ciphertext, key_id, codec: Optional[PacketCodec] = None):
    """Raise NoMatchingRecipientError unless ciphertext addresses key_id"""
    if bytes(key_id) not in find_recipients(ciphertext, codec):
        raise NoMatchingRecipientError(f"No session key packet for key {bytes(key_id).hex()}")
