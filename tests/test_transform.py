"""
Tests for the relay-side ciphertext transform.
"""

import os

import pytest

from pgp_forwarding import generate_forwarding_material
from pgp_forwarding.engine import decrypt_message, encrypt_message
from pgp_forwarding.engine.message import read_message
from pgp_forwarding.engine.packets import (
    Packet,
    PublicKeyEncryptedSessionKey,
    encode_header,
    read_packets,
    write_packets,
)
from pgp_forwarding.errors import (
    NoMatchingRecipientError,
    PacketError,
    PointDecodeError,
    SessionKeyDecryptionError,
)
from pgp_forwarding.transform import (
    find_recipients,
    require_recipient,
    transform,
    transform_packets,
)

MESSAGE = "Hello Bob, hello world"


@pytest.fixture
def material(bob_key, charlie_identity):
    return generate_forwarding_material(bob_key, charlie_identity)


def test_transform_retargets_matching_packet(bob_key, material):
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    transformed = transform(ciphertext, *material.relay_parameters())

    assert find_recipients(transformed) == [material.forwarding_key_id]
    original, _ = read_message(ciphertext)
    rewritten, _ = read_message(transformed)
    before = PublicKeyEncryptedSessionKey.from_packet(original[0])
    after = PublicKeyEncryptedSessionKey.from_packet(rewritten[0])
    assert after.ephemeral_point != before.ephemeral_point
    assert after.wrapped_key == before.wrapped_key


def test_other_recipients_untouched(bob_key, alice_key, material):
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public(), alice_key.to_public()], armor=False)
    transformed = transform(ciphertext, *material.relay_parameters())

    original, _ = read_message(ciphertext)
    rewritten, _ = read_message(transformed)
    assert len(original) == len(rewritten) == 3
    assert rewritten[0].serialize() != original[0].serialize()
    assert rewritten[1].serialize() == original[1].serialize()
    assert rewritten[2].serialize() == original[2].serialize()

    assert decrypt_message(transformed, [alice_key]).data == MESSAGE
    assert decrypt_message(transformed, [material.final_recipient_key]).data == MESSAGE


def test_no_matching_packet_is_noop(alice_key, material):
    ciphertext = encrypt_message(MESSAGE, [alice_key.to_public()])
    assert transform(ciphertext, *material.relay_parameters()) == ciphertext

    binary = encrypt_message(MESSAGE, [alice_key.to_public()], armor=False)
    assert transform(binary, *material.relay_parameters()) == binary


def test_transform_twice_is_stable(bob_key, material):
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    once = transform(ciphertext, *material.relay_parameters())
    assert transform(once, *material.relay_parameters()) == once


def test_output_follows_input_encoding(bob_key, material):
    armored = encrypt_message(MESSAGE, [bob_key.to_public()])
    binary = encrypt_message(MESSAGE, [bob_key.to_public()], armor=False)

    assert isinstance(transform(armored, *material.relay_parameters()), str)
    assert isinstance(transform(binary, *material.relay_parameters()), bytes)
    assert isinstance(transform(armored, *material.relay_parameters(), armored=False), bytes)


def test_factor_as_bytes_or_int(bob_key, material):
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public()])
    factor, original_id, forwarding_id = material.relay_parameters()
    expected = transform(ciphertext, factor, original_id, forwarding_id)

    assert transform(ciphertext, factor.to_bytes(), original_id, forwarding_id) == expected
    assert transform(ciphertext, int(factor), original_id, forwarding_id) == expected


def test_malformed_point_raises(material):
    bogus = PublicKeyEncryptedSessionKey(
        key_id=material.original_key_id,
        ephemeral_point=b"\x40" + bytes(32),
        wrapped_key=os.urandom(40),
    )
    data = write_packets([bogus.to_packet()])
    with pytest.raises(PointDecodeError):
        transform(data, *material.relay_parameters())


def test_transform_packets_streams(bob_key, alice_key, material):
    ciphertext = encrypt_message(MESSAGE, [alice_key.to_public(), bob_key.to_public()])
    packets, _ = read_message(ciphertext)

    out = list(transform_packets(iter(packets), *material.relay_parameters()))
    assert out[0] is packets[0]
    assert out[1] is not packets[1]
    assert out[2] is packets[2]


def test_find_and_require_recipient(bob_key, alice_key):
    ciphertext = encrypt_message(MESSAGE, [bob_key.to_public(), alice_key.to_public()])
    bob_id = bob_key.get_encryption_key().key_id
    alice_id = alice_key.get_encryption_key().key_id

    assert find_recipients(ciphertext) == [bob_id, alice_id]
    require_recipient(ciphertext, bob_id)
    with pytest.raises(NoMatchingRecipientError):
        require_recipient(ciphertext, bytes(8))


def _chunked(packet):
    """Frame packet as a 32-byte partial body chunk plus a final chunk"""
    body = packet.body
    return (
        bytes([0xC0 | packet.tag, 0xE0 | 5])
        + body[:32]
        + encode_header(packet.tag, len(body) - 32)[1:]
        + body[32:]
    )


def test_partial_length_data_packet_passes_through(bob_key, material):
    binary = encrypt_message(MESSAGE * 4, [bob_key.to_public()], armor=False)
    pkesk, data_packet = read_packets(binary)
    chunked = _chunked(data_packet)
    ciphertext = pkesk.serialize() + chunked

    transformed = transform(ciphertext, *material.relay_parameters())
    rewritten = read_packets(transformed)
    assert rewritten[1].serialize() == chunked
    assert rewritten[1].body == data_packet.body
    assert decrypt_message(transformed, [material.final_recipient_key]).data == MESSAGE * 4


def test_malformed_packet_for_other_recipient_untouched(bob_key, alice_key, material):
    binary = encrypt_message(MESSAGE, [bob_key.to_public(), alice_key.to_public()], armor=False)
    bob_packet, alice_packet, data_packet = read_packets(binary)
    broken = Packet(tag=alice_packet.tag, body=alice_packet.body + b"\x00")
    ciphertext = write_packets([bob_packet, broken, data_packet])

    transformed = transform(ciphertext, *material.relay_parameters())
    rewritten = read_packets(transformed)
    assert rewritten[1].serialize() == broken.serialize()
    assert rewritten[2].serialize() == data_packet.serialize()
    alice_id = alice_key.get_encryption_key().key_id
    assert find_recipients(transformed) == [material.forwarding_key_id, alice_id]
    assert decrypt_message(transformed, [material.final_recipient_key]).data == MESSAGE

    # Bob's own packet still decrypts past the broken one
    assert decrypt_message(ciphertext, [bob_key]).data == MESSAGE
    with pytest.raises(SessionKeyDecryptionError):
        decrypt_message(ciphertext, [alice_key])


def test_malformed_matching_packet_raises(bob_key, material):
    binary = encrypt_message(MESSAGE, [bob_key.to_public()], armor=False)
    bob_packet, data_packet = read_packets(binary)
    broken = Packet(tag=bob_packet.tag, body=bob_packet.body + b"\x00")

    with pytest.raises(PacketError):
        transform(write_packets([broken, data_packet]), *material.relay_parameters())
