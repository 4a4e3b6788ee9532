"""ASCII armor (RFC 4880 section 6) for PGP messages."""

import base64
import binascii

from ..errors import PacketError

BEGIN_MESSAGE = "-----BEGIN PGP MESSAGE-----"
END_MESSAGE = "-----END PGP MESSAGE-----"

_LINE_LENGTH = 64
_CRC24_INIT = 0xB704CE
_CRC24_POLY = 0x1864CFB


def crc24(data):
    crc = _CRC24_INIT
    for octet in data:
        crc ^= octet << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= _CRC24_POLY
    return crc & 0xFFFFFF


def armor(data):
    """Armor binary message data"""
    encoded = base64.b64encode(data).decode("ascii")
    lines = [BEGIN_MESSAGE, ""]
    lines += [encoded[i:i + _LINE_LENGTH] for i in range(0, len(encoded), _LINE_LENGTH)]
    checksum = base64.b64encode(crc24(data).to_bytes(3, "big")).decode("ascii")
    lines += ["=" + checksum, END_MESSAGE, ""]
    return "\n".join(lines)


def is_armored(data):
    if isinstance(data, (bytes, bytearray)):
        return data.lstrip().startswith(BEGIN_MESSAGE.encode("ascii"))
    return data.lstrip().startswith(BEGIN_MESSAGE)


def dearmor(text):
    """Decode an armored message, verifying its checksum when present"""
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("ascii")
    lines = [line.strip() for line in text.strip().splitlines()]
    try:
        start = lines.index(BEGIN_MESSAGE)
        end = lines.index(END_MESSAGE, start)
    except ValueError:
        raise PacketError("Missing PGP MESSAGE armor boundaries") from None

    # Armor headers run until the first blank line
    body = lines[start + 1:end]
    if "" in body:
        body = body[body.index("") + 1:]

    checksum = None
    if body and body[-1].startswith("="):
        checksum = body.pop()[1:]

    try:
        data = base64.b64decode("".join(body), validate=True)
    except binascii.Error as e:
        raise PacketError(f"Invalid armor body: {e}") from e

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
        except binascii.Error as e:
            raise PacketError(f"Invalid armor checksum: {e}") from e
        if crc24(data) != expected:
            raise PacketError("Armor checksum mismatch")
    return data
