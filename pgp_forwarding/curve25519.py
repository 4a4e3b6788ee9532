"""
Curve25519 arithmetic for ECDH key forwarding.

Montgomery curve  v^2 = u^3 + 486662*u^2 + u  over GF(2^255 - 19), x-only.

Points travel in the OpenPGP native encoding used by ECDH Curve25519 keys:
the prefix octet 0x40 followed by the u-coordinate, 32 bytes little-endian.

Scalar multiplication is the RFC 7748 Montgomery ladder without clamping, so
any scalar (including a proxy factor) can be applied to any point of the
prime-order subgroup.  The ladder always runs 255 iterations and swaps with
arithmetic masks, and inversion uses Fermat's little theorem with a fixed
exponent.  This keeps the ladder free of secret-dependent branches, but it is
not constant-time: Python integer arithmetic takes time that varies with the
operands, and clamped_representative branches on the scalar it is given.
Key generation runs on the key owner's machine; the relay only ever applies
its own proxy factor.
"""

from dataclasses import dataclass

from .errors import InvalidScalarError, PointDecodeError

# ---------------------------------------------------------------------------
# Field and group constants
# ---------------------------------------------------------------------------

P = 2**255 - 19  # field prime
A24 = 121665  # (486662 - 2) / 4
ORDER = 2**252 + 27742317777372353535851937790883648493  # prime subgroup order
BASE_U = 9

POINT_PREFIX = 0x40
POINT_SIZE = 33  # prefix + 32-byte u-coordinate
_LADDER_BITS = 255

# u-coordinates of points of order 1, 2, 4 and 8 (canonical forms only)
_SMALL_ORDER_U = frozenset(
    [
        0,
        1,
        P - 1,
        int.from_bytes(
            bytes.fromhex("e0eb7a7c3b41b8ae1656e3faf19fc46ada098deb9c32b1fd866205165f49b800"),
            "little",
        ),
        int.from_bytes(
            bytes.fromhex("5f9c95bca3508c24b1d0b1559c83ef5b04445cc4581c8e86d8224eddd09f1157"),
            "little",
        ),
    ]
)

_INV8 = pow(8, ORDER - 2, ORDER)


@dataclass(frozen=True)
class Point:
    """A Curve25519 point given by its u-coordinate"""

    u: int

    def __bytes__(self):
        return encode_point(self)


def base_point():
    """The standard base point G (u = 9)"""
    return Point(BASE_U)


# ---------------------------------------------------------------------------
# Encoding / decoding
# ---------------------------------------------------------------------------

def encode_point(point):
    """Encode a point as 0x40 || u (little-endian)"""
    return bytes([POINT_PREFIX]) + point.u.to_bytes(32, "little")


def decode_point(data):
    """
    Decode and validate an OpenPGP native Curve25519 point.

    Rejects wrong length or prefix, non-canonical coordinates, points of
    small order and points on the quadratic twist.
    """
    data = bytes(data)
    if len(data) != POINT_SIZE:
        raise PointDecodeError(f"Point must be {POINT_SIZE} bytes, got {len(data)}")
    if data[0] != POINT_PREFIX:
        raise PointDecodeError(f"Unexpected point prefix 0x{data[0]:02x}")

    u = int.from_bytes(data[1:], "little")
    if u >= P:
        raise PointDecodeError("Non-canonical u-coordinate")
    if u in _SMALL_ORDER_U:
        raise PointDecodeError("Point of small order")

    # u^3 + A*u^2 + u must be a square for the point to lie on the curve
    rhs = (u * u * u + 486662 * u * u + u) % P
    if pow(rhs, (P - 1) // 2, P) != 1:
        raise PointDecodeError("Point is not on Curve25519")
    return Point(u)


# ---------------------------------------------------------------------------
# Scalar operations
# ---------------------------------------------------------------------------

def _cswap(swap, a, b):
    """Swap a and b when swap == 1, without branching"""
    mask = -swap
    dummy = mask & (a ^ b)
    return a ^ dummy, b ^ dummy


def scalar_multiply(point, scalar):
    """Compute scalar * point with the Montgomery ladder (RFC 7748 section 5)"""
    if not 0 < scalar < 2**_LADDER_BITS:
        raise InvalidScalarError("Scalar out of range")

    x_1 = point.u
    x_2, z_2 = 1, 0
    x_3, z_3 = x_1, 1
    swap = 0

    for t in reversed(range(_LADDER_BITS)):
        k_t = (scalar >> t) & 1
        swap ^= k_t
        x_2, x_3 = _cswap(swap, x_2, x_3)
        z_2, z_3 = _cswap(swap, z_2, z_3)
        swap = k_t

        a = (x_2 + z_2) % P
        aa = a * a % P
        b = (x_2 - z_2) % P
        bb = b * b % P
        e = (aa - bb) % P
        c = (x_3 + z_3) % P
        d = (x_3 - z_3) % P
        da = d * a % P
        cb = c * b % P
        x_3 = (da + cb) * (da + cb) % P
        z_3 = x_1 * (da - cb) * (da - cb) % P
        x_2 = aa * bb % P
        z_2 = e * (aa + A24 * e) % P

    x_2, x_3 = _cswap(swap, x_2, x_3)
    z_2, z_3 = _cswap(swap, z_2, z_3)
    return Point(x_2 * pow(z_2, P - 2, P) % P)


def mod_inverse(scalar):
    """Inverse of scalar modulo the group order"""
    scalar %= ORDER
    if scalar == 0:
        raise InvalidScalarError("Zero has no inverse")
    return pow(scalar, ORDER - 2, ORDER)


def clamped_representative(scalar):
    """
    Return the X25519-clamped integer congruent to scalar modulo ORDER.

    X25519 engines clear the low three bits of a secret and force bit 254,
    so a derived scalar is only usable as an ordinary secret key if it has a
    representative 8*m with 2^251 <= m < 2^252.  Roughly half of all
    residues do.
    """
    scalar %= ORDER
    if scalar == 0:
        raise InvalidScalarError("Scalar reduces to zero")
    m = scalar * _INV8 % ORDER
    if not 2**251 <= m < 2**252:
        raise InvalidScalarError("Scalar has no clamped representative")
    return 8 * m


def clamp(secret):
    """Apply X25519 clamping to a 32-byte little-endian secret"""
    if len(secret) != 32:
        raise InvalidScalarError("X25519 secret must be 32 bytes")
    value = int.from_bytes(secret, "little")
    value &= ~7
    value &= (1 << 255) - 1
    value |= 1 << 254
    return value
