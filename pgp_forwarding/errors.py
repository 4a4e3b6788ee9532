"""Exception hierarchy for key forwarding and the bundled OpenPGP engine."""


class ForwardingError(Exception):
    """Base class for every error raised by this package"""


class InvalidScalarError(ForwardingError, ValueError):
    """A scalar is zero, out of range, or has no usable encoding"""


class PointDecodeError(ForwardingError, ValueError):
    """A curve point failed length, encoding or curve-membership checks"""


class NoMatchingRecipientError(ForwardingError, LookupError):
    """No encrypted session key packet addresses the expected key ID"""


class ConfigError(ForwardingError, ValueError):
    """Invalid forwarding configuration"""


class PacketError(ForwardingError, ValueError):
    """Malformed packet framing, armor or packet body"""


class UnsupportedKeyError(ForwardingError, ValueError):
    """The key cannot be used for the requested operation"""


class SessionKeyDecryptionError(ForwardingError):
    """
    No session key could be recovered with the supplied private keys.

    Raised both for a non-matching key and for a tampered packet; the two
    cases are indistinguishable.
    """

    def __init__(self, message="Session key decryption failed."):
        super().__init__(message)


class DecryptionError(ForwardingError):
    """Symmetrically encrypted data failed its integrity check"""
