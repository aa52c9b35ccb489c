"""Custom exceptions for sealstream."""


class SealStreamError(Exception):
    """Base exception for sealstream."""


class InvalidParameters(SealStreamError):
    """Key material, IV or stream parameters have the wrong shape."""


class CryptoPrimitiveFailure(SealStreamError):
    """The underlying cipher or digest call failed."""


class AuthenticationFailure(SealStreamError):
    """Recomputed tag does not match the tag found in the stream."""


class MalformedStream(AuthenticationFailure):
    """Ciphertext stream is too short to carry a tag."""


class StreamTooLarge(SealStreamError):
    """Stream would overflow the 64-bit block counter."""


class StreamStateError(SealStreamError):
    """Transform was driven out of order or reused after it finished."""
