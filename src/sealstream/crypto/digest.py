"""Keyed incremental digest used as the stream tag.

The default accumulator is SHA3-256 keyed by prefixing the MAC key, i.e.
``H(mac_key || header || ciphertext...)``. SHA-3 is not subject to length
extension, so the prefix construction is a sound MAC.
"""

from __future__ import annotations

from typing import Callable, Protocol

from cryptography.hazmat.primitives import hashes

from sealstream.config import TAG_LEN
from sealstream.errors import CryptoPrimitiveFailure


class DigestAccumulator(Protocol):
    def update(self, data: bytes) -> None: ...

    def finalize(self) -> bytes: ...


DigestFactory = Callable[[], DigestAccumulator]


class Sha3Accumulator:
    """SHA3-256 accumulator backed by ``cryptography``."""

    def __init__(self) -> None:
        self._hash = hashes.Hash(hashes.SHA3_256())

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def finalize(self) -> bytes:
        return self._hash.finalize()


def fit_tag(digest: bytes) -> bytes:
    """Truncate a digest to the fixed tag size."""
    if len(digest) < TAG_LEN:
        raise CryptoPrimitiveFailure(
            f"Digest of {len(digest)} bytes is too short for a {TAG_LEN}-byte tag",
        )
    return bytes(digest[:TAG_LEN])


__all__ = ["DigestAccumulator", "DigestFactory", "Sha3Accumulator", "fit_tag"]
