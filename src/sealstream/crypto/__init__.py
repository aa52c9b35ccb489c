"""Cipher, digest and key-buffer helpers consumed by the stream transforms."""
from __future__ import annotations

from sealstream.crypto.ctr import AesCtrCipher, CipherFactory, CounterModeCipher, IvCounter, block_count
from sealstream.crypto.digest import DigestAccumulator, DigestFactory, Sha3Accumulator, fit_tag

__all__ = [
    "AesCtrCipher",
    "CipherFactory",
    "CounterModeCipher",
    "DigestAccumulator",
    "DigestFactory",
    "IvCounter",
    "Sha3Accumulator",
    "block_count",
    "fit_tag",
]
