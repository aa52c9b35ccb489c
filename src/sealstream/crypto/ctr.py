"""AES-CTR helpers: IV layout, 64-bit block counter and the default cipher.

The IV is ``nonce(8) || counter(8)`` with the counter stored big-endian. The
counter advances by whole 16-byte blocks per processed chunk, so a chunk of
``L`` bytes consumes ``ceil(L / 16)`` counter values even when ``L`` is not
block aligned.
"""

from __future__ import annotations

from typing import Callable, Protocol

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from sealstream.config import BLOCK_LEN, COUNTER_LEN, IV_LEN, KEY_LEN, NONCE_LEN
from sealstream.errors import InvalidParameters, StreamTooLarge

MAX_COUNTER = (1 << (COUNTER_LEN * 8)) - 1


def block_count(length: int) -> int:
    """Number of cipher blocks needed for ``length`` bytes."""
    return -(-length // BLOCK_LEN)


def split_iv(iv: bytes) -> tuple[bytes, int]:
    if len(iv) != IV_LEN:
        raise InvalidParameters(f"IV must be {IV_LEN} bytes long, got {len(iv)}")
    return bytes(iv[:NONCE_LEN]), int.from_bytes(iv[NONCE_LEN:], "big")


def join_iv(nonce: bytes, counter: int) -> bytes:
    if len(nonce) != NONCE_LEN:
        raise InvalidParameters(f"Nonce must be {NONCE_LEN} bytes long, got {len(nonce)}")
    if not (0 <= counter <= MAX_COUNTER):
        raise StreamTooLarge("Block counter does not fit in 64 bits")
    return nonce + counter.to_bytes(COUNTER_LEN, "big")


class IvCounter:
    """Fixed nonce plus an unsigned 64-bit block counter.

    ``counter`` is the next block to use. A chunk may end on block
    ``MAX_COUNTER``, after which the counter sits at ``MAX_COUNTER + 1`` and is
    exhausted: any further non-empty chunk raises :class:`StreamTooLarge`.
    """

    def __init__(self, iv: bytes) -> None:
        self.nonce, self.counter = split_iv(iv)

    @property
    def exhausted(self) -> bool:
        return self.counter > MAX_COUNTER

    def current(self) -> bytes:
        if self.exhausted:
            raise StreamTooLarge("Block counter exhausted")
        return join_iv(self.nonce, self.counter)

    def iv_at(self, counter: int, length: int) -> bytes:
        """IV for ``length`` bytes starting at block ``counter``."""
        if counter + block_count(length) > MAX_COUNTER + 1:
            raise StreamTooLarge(f"{length} bytes at block {counter} overflow the 64-bit counter")
        return join_iv(self.nonce, counter)

    def advance(self, length: int, *, strict: bool = True) -> int:
        """Move past the blocks used by ``length`` bytes and return the new counter.

        With ``strict=False`` the counter may run past the 64-bit range; the
        check is then left to :meth:`iv_at` for the bytes actually processed.
        """
        blocks = block_count(length)
        if strict and self.counter + blocks > MAX_COUNTER + 1:
            raise StreamTooLarge(
                f"Advancing counter {self.counter} by {blocks} blocks overflows 64 bits",
            )
        self.counter += blocks
        return self.counter


class CounterModeCipher(Protocol):
    def encrypt(self, iv: bytes, data: bytes) -> bytes: ...

    def decrypt(self, iv: bytes, data: bytes) -> bytes: ...


CipherFactory = Callable[[bytes], CounterModeCipher]


class AesCtrCipher:
    """AES-256 in counter mode, keyed once per stream."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LEN:
            raise InvalidParameters(f"AES key must be {KEY_LEN} bytes long, got {len(key)}")
        self._algorithm = algorithms.AES(bytes(key))

    def _apply(self, iv: bytes, data: bytes) -> bytes:
        context = Cipher(self._algorithm, modes.CTR(iv)).encryptor()
        return context.update(data) + context.finalize()

    def encrypt(self, iv: bytes, data: bytes) -> bytes:
        return self._apply(iv, data)

    def decrypt(self, iv: bytes, data: bytes) -> bytes:
        return self._apply(iv, data)


__all__ = [
    "AesCtrCipher",
    "CipherFactory",
    "CounterModeCipher",
    "IvCounter",
    "MAX_COUNTER",
    "block_count",
    "join_iv",
    "split_iv",
]
