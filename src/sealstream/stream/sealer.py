"""Sealing transforms: AES-CTR encryption with a trailing keyed-digest tag.

Encrypted stream layout::

    header || ciphertext chunks... || tag (32 bytes)

The tag is ``Digest(mac_key || header || ciphertext)``. Each transform is a
single-use state machine (``INIT -> PROCESSING -> FINALIZED``, or ``FAILED``)
driven either step by step through :meth:`start`, :meth:`transform` and
:meth:`flush`, or lazily through :meth:`run`.

Decryption emits plaintext before the tag at the end of the stream has been
checked. Everything yielded by :class:`DecryptSealer` is provisional until the
stream completes; on :class:`~sealstream.errors.AuthenticationFailure` the
consumer must discard all of it.
"""
from __future__ import annotations

import enum
import hmac
import logging
from collections import deque
from typing import Any, Callable, Iterable, Iterator, TypeVar

from sealstream.config import TAG_LEN, validate_key_material
from sealstream.crypto.ctr import AesCtrCipher, CipherFactory, CounterModeCipher, IvCounter
from sealstream.crypto.digest import DigestAccumulator, DigestFactory, Sha3Accumulator, fit_tag
from sealstream.crypto.memory import secure_zeroize
from sealstream.errors import (
    AuthenticationFailure,
    CryptoPrimitiveFailure,
    MalformedStream,
    SealStreamError,
    StreamStateError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SealerState(enum.Enum):
    INIT = "init"
    PROCESSING = "processing"
    FINALIZED = "finalized"
    FAILED = "failed"


class _SealerBase:
    """Key setup, digest priming and state bookkeeping shared by both directions."""

    def __init__(
        self,
        *,
        mac_key: bytes,
        aes_key: bytes,
        iv: bytes,
        header: bytes = b"",
        cipher_factory: CipherFactory = AesCtrCipher,
        digest_factory: DigestFactory = Sha3Accumulator,
    ) -> None:
        validate_key_material(mac_key, aes_key, iv)
        self.header = bytes(header)
        self.state = SealerState.INIT
        self._mac_key: bytearray | None = bytearray(mac_key)
        self._aes_key: bytearray | None = bytearray(aes_key)
        self._iv = IvCounter(bytes(iv))
        self._cipher_factory = cipher_factory
        self._digest_factory = digest_factory
        self._cipher: CounterModeCipher | None = None
        self._digest: DigestAccumulator | None = None

    @property
    def counter(self) -> int:
        return self._iv.counter

    @property
    def iv(self) -> bytes:
        return self._iv.current()

    def _primitive(self, call: Callable[..., T], *args: object) -> T:
        try:
            return call(*args)
        except SealStreamError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise CryptoPrimitiveFailure(f"{type(exc).__name__}: {exc}") from exc

    def _require(self, *states: SealerState) -> None:
        if self.state not in states:
            raise StreamStateError(f"Transform is {self.state.value}")

    def _step(self, states: tuple[SealerState, ...], action: Callable[[], list[bytes]]) -> list[bytes]:
        self._require(*states)
        try:
            return action()
        except Exception:
            self.state = SealerState.FAILED
            self.close()
            raise

    def _start(self) -> list[bytes]:
        if self._mac_key is None or self._aes_key is None:
            raise StreamStateError("Key material was already released")
        self._cipher = self._primitive(self._cipher_factory, bytes(self._aes_key))
        self._digest = self._primitive(self._digest_factory)
        self._primitive(self._digest.update, bytes(self._mac_key))
        self._primitive(self._digest.update, self.header)
        secure_zeroize(self._mac_key)
        secure_zeroize(self._aes_key)
        self._mac_key = None
        self._aes_key = None
        self.state = SealerState.PROCESSING
        return []

    def _final_tag(self) -> bytes:
        return fit_tag(self._primitive(self._digest.finalize))

    def start(self) -> list[bytes]:
        return self._step((SealerState.INIT,), self._start)

    def transform(self, chunk: bytes) -> list[bytes]:
        return self._step((SealerState.PROCESSING,), lambda: self._transform(bytes(chunk)))

    def flush(self) -> list[bytes]:
        def _finish() -> list[bytes]:
            out = self._flush()
            self.state = SealerState.FINALIZED
            self.close()
            return out

        return self._step((SealerState.PROCESSING,), _finish)

    def _transform(self, chunk: bytes) -> list[bytes]:
        raise NotImplementedError

    def _flush(self) -> list[bytes]:
        raise NotImplementedError

    def close(self) -> None:
        """Drop key copies and buffered data; the instance cannot be reused."""
        secure_zeroize(self._mac_key)
        secure_zeroize(self._aes_key)
        self._mac_key = None
        self._aes_key = None
        self._cipher = None
        self._digest = None
        if self.state in (SealerState.INIT, SealerState.PROCESSING):
            self.state = SealerState.FAILED

    def run(self, chunks: Iterable[bytes]) -> Iterator[bytes]:
        """Drive the transform over ``chunks``, yielding non-empty output segments.

        Closing the returned generator early stops all further cipher and
        digest calls and releases the owned buffers.
        """
        try:
            for segment in self.start():
                if segment:
                    yield segment
            for chunk in chunks:
                for segment in self.transform(chunk):
                    if segment:
                        yield segment
            for segment in self.flush():
                if segment:
                    yield segment
        finally:
            if self.state is not SealerState.FINALIZED:
                self.close()


class EncryptSealer(_SealerBase):
    """Encrypt-then-MAC: emits the header, ciphertext chunks, then the tag."""

    def _start(self) -> list[bytes]:
        super()._start()
        return [self.header]

    def _transform(self, chunk: bytes) -> list[bytes]:
        if not chunk:
            return []
        iv = self._iv.current()
        self._iv.advance(len(chunk))
        ciphertext = self._primitive(self._cipher.encrypt, iv, chunk)
        self._primitive(self._digest.update, ciphertext)
        return [ciphertext]

    def _flush(self) -> list[bytes]:
        tag = self._final_tag()
        logger.debug("Produced tag %s (counter=%d)", tag.hex(), self._iv.counter)
        return [tag]


class DecryptSealer(_SealerBase):
    """MAC-then-decrypt with a lookahead that keeps the trailing tag out of the digest.

    Every incoming chunk is held back together with the counter block it
    starts at. A held chunk is released (absorbed into the digest, decrypted and
    emitted) once the bytes held behind it add up to at least ``TAG_LEN``,
    because only then can none of its bytes belong to the tag. For chunks of
    ``TAG_LEN`` bytes or more this holds back exactly one chunk. At the end of
    the stream the last ``TAG_LEN`` held bytes are the tag; when they span more
    than one chunk (e.g. ``tail(previous) || final``) ``tag_split`` is set.
    The ciphertext left in front of the tag is only decrypted after the tag
    matched.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._pending: deque[tuple[bytes, int]] = deque()
        self._pending_len = 0
        self.tag: bytes | None = None
        self.tag_split = False

    def _open(self, ciphertext: bytes, start: int) -> bytes:
        iv = self._iv.iv_at(start, len(ciphertext))
        self._primitive(self._digest.update, ciphertext)
        return self._primitive(self._cipher.decrypt, iv, ciphertext)

    def _transform(self, chunk: bytes) -> list[bytes]:
        if not chunk:
            return []
        # Tag bytes never reach the cipher, so the range check waits for _open.
        start = self._iv.counter
        self._iv.advance(len(chunk), strict=False)
        self._pending.append((chunk, start))
        self._pending_len += len(chunk)

        out: list[bytes] = []
        while self._pending_len - len(self._pending[0][0]) >= TAG_LEN:
            ciphertext, start = self._pending.popleft()
            self._pending_len -= len(ciphertext)
            out.append(self._open(ciphertext, start))
        return out

    def _take_tag(self) -> bytes:
        if self._pending_len < TAG_LEN:
            raise MalformedStream(
                f"Ciphertext stream holds {self._pending_len} bytes, shorter than the {TAG_LEN}-byte tag",
            )
        needed = TAG_LEN
        parts: list[bytes] = []
        while needed:
            ciphertext, start = self._pending.pop()
            if len(ciphertext) > needed:
                parts.append(ciphertext[-needed:])
                self._pending.append((ciphertext[:-needed], start))
                needed = 0
            else:
                parts.append(ciphertext)
                needed -= len(ciphertext)
        self.tag = b"".join(reversed(parts))
        self.tag_split = len(parts) > 1
        self._pending_len -= TAG_LEN
        if self.tag_split:
            logger.debug("Tag split across %d chunks", len(parts))
        return self.tag

    def _flush(self) -> list[bytes]:
        tag = self._take_tag()
        remainder = list(self._pending)
        self._pending.clear()
        self._pending_len = 0
        for ciphertext, _start in remainder:
            self._primitive(self._digest.update, ciphertext)

        expected = self._final_tag()
        if not hmac.compare_digest(expected, tag):
            logger.debug("Tag mismatch: found %s, computed %s", tag.hex(), expected.hex())
            raise AuthenticationFailure("Tags do not match")
        logger.debug("Verified tag %s", expected.hex())
        return [
            self._primitive(self._cipher.decrypt, self._iv.iv_at(start, len(ciphertext)), ciphertext)
            for ciphertext, start in remainder
        ]

    def close(self) -> None:
        self._pending.clear()
        self._pending_len = 0
        super().close()


def create_sealer(
    *,
    mac_key: bytes,
    aes_key: bytes,
    iv: bytes,
    header: bytes = b"",
    decrypt: bool = False,
    cipher_factory: CipherFactory = AesCtrCipher,
    digest_factory: DigestFactory = Sha3Accumulator,
) -> EncryptSealer | DecryptSealer:
    """Build an encrypting or decrypting transform; key sizes are checked here."""
    cls = DecryptSealer if decrypt else EncryptSealer
    return cls(
        mac_key=mac_key,
        aes_key=aes_key,
        iv=iv,
        header=header,
        cipher_factory=cipher_factory,
        digest_factory=digest_factory,
    )


__all__ = ["DecryptSealer", "EncryptSealer", "SealerState", "create_sealer"]
