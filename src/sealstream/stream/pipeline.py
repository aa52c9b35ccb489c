"""Chunker + sealer pipelines over iterables of byte fragments."""
from __future__ import annotations

import logging
from typing import IO, Iterable, Iterator

from sealstream.config import DEFAULT_CHUNK_SIZE
from sealstream.crypto.ctr import AesCtrCipher, CipherFactory
from sealstream.crypto.digest import DigestFactory, Sha3Accumulator
from sealstream.keys import SealKeys
from sealstream.stream.chunker import BytesLike, rebuffer
from sealstream.stream.sealer import DecryptSealer, EncryptSealer

logger = logging.getLogger(__name__)


def read_fragments(fileobj: IO[bytes], size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield ``size``-byte reads from a binary file until EOF."""
    while True:
        fragment = fileobj.read(size)
        if not fragment:
            break
        yield fragment


def seal_stream(
    fragments: Iterable[BytesLike],
    keys: SealKeys,
    header: bytes = b"",
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    offset: int = 0,
    cipher_factory: CipherFactory = AesCtrCipher,
    digest_factory: DigestFactory = Sha3Accumulator,
) -> Iterator[bytes]:
    """Encrypt ``fragments`` into ``header || ciphertext || tag`` segments.

    ``offset`` leading bytes of the input are dropped before encryption.
    Parameters are validated when this function is called, not when the
    returned iterator is first advanced.
    """
    sealer = EncryptSealer(
        mac_key=keys.mac_key,
        aes_key=keys.aes_key,
        iv=keys.iv,
        header=header,
        cipher_factory=cipher_factory,
        digest_factory=digest_factory,
    )
    chunks = rebuffer(fragments, offset=offset, chunk_size=chunk_size)
    logger.debug("Sealing stream: chunk_size=%d offset=%d header=%d bytes", chunk_size, offset, len(header))
    return sealer.run(chunks)


def unseal_stream(
    fragments: Iterable[BytesLike],
    keys: SealKeys,
    header: bytes = b"",
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    header_included: bool = True,
    cipher_factory: CipherFactory = AesCtrCipher,
    digest_factory: DigestFactory = Sha3Accumulator,
) -> Iterator[bytes]:
    """Decrypt a sealed stream, yielding plaintext segments.

    With ``header_included`` the incoming stream starts with the header bytes,
    which are skipped; the ``header`` argument is what gets authenticated.
    ``chunk_size`` must match the one used for sealing unless both are
    multiples of 16.

    Yielded plaintext is provisional: the tag is checked when the input is
    exhausted, and :class:`~sealstream.errors.AuthenticationFailure` is raised
    from the iterator after earlier segments were already handed out.
    """
    sealer = DecryptSealer(
        mac_key=keys.mac_key,
        aes_key=keys.aes_key,
        iv=keys.iv,
        header=header,
        cipher_factory=cipher_factory,
        digest_factory=digest_factory,
    )
    offset = len(header) if header_included else 0
    chunks = rebuffer(fragments, offset=offset, chunk_size=chunk_size)
    logger.debug("Unsealing stream: chunk_size=%d skip=%d", chunk_size, offset)
    return sealer.run(chunks)


def seal_bytes(data: BytesLike, keys: SealKeys, header: bytes = b"", **kwargs) -> bytes:
    """Seal an in-memory payload."""
    return b"".join(seal_stream([data], keys, header, **kwargs))


def unseal_bytes(data: BytesLike, keys: SealKeys, header: bytes = b"", **kwargs) -> bytes:
    """Unseal an in-memory payload; raises instead of returning unverified data."""
    return b"".join(unseal_stream([data], keys, header, **kwargs))


__all__ = ["read_fragments", "seal_bytes", "seal_stream", "unseal_bytes", "unseal_stream"]
