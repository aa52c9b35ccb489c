"""File-level sealing API built on the streaming pipeline."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from sealstream.config import DEFAULT_CHUNK_SIZE, TAG_LEN
from sealstream.errors import InvalidParameters, MalformedStream
from sealstream.keys import SealKeys
from sealstream.stream.pipeline import read_fragments, seal_stream, unseal_stream

logger = logging.getLogger(__name__)


def _ensure_distinct(in_path: Path, out_path: Path) -> None:
    if out_path.exists() and in_path.resolve() == out_path.resolve():
        raise InvalidParameters(f"Input and output are the same file: {in_path}")


def _ensure_output(path: Path, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing file: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)


def _write_staged(out_path: Path, segments: Iterable[bytes]) -> int:
    """Write ``segments`` to a temporary file and move it to ``out_path`` once exhausted.

    An existing ``out_path`` is only replaced after every segment was written.
    """
    temp_file = tempfile.NamedTemporaryFile(delete=False, dir=out_path.parent, prefix=f".{out_path.name}.")
    temp_path = Path(temp_file.name)
    written = 0
    try:
        with temp_file:
            for segment in segments:
                temp_file.write(segment)
                written += len(segment)
        if out_path.is_dir():
            shutil.rmtree(out_path)
        temp_path.replace(out_path)
    finally:
        temp_path.unlink(missing_ok=True)
    return written


def encrypt_file(
    in_path: Path,
    out_path: Path,
    keys: SealKeys,
    header: bytes = b"",
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    offset: int = 0,
    overwrite: bool = False,
) -> int:
    """Seal ``in_path`` into ``out_path`` and return the number of bytes written."""

    if not in_path.exists():
        raise FileNotFoundError(in_path)
    if not in_path.is_file():
        raise IsADirectoryError(f"Input is not a regular file: {in_path}")
    _ensure_distinct(in_path, out_path)
    _ensure_output(out_path, overwrite)

    with in_path.open("rb") as src:
        segments = seal_stream(
            read_fragments(src, chunk_size),
            keys,
            header,
            chunk_size=chunk_size,
            offset=offset,
        )
        written = _write_staged(out_path, segments)
    logger.debug("Sealed %s -> %s (%d bytes)", in_path, out_path, written)
    return written


def decrypt_file(
    in_path: Path,
    out_path: Path,
    keys: SealKeys,
    header: bytes = b"",
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overwrite: bool = False,
) -> int:
    """Unseal ``in_path`` into ``out_path`` and return the plaintext size.

    Plaintext is staged in a temporary file beside ``out_path`` and only moved
    into place after the tag verified, so a failed authentication never leaves
    unverified data at the destination.
    """

    if not in_path.exists():
        raise FileNotFoundError(in_path)
    if not in_path.is_file():
        raise IsADirectoryError(f"Input is not a regular file: {in_path}")
    if in_path.stat().st_size < len(header) + TAG_LEN:
        raise MalformedStream("Container too small")
    _ensure_distinct(in_path, out_path)
    _ensure_output(out_path, overwrite)

    with in_path.open("rb") as src:
        segments = unseal_stream(read_fragments(src, chunk_size), keys, header, chunk_size=chunk_size)
        written = _write_staged(out_path, segments)
    logger.debug("Unsealed %s -> %s (%d bytes)", in_path, out_path, written)
    return written


__all__ = ["decrypt_file", "encrypt_file"]
