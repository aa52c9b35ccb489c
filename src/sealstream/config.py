"""Fixed sizes and validated stream parameters."""

from __future__ import annotations

from dataclasses import dataclass

from sealstream.errors import InvalidParameters

KEY_LEN = 32
NONCE_LEN = 8
COUNTER_LEN = 8
IV_LEN = NONCE_LEN + COUNTER_LEN
BLOCK_LEN = 16
TAG_LEN = 32

DEFAULT_CHUNK_SIZE = 128 * 1024
MAX_CHUNK_SIZE = 64 * 1024 * 1024


@dataclass(frozen=True)
class StreamParams:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    offset: int = 0


def _validate_stream_params(params: StreamParams) -> StreamParams:
    if not (1 <= params.chunk_size <= MAX_CHUNK_SIZE):
        raise InvalidParameters(f"Chunk size must be between 1 and {MAX_CHUNK_SIZE} bytes")
    if params.offset < 0:
        raise InvalidParameters("Offset must not be negative")
    return params


def resolve_stream_params(
    *,
    chunk_size: int | None = None,
    offset: int | None = None,
    base: StreamParams | None = None,
) -> StreamParams:
    """Build validated stream parameters using overrides when provided."""
    defaults = base or StreamParams()
    candidate = StreamParams(
        chunk_size=chunk_size if chunk_size is not None else defaults.chunk_size,
        offset=offset if offset is not None else defaults.offset,
    )
    return _validate_stream_params(candidate)


def validate_key_material(mac_key: bytes, aes_key: bytes, iv: bytes) -> None:
    """Reject keys or IV of the wrong length before any stream activity."""
    if len(mac_key) != KEY_LEN:
        raise InvalidParameters(f"MAC key must be {KEY_LEN} bytes long, got {len(mac_key)}")
    if len(aes_key) != KEY_LEN:
        raise InvalidParameters(f"AES key must be {KEY_LEN} bytes long, got {len(aes_key)}")
    if len(iv) != IV_LEN:
        raise InvalidParameters(f"IV must be {IV_LEN} bytes long, got {len(iv)}")


__all__ = [
    "BLOCK_LEN",
    "COUNTER_LEN",
    "DEFAULT_CHUNK_SIZE",
    "IV_LEN",
    "KEY_LEN",
    "MAX_CHUNK_SIZE",
    "NONCE_LEN",
    "StreamParams",
    "TAG_LEN",
    "resolve_stream_params",
    "validate_key_material",
]
