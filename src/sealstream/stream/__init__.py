"""Streaming transforms: re-chunking and sealing/unsealing of byte streams.

The objects listed in ``__all__`` form the supported public surface.
"""
from __future__ import annotations

from sealstream.stream.chunker import Chunker, rebuffer
from sealstream.stream.pipeline import read_fragments, seal_bytes, seal_stream, unseal_bytes, unseal_stream
from sealstream.stream.sealer import DecryptSealer, EncryptSealer, SealerState, create_sealer

__all__ = [
    "Chunker",
    "DecryptSealer",
    "EncryptSealer",
    "SealerState",
    "create_sealer",
    "read_fragments",
    "rebuffer",
    "seal_bytes",
    "seal_stream",
    "unseal_bytes",
    "unseal_stream",
]
