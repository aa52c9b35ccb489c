"""Zeroing of key copies and stream buffers owned by a transform."""
from __future__ import annotations


def secure_zeroize(data: bytearray | None) -> None:
    """Zero a bytearray in-place.

    Reads the first byte back afterwards so the writes have an observable
    dependency.
    """
    if data is None:
        return
    length = len(data)
    for i in range(length):
        data[i] = 0
    if length > 0:
        _ = data[0]
