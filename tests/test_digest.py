from __future__ import annotations

import hashlib

import pytest

from sealstream.config import TAG_LEN
from sealstream.crypto.digest import Sha3Accumulator, fit_tag
from sealstream.errors import CryptoPrimitiveFailure


def test_sha3_accumulator_matches_one_shot_hash() -> None:
    acc = Sha3Accumulator()
    for part in (b"key" * 8, b"header", b"ciphertext-1", b"ciphertext-2"):
        acc.update(part)
    assert acc.finalize() == hashlib.sha3_256(b"key" * 8 + b"header" + b"ciphertext-1" + b"ciphertext-2").digest()


def test_sha3_accumulator_is_order_sensitive() -> None:
    first = Sha3Accumulator()
    first.update(b"a")
    first.update(b"b")
    second = Sha3Accumulator()
    second.update(b"b")
    second.update(b"a")
    assert first.finalize() != second.finalize()


def test_fit_tag_truncates_long_digests() -> None:
    digest = hashlib.sha512(b"x").digest()
    assert fit_tag(digest) == digest[:TAG_LEN]


def test_fit_tag_rejects_short_digests() -> None:
    with pytest.raises(CryptoPrimitiveFailure):
        fit_tag(hashlib.md5(b"x").digest())
