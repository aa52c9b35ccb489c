import hashlib
import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

from sealstream.keys import SealKeys  # noqa: E402

MAC_KEY = bytes(range(32))
AES_KEY = bytes(range(32, 64))
IV = bytes.fromhex("0011223344556677") + (5).to_bytes(8, "big")


class XorCounterCipher:
    """Deterministic counter-mode stand-in; block i uses sha256(key || nonce || counter + i)."""

    def __init__(self, key: bytes, calls: list[tuple[str, bytes, int]]) -> None:
        self.key = bytes(key)
        self.calls = calls

    def _keystream(self, iv: bytes, length: int) -> bytes:
        nonce, counter = iv[:8], int.from_bytes(iv[8:], "big")
        stream = bytearray()
        block = 0
        while len(stream) < length:
            stream += hashlib.sha256(self.key + nonce + (counter + block).to_bytes(8, "big")).digest()[:16]
            block += 1
        return bytes(stream[:length])

    def encrypt(self, iv: bytes, data: bytes) -> bytes:
        self.calls.append(("encrypt", iv, len(data)))
        return bytes(a ^ b for a, b in zip(data, self._keystream(iv, len(data))))

    def decrypt(self, iv: bytes, data: bytes) -> bytes:
        self.calls.append(("decrypt", iv, len(data)))
        return bytes(a ^ b for a, b in zip(data, self._keystream(iv, len(data))))


class HashlibAccumulator:
    def __init__(self, name: str = "sha256") -> None:
        self._hash = hashlib.new(name)

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def finalize(self) -> bytes:
        return self._hash.digest()


@pytest.fixture
def keys() -> SealKeys:
    return SealKeys(mac_key=MAC_KEY, aes_key=AES_KEY, iv=IV)


@pytest.fixture
def key_args() -> dict[str, bytes]:
    return {"mac_key": MAC_KEY, "aes_key": AES_KEY, "iv": IV}


@pytest.fixture
def cipher_calls() -> list[tuple[str, bytes, int]]:
    return []


@pytest.fixture
def fake_cipher(cipher_calls: list[tuple[str, bytes, int]]):
    def factory(key: bytes) -> XorCounterCipher:
        return XorCounterCipher(key, cipher_calls)

    return factory


@pytest.fixture
def fake_digest():
    return HashlibAccumulator


@pytest.fixture
def keyfile(tmp_path: Path, keys: SealKeys) -> Path:
    path = tmp_path / "keys.json"
    path.write_text(json.dumps(keys.to_hex()), encoding="utf-8")
    return path
