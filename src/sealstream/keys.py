"""Caller-supplied key material: MAC key, AES key and initial IV.

Keys are neither generated nor derived here. A keyfile is a JSON object with
hex-encoded fields::

    {"mac_key": "<64 hex>", "aes_key": "<64 hex>", "iv": "<32 hex>"}
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from sealstream.config import validate_key_material
from sealstream.errors import InvalidParameters

_FIELDS = ("mac_key", "aes_key", "iv")


@dataclass(frozen=True)
class SealKeys:
    mac_key: bytes
    aes_key: bytes
    iv: bytes

    def __post_init__(self) -> None:
        validate_key_material(self.mac_key, self.aes_key, self.iv)

    def __repr__(self) -> str:
        return f"SealKeys(iv={self.iv.hex()})"

    @classmethod
    def from_hex(cls, mapping: Mapping[str, object]) -> SealKeys:
        values: dict[str, bytes] = {}
        for name in _FIELDS:
            raw = mapping.get(name)
            if not isinstance(raw, str):
                raise InvalidParameters(f"Key material field '{name}' missing or not a string")
            try:
                values[name] = bytes.fromhex(raw)
            except ValueError as exc:
                raise InvalidParameters(f"Key material field '{name}' is not valid hex") from exc
        return cls(**values)

    def to_hex(self) -> dict[str, str]:
        return {name: getattr(self, name).hex() for name in _FIELDS}


def load_keys(path: Path) -> SealKeys:
    """Read key material from a JSON keyfile."""
    if not path.exists():
        raise FileNotFoundError(f"Keyfile not found: {path}")
    if not path.is_file():
        raise InvalidParameters(f"Keyfile path is not a regular file: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidParameters("Keyfile is not valid JSON") from exc
    if not isinstance(data, dict):
        raise InvalidParameters("Keyfile must contain a JSON object")
    return SealKeys.from_hex(data)


__all__ = ["SealKeys", "load_keys"]
