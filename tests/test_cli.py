from pathlib import Path

import pytest
from click.testing import CliRunner

from sealstream.cli import (
    EXIT_AUTH,
    EXIT_CRYPTO,
    EXIT_FS,
    EXIT_MALFORMED,
    EXIT_SUCCESS,
    EXIT_USAGE,
    cli,
    main,
)
from sealstream.config import TAG_LEN
from sealstream.crypto.ctr import AesCtrCipher


def test_cli_encrypt_decrypt_file(tmp_path: Path, keyfile: Path) -> None:
    runner = CliRunner()
    source = tmp_path / "source.txt"
    source.write_text("hello")
    container = tmp_path / "data.sealed"
    output = tmp_path / "restored.txt"

    result = runner.invoke(
        cli, ["encrypt", str(source), str(container), "--keyfile", str(keyfile), "--header", "v1"]
    )
    assert result.exit_code == EXIT_SUCCESS, result.output
    assert "Encrypted to" in result.output
    assert container.stat().st_size == len("v1") + len("hello") + TAG_LEN

    result = runner.invoke(
        cli, ["decrypt", str(container), str(output), "--keyfile", str(keyfile), "--header-hex", b"v1".hex()]
    )
    assert result.exit_code == EXIT_SUCCESS, result.output
    assert "Decrypted and verified" in result.output
    assert output.read_text() == "hello"


def test_cli_default_output_names(tmp_path: Path, keyfile: Path) -> None:
    runner = CliRunner()
    source = tmp_path / "notes.txt"
    source.write_text("notes")

    result = runner.invoke(cli, ["encrypt", str(source), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_SUCCESS, result.output
    container = tmp_path / "notes.txt.sealed"
    assert container.exists()

    result = runner.invoke(cli, ["decrypt", str(container), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_FS

    result = runner.invoke(cli, ["decrypt", str(container), "--keyfile", str(keyfile), "--overwrite"])
    assert result.exit_code == EXIT_SUCCESS, result.output
    assert source.read_text() == "notes"

    renamed = tmp_path / "notes.bin"
    container.rename(renamed)
    result = runner.invoke(cli, ["decrypt", str(renamed), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_SUCCESS, result.output
    assert (tmp_path / "notes.bin.out").read_text() == "notes"


def test_cli_authentication_failure(tmp_path: Path, keyfile: Path) -> None:
    runner = CliRunner()
    source = tmp_path / "secret.txt"
    source.write_text("secret data")
    container = tmp_path / "secret.sealed"
    output = tmp_path / "secret.out"

    result = runner.invoke(cli, ["encrypt", str(source), str(container), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_SUCCESS

    result = runner.invoke(
        cli, ["decrypt", str(container), str(output), "--keyfile", str(keyfile), "--header", "other"]
    )
    assert result.exit_code == EXIT_AUTH
    assert "authentication failed" in result.output
    assert not output.exists()


def test_cli_malformed_container(tmp_path: Path, keyfile: Path) -> None:
    container = tmp_path / "tiny.sealed"
    container.write_bytes(b"\x00" * (TAG_LEN - 1))

    result = CliRunner().invoke(cli, ["decrypt", str(container), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_MALFORMED


def test_cli_missing_input(tmp_path: Path, keyfile: Path) -> None:
    result = CliRunner().invoke(cli, ["encrypt", str(tmp_path / "nope.txt"), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_FS


@pytest.mark.parametrize(
    "extra",
    [
        ["--header", "a", "--header-hex", "61"],
        ["--header-hex", "not-hex"],
    ],
)
def test_cli_header_usage_errors(tmp_path: Path, keyfile: Path, extra: list[str]) -> None:
    source = tmp_path / "in.txt"
    source.write_text("x")

    result = CliRunner().invoke(cli, ["encrypt", str(source), "--keyfile", str(keyfile), *extra])
    assert result.exit_code == EXIT_USAGE
    assert not (tmp_path / "in.txt.sealed").exists()


def test_cli_invalid_keyfile(tmp_path: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_text("x")
    keyfile = tmp_path / "keys.json"
    keyfile.write_text('{"mac_key": "00"}', encoding="utf-8")

    result = CliRunner().invoke(cli, ["encrypt", str(source), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_USAGE


def test_main_returns_exit_code(tmp_path: Path, keyfile: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_text("x")

    assert main(["encrypt", str(source), "--keyfile", str(keyfile)]) == EXIT_SUCCESS
    assert main(["encrypt", str(source), "--keyfile", str(keyfile)]) == EXIT_FS


def test_cli_crypto_failure(tmp_path: Path, keyfile: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_encrypt(self, iv: bytes, data: bytes) -> bytes:
        raise RuntimeError("cipher backend unavailable")

    monkeypatch.setattr(AesCtrCipher, "encrypt", broken_encrypt)
    source = tmp_path / "in.txt"
    source.write_text("payload")
    target = tmp_path / "in.sealed"

    result = CliRunner().invoke(cli, ["encrypt", str(source), str(target), "--keyfile", str(keyfile)])
    assert result.exit_code == EXIT_CRYPTO
    assert "Cryptographic primitive failed" in result.output
    assert not target.exists()
