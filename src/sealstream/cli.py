"""Command line interface for sealstream."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sealstream import __version__
from sealstream.config import DEFAULT_CHUNK_SIZE, TAG_LEN
from sealstream.errors import (
    AuthenticationFailure,
    CryptoPrimitiveFailure,
    InvalidParameters,
    MalformedStream,
    SealStreamError,
    StreamTooLarge,
)
from sealstream.files import decrypt_file, encrypt_file
from sealstream.keys import load_keys

EXIT_SUCCESS = 0
EXIT_USAGE = 1
EXIT_AUTH = 2
EXIT_FS = 3
EXIT_MALFORMED = 4
EXIT_CRYPTO = 5

SEALED_SUFFIX = ".sealed"

console = Console()


def _package_version() -> str:
    try:
        return version("sealstream")
    except PackageNotFoundError:
        return __version__


def _human_size(num: float) -> str:
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if num < 1024 or unit == "TB":
            return f"{num:.1f} {unit}" if unit != "B" else f"{int(num)} {unit}"
        num /= 1024
    return f"{num:.1f} TB"


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _resolve_header(header_text: str | None, header_hex: str | None) -> bytes:
    if header_text is not None and header_hex is not None:
        raise InvalidParameters("Use either --header or --header-hex, not both")
    if header_hex is not None:
        try:
            return bytes.fromhex(header_hex)
        except ValueError as exc:
            raise InvalidParameters("--header-hex is not valid hex") from exc
    if header_text is not None:
        return header_text.encode("utf-8")
    return b""


def _default_decrypt_target(container: Path) -> Path:
    if container.suffix == SEALED_SUFFIX:
        return container.with_suffix("")
    return container.with_suffix(container.suffix + ".out")


def _handle_action(action: Callable[[], None]) -> int:
    try:
        action()
    except MalformedStream as exc:
        console.print(f"[red]Error: stream is malformed:[/red] {exc}")
        return EXIT_MALFORMED
    except AuthenticationFailure:
        console.print("[red]Error: authentication failed, output discarded[/red]")
        return EXIT_AUTH
    except CryptoPrimitiveFailure as exc:
        console.print(f"[red]Cryptographic primitive failed:[/red] {exc}")
        return EXIT_CRYPTO
    except (InvalidParameters, StreamTooLarge) as exc:
        console.print(f"[red]Invalid parameters:[/red] {exc}")
        return EXIT_USAGE
    except SealStreamError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return EXIT_USAGE
    except FileExistsError as exc:
        console.print(f"[red]{exc}. Use --overwrite to replace.[/red]")
        return EXIT_FS
    except FileNotFoundError as exc:
        console.print(f"[red]File not found:[/red] {exc}")
        return EXIT_FS
    except PermissionError as exc:
        console.print(f"[red]Permission denied:[/red] {exc}")
        return EXIT_FS
    except OSError as exc:  # noqa: BLE001
        console.print(f"[red]Filesystem error:[/red] {exc}")
        return EXIT_FS
    return EXIT_SUCCESS


_keyfile_option = click.option(
    "--keyfile",
    "keyfile",
    required=True,
    type=click.Path(path_type=Path),
    help='JSON file with hex "mac_key", "aes_key" and "iv".',
)
_header_option = click.option("--header", "header_text", help="Header as UTF-8 text (authenticated, not encrypted).")
_header_hex_option = click.option("--header-hex", "header_hex", help="Header as hex bytes.")
_chunk_size_option = click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=DEFAULT_CHUNK_SIZE,
    show_default=True,
    help="Internal chunk size in bytes; must match between encrypt and decrypt.",
)
_overwrite_option = click.option(
    "--overwrite/--no-overwrite",
    default=False,
    help="Overwrite output if it already exists.",
)


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=False,
)
@click.version_option(version=_package_version(), prog_name="sealstream")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug details of the stream.")
def cli(verbose: bool) -> None:
    """Streaming AES-CTR encryption with a trailing authentication tag."""
    _configure_logging(verbose)


@cli.command(
    help="Encrypt a file into header || ciphertext || tag.",
    epilog="Examples:\n  sealstream encrypt report.pdf --keyfile keys.json\n  sealstream encrypt data.bin data.sealed --keyfile keys.json --header v1",
)
@click.argument("input_path", type=click.Path(path_type=Path))
@click.argument("output_path", required=False, type=click.Path(path_type=Path))
@_keyfile_option
@_header_option
@_header_hex_option
@_chunk_size_option
@click.option(
    "--offset",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Leading input bytes to skip before encrypting.",
)
@_overwrite_option
@click.pass_context
def encrypt(
    ctx: click.Context,
    input_path: Path,
    output_path: Path | None,
    keyfile: Path,
    header_text: str | None,
    header_hex: str | None,
    chunk_size: int,
    offset: int,
    overwrite: bool,
) -> None:
    try:
        header = _resolve_header(header_text, header_hex)
    except InvalidParameters as exc:
        console.print(f"[red]Invalid parameters:[/red] {exc}")
        ctx.exit(EXIT_USAGE)
        return
    target = output_path or input_path.with_suffix(input_path.suffix + SEALED_SUFFIX)
    written: list[int] = []

    code = _handle_action(
        lambda: written.append(
            encrypt_file(
                input_path,
                target,
                load_keys(keyfile),
                header,
                chunk_size=chunk_size,
                offset=offset,
                overwrite=overwrite,
            ),
        ),
    )
    if code == EXIT_SUCCESS:
        table = Table(show_header=False, box=None)
        table.add_row("Header", f"{len(header)} B")
        table.add_row("Ciphertext", _human_size(written[0] - len(header) - TAG_LEN))
        table.add_row("Tag", f"{TAG_LEN} B")
        console.print(f"[green]Encrypted to[/green] {target} (~{_human_size(written[0])}).")
        console.print(table)
    ctx.exit(code)


@cli.command(
    help="Decrypt and verify a sealed file; nothing is written unless the tag matches.",
    epilog="Examples:\n  sealstream decrypt report.pdf.sealed --keyfile keys.json\n  sealstream decrypt data.sealed out.bin --keyfile keys.json --header v1 --overwrite",
)
@click.argument("container", type=click.Path(path_type=Path))
@click.argument("output_path", required=False, type=click.Path(path_type=Path))
@_keyfile_option
@_header_option
@_header_hex_option
@_chunk_size_option
@_overwrite_option
@click.pass_context
def decrypt(
    ctx: click.Context,
    container: Path,
    output_path: Path | None,
    keyfile: Path,
    header_text: str | None,
    header_hex: str | None,
    chunk_size: int,
    overwrite: bool,
) -> None:
    try:
        header = _resolve_header(header_text, header_hex)
    except InvalidParameters as exc:
        console.print(f"[red]Invalid parameters:[/red] {exc}")
        ctx.exit(EXIT_USAGE)
        return
    out_path = output_path or _default_decrypt_target(container)
    written: list[int] = []

    code = _handle_action(
        lambda: written.append(
            decrypt_file(
                container,
                out_path,
                load_keys(keyfile),
                header,
                chunk_size=chunk_size,
                overwrite=overwrite,
            ),
        ),
    )
    if code == EXIT_SUCCESS:
        console.print(f"[green]Decrypted and verified[/green] {out_path} (~{_human_size(written[0])}).")
    ctx.exit(code)


def main(argv: list[str] | None = None) -> int:
    try:
        return cli.main(args=argv, prog_name="sealstream", standalone_mode=False)
    except SystemExit as exc:  # noqa: TRY003
        code = exc.code if isinstance(exc.code, int) else EXIT_USAGE
        return code
    except click.ClickException as exc:
        exc.show()
        return EXIT_USAGE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
