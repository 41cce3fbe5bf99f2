# CLI using Typer for keyset lifecycle and single-field encrypt/decrypt.
from __future__ import annotations

import contextlib
import json
from pathlib import Path
from typing import Iterator, Optional

import structlog
import typer

from .config import AppConfig, load_config
from .core.exceptions import ConfigError, FieldGuardianError
from .crypto.templates import DEFAULT_AEAD_TEMPLATE, DEFAULT_HYBRID_TEMPLATE
from .kms.provider import MasterKeyHandle, MasterKeyProvider
from .logging import configure_logging
from .models import KeysetFormat, Protection
from .services.field_cipher import new_field_cipher
from .services.key_manager import KeyManager
from .storage.keyset_store import KeysetStore
from .version import __version__

app = typer.Typer(help="Field Guardian CLI")
logger = structlog.get_logger(__name__)


@contextlib.contextmanager
def _boundary() -> Iterator[None]:
    """Single abort point: report the failing error kind and exit non-zero"""
    try:
        yield
    except FieldGuardianError as exc:
        logger.error("command failed", error=type(exc).__name__, detail=str(exc))
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"field-guardian {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", metavar="PATH", help="YAML configuration file"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    configure_logging()
    with _boundary():
        ctx.obj = load_config(config)
    configure_logging(ctx.obj.logging.normalized_level())


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj


def _provider(ctx: typer.Context) -> MasterKeyProvider:
    provider = ctx.meta.get("field_guardian.provider")
    if provider is None:
        provider = MasterKeyProvider.from_config(_config(ctx).kms)
        ctx.meta["field_guardian.provider"] = provider
    return provider


def _master_key(ctx: typer.Context, key_uri: Optional[str], credentials: Optional[Path]) -> MasterKeyHandle:
    config = _config(ctx)
    cipher = config.cipher
    key_uri = key_uri or (cipher.master_key_uri if cipher else None)
    if not key_uri:
        raise ConfigError("No master key URI given; pass --key-uri or set cipher.master_key_uri")
    if credentials is None and cipher is not None:
        credentials = cipher.credentials_locator
    return _provider(ctx).resolve(key_uri, credentials)


@app.command("keygen-aead")
def keygen_aead(
    ctx: typer.Context,
    out: Path = typer.Option(..., "-o", "--out", help="Wrapped keyset output"),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    template: str = typer.Option(DEFAULT_AEAD_TEMPLATE, help="Tink AEAD key template name"),
    key_uri: Optional[str] = typer.Option(None, "--key-uri", help="KMS master key URI"),
    credentials: Optional[Path] = typer.Option(None, "--credentials", help="KMS credentials file"),
):
    """Create a symmetric (AEAD) keyset wrapped by the master key"""
    with _boundary():
        keyset = KeyManager(_master_key(ctx, key_uri, credentials)).create_symmetric(out, fmt, template)
    typer.echo(f"Created AEAD keyset {keyset.description.primary_key_id} -> {out}")


@app.command("keygen-hybrid")
def keygen_hybrid(
    ctx: typer.Context,
    private_out: Path = typer.Option(..., "--private-out", help="Wrapped private keyset output"),
    public_out: Path = typer.Option(..., "--public-out", help="Public keyset output"),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    template: str = typer.Option(DEFAULT_HYBRID_TEMPLATE, help="Tink hybrid key template name"),
    key_uri: Optional[str] = typer.Option(None, "--key-uri", help="KMS master key URI"),
    credentials: Optional[Path] = typer.Option(None, "--credentials", help="KMS credentials file"),
):
    """Create a hybrid key pair: wrapped private half, public half without secrets"""
    with _boundary():
        keyset = KeyManager(_master_key(ctx, key_uri, credentials)).create_hybrid(private_out, public_out, fmt, template)
    typer.echo(f"Created hybrid keyset {keyset.description.primary_key_id} -> {private_out}, {public_out}")


@app.command("export-public")
def export_public(
    ctx: typer.Context,
    source: Path = typer.Option(..., "-i", "--in", exists=True, readable=True, help="Wrapped private keyset"),
    out: Path = typer.Option(..., "-o", "--out", help="Public keyset output"),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    out_fmt: Optional[KeysetFormat] = typer.Option(None, "--out-format"),
    key_uri: Optional[str] = typer.Option(None, "--key-uri"),
    credentials: Optional[Path] = typer.Option(None, "--credentials"),
):
    """Write the public half of a wrapped hybrid keyset"""
    with _boundary():
        KeyManager(_master_key(ctx, key_uri, credentials)).export_public(source, out, fmt, out_fmt)
    typer.echo(f"Exported public keyset -> {out}")


@app.command("rewrap")
def rewrap(
    ctx: typer.Context,
    source: Path = typer.Option(..., "-i", "--in", exists=True, readable=True),
    new_key_uri: str = typer.Option(..., "--new-key-uri", help="Master key to wrap under"),
    out: Optional[Path] = typer.Option(None, "-o", "--out", help="Defaults to rewriting the input"),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    key_uri: Optional[str] = typer.Option(None, "--key-uri", help="Current master key"),
    credentials: Optional[Path] = typer.Option(None, "--credentials"),
):
    """Unwrap with the current master key and wrap under a new one"""
    with _boundary():
        manager = KeyManager(_master_key(ctx, key_uri, credentials))
        target = manager.rewrap(source, _master_key(ctx, new_key_uri, credentials), fmt, out)
    typer.echo(f"Rewrapped -> {target}")


@app.command("export-sql-keyset")
def export_sql_keyset(
    ctx: typer.Context,
    source: Path = typer.Option(..., "-i", "--in", exists=True, readable=True, help="Wrapped keyset"),
    out: Path = typer.Option(..., "-o", "--out", help="Raw KMS ciphertext output"),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    key_uri: Optional[str] = typer.Option(None, "--key-uri"),
    credentials: Optional[Path] = typer.Option(None, "--credentials"),
):
    """Write the wrapped keyset bytes expected by SQL keyset-chain functions"""
    with _boundary():
        wrapped = KeyManager(_master_key(ctx, key_uri, credentials)).export_for_sql(source, out, fmt)
    typer.echo(f"Exported {len(wrapped)} bytes for SQL -> {out}")


@app.command("inspect")
def inspect(
    source: Path = typer.Option(..., "-i", "--in", exists=True, readable=True),
    fmt: KeysetFormat = typer.Option(KeysetFormat.BINARY, "--format"),
    protection: Protection = typer.Option(Protection.WRAPPED, "--protection"),
):
    """Print keyset metadata as JSON; never prints key material"""
    with _boundary():
        description = KeysetStore().describe(source, fmt, protection)
    typer.echo(json.dumps(description.as_dict(), indent=2))


def _codec(ctx: typer.Context):
    cipher = _config(ctx).cipher
    if cipher is None:
        raise ConfigError("No cipher section in configuration")
    return new_field_cipher(cipher, provider=_provider(ctx))


@app.command("encrypt-field")
def encrypt_field(ctx: typer.Context, value: str = typer.Argument(..., help="Plaintext field value")):
    """Encrypt one value with the configured cipher and print base64"""
    with _boundary():
        typer.echo(_codec(ctx).encrypt_field(value))


@app.command("decrypt-field")
def decrypt_field(ctx: typer.Context, value: str = typer.Argument(..., help="Base64 ciphertext")):
    """Decrypt one base64 value with the configured cipher"""
    with _boundary():
        typer.echo(_codec(ctx).decrypt_field(value))


@app.command("version")
def version_cmd() -> None:
    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
