"""Read and write Tink keysets in binary or JSON form.

Three at-rest protections are supported:

* ``wrapped`` - the keyset is encrypted by a KMS master key (Tink
  ``EncryptedKeyset``, empty associated data). This is the only protection
  allowed for private or symmetric material in production. SQL keyset-chain
  functions take only the inner KMS ciphertext; see
  :meth:`KeysetStore.export_for_sql`.
* ``cleartext`` - raw key material. Refused unless the store was built with
  ``allow_cleartext=True``; meant for ephemeral test keys.
* ``no-secrets`` - public key material only, for distribution to encrypting
  parties.
"""
from __future__ import annotations

import io
from typing import Optional, Tuple, Union

import structlog
import tink
from google.protobuf import json_format, message
from tink import cleartext_keyset_handle
from tink.proto import tink_pb2

from ..core.exceptions import (
    FormatError,
    PolicyError,
    UnexpectedSecretMaterialError,
    UnwrapError,
)
from ..crypto.templates import register_primitives
from ..kms.provider import MasterKeyHandle
from ..models import KeysetDescription, KeysetFormat, ManagedKeyset, Protection, keyset_has_secret
from .file_io import Sink, Source, read_source, write_sink

logger = structlog.get_logger(__name__)

FormatLike = Union[KeysetFormat, str]
ProtectionLike = Union[Protection, str]


def _parse_message(raw: bytes, fmt: KeysetFormat, proto_cls):
    try:
        if fmt is KeysetFormat.BINARY:
            return proto_cls.FromString(raw)
        return json_format.Parse(raw.decode("utf-8"), proto_cls())
    except (message.DecodeError, json_format.ParseError, UnicodeDecodeError) as exc:
        raise FormatError(f"Malformed {fmt.value} {proto_cls.__name__}: {exc}") from exc


def _reader(raw: bytes, fmt: KeysetFormat) -> tink.KeysetReader:
    if fmt is KeysetFormat.BINARY:
        return tink.BinaryKeysetReader(raw)
    return tink.JsonKeysetReader(raw.decode("utf-8"))


def _writer(fmt: KeysetFormat) -> Tuple[Union[io.BytesIO, io.StringIO], tink.KeysetWriter]:
    if fmt is KeysetFormat.BINARY:
        buffer = io.BytesIO()
        return buffer, tink.BinaryKeysetWriter(buffer)
    text = io.StringIO()
    return text, tink.JsonKeysetWriter(text)


def _buffer_bytes(buffer: Union[io.BytesIO, io.StringIO]) -> bytes:
    value = buffer.getvalue()
    return value.encode("utf-8") if isinstance(value, str) else value


class KeysetStore:
    """Load and save keysets; stateless apart from the cleartext policy"""

    def __init__(self, *, allow_cleartext: bool = False) -> None:
        self.allow_cleartext = allow_cleartext
        register_primitives()

    # ----- Loading -----
    def load(
        self,
        source: Source,
        fmt: FormatLike,
        protection: ProtectionLike,
        master_key: Optional[MasterKeyHandle] = None,
    ) -> ManagedKeyset:
        fmt, protection = KeysetFormat(fmt), Protection(protection)
        self._check_policy(protection, master_key)
        raw = read_source(source)

        if protection is Protection.WRAPPED:
            handle = self._load_wrapped(raw, fmt, master_key)
        elif protection is Protection.CLEARTEXT:
            handle = self._load_cleartext(raw, fmt)
        else:
            handle = self._load_public(raw, fmt)

        keyset = ManagedKeyset.from_handle(handle)
        logger.info(
            "keyset loaded",
            source=_describe_endpoint(source),
            format=fmt.value,
            protection=protection.value,
            kind=keyset.kind.value,
            keys=len(keyset.description.key_ids),
        )
        return keyset

    def _load_wrapped(self, raw: bytes, fmt: KeysetFormat, master_key: MasterKeyHandle) -> tink.KeysetHandle:
        encrypted = _parse_message(raw, fmt, tink_pb2.EncryptedKeyset)
        if not encrypted.encrypted_keyset:
            raise FormatError("Wrapped keyset carries no ciphertext")
        try:
            return tink.read_keyset_handle(_reader(raw, fmt), master_key)
        except UnwrapError:
            raise
        except tink.TinkError as exc:
            raise UnwrapError(f"Keyset was not wrapped by {master_key.key_uri} or is corrupted: {exc}") from exc

    def _load_cleartext(self, raw: bytes, fmt: KeysetFormat) -> tink.KeysetHandle:
        keyset = _parse_message(raw, fmt, tink_pb2.Keyset)
        if not keyset.key:
            raise FormatError("Keyset contains no keys")
        try:
            return cleartext_keyset_handle.read(_reader(raw, fmt))
        except tink.TinkError as exc:
            raise FormatError(f"Invalid cleartext keyset: {exc}") from exc

    def _load_public(self, raw: bytes, fmt: KeysetFormat) -> tink.KeysetHandle:
        keyset = _parse_message(raw, fmt, tink_pb2.Keyset)
        if not keyset.key:
            raise FormatError("Keyset contains no keys")
        if keyset_has_secret(keyset):
            raise UnexpectedSecretMaterialError("Keyset expected to be public-only contains secret key material")
        try:
            return tink.read_no_secret_keyset_handle(_reader(raw, fmt))
        except tink.TinkError as exc:
            raise FormatError(f"Invalid public keyset: {exc}") from exc

    # ----- Saving -----
    def save(
        self,
        keyset: ManagedKeyset,
        sink: Sink,
        fmt: FormatLike,
        protection: ProtectionLike,
        master_key: Optional[MasterKeyHandle] = None,
    ) -> None:
        fmt, protection = KeysetFormat(fmt), Protection(protection)
        self._check_policy(protection, master_key)
        data = self._render(keyset, fmt, protection, master_key)
        write_sink(sink, data, secret=protection is not Protection.NO_SECRETS)
        logger.info(
            "keyset saved",
            sink=_describe_endpoint(sink),
            format=fmt.value,
            protection=protection.value,
            kind=keyset.kind.value,
        )

    def serialize(
        self,
        keyset: ManagedKeyset,
        fmt: FormatLike,
        protection: ProtectionLike,
        master_key: Optional[MasterKeyHandle] = None,
    ) -> bytes:
        """Render a keyset without touching the filesystem"""
        fmt, protection = KeysetFormat(fmt), Protection(protection)
        self._check_policy(protection, master_key)
        return self._render(keyset, fmt, protection, master_key)

    def export_for_sql(self, keyset: ManagedKeyset, master_key: MasterKeyHandle) -> bytes:
        """KMS ciphertext of the serialized keyset, as SQL keyset-chain functions take it.

        This is the ``encrypted_keyset`` field of the wrapped form with the
        ``EncryptedKeyset`` envelope and its ``keyset_info`` removed.
        """
        self._check_policy(Protection.WRAPPED, master_key)
        data = self._render(keyset, KeysetFormat.BINARY, Protection.WRAPPED, master_key)
        wrapped = tink_pb2.EncryptedKeyset.FromString(data).encrypted_keyset
        logger.info("keyset exported for sql", kind=keyset.kind.value, key_uri=master_key.key_uri)
        return wrapped

    def _render(
        self,
        keyset: ManagedKeyset,
        fmt: KeysetFormat,
        protection: Protection,
        master_key: Optional[MasterKeyHandle],
    ) -> bytes:
        buffer, writer = _writer(fmt)
        try:
            if protection is Protection.WRAPPED:
                keyset.handle.write(writer, master_key)
            elif protection is Protection.CLEARTEXT:
                cleartext_keyset_handle.write(writer, keyset.handle)
            else:
                keyset.public().handle.write_no_secret(writer)
        except tink.TinkError as exc:
            raise FormatError(f"Cannot serialize {keyset.kind.value} keyset: {exc}") from exc
        data = _buffer_bytes(buffer)

        if protection is Protection.WRAPPED:
            # describe() needs the plaintext KeysetInfo; BinaryKeysetWriter drops it
            encrypted = _parse_message(data, fmt, tink_pb2.EncryptedKeyset)
            if not encrypted.HasField("keyset_info"):
                encrypted.keyset_info.CopyFrom(keyset.handle.keyset_info())
                if fmt is KeysetFormat.BINARY:
                    return encrypted.SerializeToString()
                buffer, writer = _writer(fmt)
                writer.write_encrypted(encrypted)
                data = _buffer_bytes(buffer)
        return data

    # ----- Metadata -----
    def describe(self, source: Source, fmt: FormatLike, protection: ProtectionLike) -> KeysetDescription:
        """Keyset metadata without unwrapping; wrapped keysets expose their plaintext KeysetInfo"""
        fmt, protection = KeysetFormat(fmt), Protection(protection)
        raw = read_source(source)
        if protection is Protection.WRAPPED:
            encrypted = _parse_message(raw, fmt, tink_pb2.EncryptedKeyset)
            if not encrypted.HasField("keyset_info"):
                raise FormatError("Wrapped keyset carries no keyset info")
            return KeysetDescription.from_keyset_info(encrypted.keyset_info)
        keyset = _parse_message(raw, fmt, tink_pb2.Keyset)
        if protection is Protection.NO_SECRETS and keyset_has_secret(keyset):
            raise UnexpectedSecretMaterialError("Keyset expected to be public-only contains secret key material")
        return KeysetDescription.from_keyset(keyset)

    def _check_policy(self, protection: Protection, master_key: Optional[MasterKeyHandle]) -> None:
        if protection is Protection.WRAPPED and master_key is None:
            raise PolicyError("Wrapped keysets need a master key")
        if protection is Protection.CLEARTEXT:
            if not self.allow_cleartext:
                raise PolicyError("Cleartext keysets are disabled; wrap the keyset with a KMS master key")
            logger.warning("cleartext keyset access", protection=protection.value)


def _describe_endpoint(endpoint: object) -> str:
    if isinstance(endpoint, (bytes, bytearray)):
        return "<memory>"
    return str(getattr(endpoint, "name", endpoint))


__all__ = ["KeysetStore"]
