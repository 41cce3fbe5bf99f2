# Typed models for keysets and their at-rest representations.

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import tink
from tink.proto import tink_pb2

from .core.exceptions import FormatError, UnexpectedSecretMaterialError


class KeysetFormat(str, Enum):
    BINARY = "binary"
    JSON = "json"


class Protection(str, Enum):
    WRAPPED = "wrapped"
    CLEARTEXT = "cleartext"
    NO_SECRETS = "no-secrets"


class PrimitiveKind(str, Enum):
    AEAD = "aead"
    HYBRID_PUBLIC = "hybrid-public"
    HYBRID_PRIVATE = "hybrid-private"


class CipherMode(str, Enum):
    HYBRID = "hybrid"
    SYMMETRIC = "symmetric"


_SECRET_MATERIAL = (
    tink_pb2.KeyData.SYMMETRIC,
    tink_pb2.KeyData.ASYMMETRIC_PRIVATE,
)


def keyset_has_secret(keyset: tink_pb2.Keyset) -> bool:
    """True when any key entry carries symmetric or private key material"""
    return any(key.key_data.key_material_type in _SECRET_MATERIAL for key in keyset.key)


def kind_for_type_url(type_url: str) -> PrimitiveKind:
    name = type_url.rsplit(".", 1)[-1]
    if name.endswith("PrivateKey"):
        return PrimitiveKind.HYBRID_PRIVATE
    if name.endswith("PublicKey"):
        return PrimitiveKind.HYBRID_PUBLIC
    return PrimitiveKind.AEAD


@dataclass(frozen=True, slots=True)
class KeysetDescription:
    """Metadata of a keyset; never carries key material"""
    kind: PrimitiveKind
    primary_key_id: int
    key_ids: Tuple[int, ...] = ()
    type_urls: Tuple[str, ...] = ()

    @property
    def has_secret(self) -> bool:
        return self.kind is not PrimitiveKind.HYBRID_PUBLIC

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "primary_key_id": self.primary_key_id,
            "key_ids": list(self.key_ids),
            "type_urls": list(self.type_urls),
        }

    @classmethod
    def from_keyset_info(cls, info: tink_pb2.KeysetInfo) -> "KeysetDescription":
        if not info.key_info:
            raise FormatError("Keyset contains no keys")
        type_urls = tuple(entry.type_url for entry in info.key_info)
        kinds = {kind_for_type_url(url) for url in type_urls}
        if len(kinds) != 1:
            raise FormatError(f"Keyset mixes primitive kinds: {sorted(k.value for k in kinds)}")
        return cls(
            kind=kinds.pop(),
            primary_key_id=info.primary_key_id,
            key_ids=tuple(entry.key_id for entry in info.key_info),
            type_urls=type_urls,
        )

    @classmethod
    def from_keyset(cls, keyset: tink_pb2.Keyset) -> "KeysetDescription":
        info = tink_pb2.KeysetInfo(primary_key_id=keyset.primary_key_id)
        for key in keyset.key:
            info.key_info.add(
                type_url=key.key_data.type_url,
                status=key.status,
                key_id=key.key_id,
                output_prefix_type=key.output_prefix_type,
            )
        return cls.from_keyset_info(info)


@dataclass(frozen=True)
class ManagedKeyset:
    """A loaded Tink keyset handle together with the primitive it serves"""
    handle: tink.KeysetHandle
    description: KeysetDescription

    @classmethod
    def from_handle(cls, handle: tink.KeysetHandle) -> "ManagedKeyset":
        return cls(handle=handle, description=KeysetDescription.from_keyset_info(handle.keyset_info()))

    @property
    def kind(self) -> PrimitiveKind:
        return self.description.kind

    @property
    def has_secret(self) -> bool:
        return self.description.has_secret

    def public(self) -> "ManagedKeyset":
        if self.kind is PrimitiveKind.HYBRID_PUBLIC:
            return self
        if self.kind is not PrimitiveKind.HYBRID_PRIVATE:
            raise UnexpectedSecretMaterialError("Symmetric keysets have no public view")
        return ManagedKeyset.from_handle(self.handle.public_keyset_handle())


__all__ = [
    "CipherMode",
    "KeysetDescription",
    "KeysetFormat",
    "ManagedKeyset",
    "PrimitiveKind",
    "Protection",
    "keyset_has_secret",
    "kind_for_type_url",
]
