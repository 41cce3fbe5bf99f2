"""Build a ready FieldCodec from configuration, once per run."""
from __future__ import annotations

from typing import List, Optional

import structlog

from ..config import FieldCipherConfig, KeySourceConfig
from ..core.exceptions import CapabilityError
from ..crypto.engine import create_engine
from ..kms.provider import MasterKeyHandle, MasterKeyProvider, default_provider
from ..models import CipherMode, ManagedKeyset, PrimitiveKind, Protection
from ..storage.keyset_store import KeysetStore
from .field_codec import FieldCodec

logger = structlog.get_logger(__name__)


def new_field_cipher(
    config: FieldCipherConfig,
    *,
    provider: Optional[MasterKeyProvider] = None,
    store: Optional[KeysetStore] = None,
) -> FieldCodec:
    store = store or KeysetStore(allow_cleartext=config.allow_cleartext)
    master_key = _master_key_for(config, provider)

    keysets: List[ManagedKeyset] = [_load(store, source, master_key) for source in config.sources()]
    _check_mode(config.mode, keysets)
    engine = create_engine(*keysets)
    logger.info(
        "field cipher ready",
        mode=config.mode.value,
        fields=config.fields,
        verify_roundtrip=config.verify_roundtrip,
    )
    return FieldCodec(
        engine,
        config.context_bytes(),
        verify_roundtrip=config.verify_roundtrip,
        fields=config.fields,
    )


def _master_key_for(config: FieldCipherConfig, provider: Optional[MasterKeyProvider]) -> Optional[MasterKeyHandle]:
    if not any(source.protection is Protection.WRAPPED for source in config.sources()):
        return None
    provider = provider or default_provider()
    return provider.resolve(config.master_key_uri, config.credentials_locator)


def _check_mode(mode: CipherMode, keysets: List[ManagedKeyset]) -> None:
    symmetric = [keyset.kind is PrimitiveKind.AEAD for keyset in keysets]
    expected = mode is CipherMode.SYMMETRIC
    if not all(flag is expected for flag in symmetric):
        kinds = ", ".join(keyset.kind.value for keyset in keysets)
        raise CapabilityError(f"{mode.value} mode cannot use keysets of kind: {kinds}")


def _load(store: KeysetStore, source: KeySourceConfig, master_key: Optional[MasterKeyHandle]) -> ManagedKeyset:
    return store.load(
        source.path,
        source.format,
        source.protection,
        master_key if source.protection is Protection.WRAPPED else None,
    )


__all__ = ["new_field_cipher"]
