# Manage the lifecycle of keysets (generate, export public half, rewrap, inspect).
from __future__ import annotations
from pathlib import Path
from typing import Optional

import structlog

from ..crypto.templates import DEFAULT_AEAD_TEMPLATE, DEFAULT_HYBRID_TEMPLATE, new_aead_keyset, new_hybrid_keyset
from ..kms.provider import MasterKeyHandle
from ..models import KeysetDescription, KeysetFormat, ManagedKeyset, Protection
from ..storage.file_io import write_sink
from ..storage.keyset_store import KeysetStore

logger = structlog.get_logger(__name__)


class KeyManager:
    """Create and maintain wrapped keysets via KeysetStore"""
    def __init__(self, master_key: MasterKeyHandle, store: KeysetStore | None = None):
        self.master_key = master_key
        self.store = store or KeysetStore()

    def create_symmetric(
        self,
        path: Path,
        fmt: KeysetFormat = KeysetFormat.BINARY,
        template: str = DEFAULT_AEAD_TEMPLATE,
    ) -> ManagedKeyset:
        keyset = new_aead_keyset(template)
        self.store.save(keyset, path, fmt, Protection.WRAPPED, self.master_key)
        logger.info("symmetric keyset created", path=str(path), template=template,
                    primary_key_id=keyset.description.primary_key_id)
        return keyset

    def create_hybrid(
        self,
        private_path: Path,
        public_path: Path,
        fmt: KeysetFormat = KeysetFormat.BINARY,
        template: str = DEFAULT_HYBRID_TEMPLATE,
    ) -> ManagedKeyset:
        """Private half is wrapped, public half is written without secrets"""
        keyset = new_hybrid_keyset(template)
        self.store.save(keyset, private_path, fmt, Protection.WRAPPED, self.master_key)
        self.store.save(keyset, public_path, fmt, Protection.NO_SECRETS)
        logger.info("hybrid keyset created", private_path=str(private_path), public_path=str(public_path),
                    template=template, primary_key_id=keyset.description.primary_key_id)
        return keyset

    #* Loaders
    def load(self, path: Path, fmt: KeysetFormat = KeysetFormat.BINARY) -> ManagedKeyset:
        return self.store.load(path, fmt, Protection.WRAPPED, self.master_key)

    def export_public(
        self,
        private_path: Path,
        public_path: Path,
        fmt: KeysetFormat = KeysetFormat.BINARY,
        out_fmt: Optional[KeysetFormat] = None,
    ) -> ManagedKeyset:
        public = self.load(private_path, fmt).public()
        self.store.save(public, public_path, out_fmt or fmt, Protection.NO_SECRETS)
        return public

    def rewrap(
        self,
        path: Path,
        new_master_key: MasterKeyHandle,
        fmt: KeysetFormat = KeysetFormat.BINARY,
        out_path: Optional[Path] = None,
    ) -> Path:
        """Move a keyset to another master key; the DEK itself is unchanged"""
        keyset = self.load(path, fmt)
        target = out_path or path
        self.store.save(keyset, target, fmt, Protection.WRAPPED, new_master_key)
        logger.info("keyset rewrapped", path=str(target), old_key_uri=self.master_key.key_uri,
                    new_key_uri=new_master_key.key_uri)
        return target

    def export_for_sql(self, path: Path, out_path: Path, fmt: KeysetFormat = KeysetFormat.BINARY) -> bytes:
        """Write the raw KMS ciphertext taken by SQL keyset-chain functions"""
        wrapped = self.store.export_for_sql(self.load(path, fmt), self.master_key)
        write_sink(out_path, wrapped, secret=True)
        return wrapped

    def inspect(
        self,
        path: Path,
        fmt: KeysetFormat = KeysetFormat.BINARY,
        protection: Protection = Protection.WRAPPED,
    ) -> KeysetDescription:
        return self.store.describe(path, fmt, protection)
