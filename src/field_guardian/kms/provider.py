# Resolve KMS key URIs to master key handles used for keyset wrapping.
from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
import tink
from tink import aead

from ..core.exceptions import KeyResolutionError, UnwrapError
from ..paths import default_local_key_dir
from ..plugins.manager import load_entrypoint
from .aws import AwsKmsBackend
from .base import KmsBackend
from .gcp import GcpKmsBackend
from .local import LocalKmsBackend

logger = structlog.get_logger(__name__)

_CANARY = b"field-guardian key self-check"


class MasterKeyHandle(aead.Aead):
    """Handle to a KMS-resident key. Only wraps and unwraps DEKs.

    The raw key never exists in this process; every call goes to the backend.
    The handle also satisfies Tink's ``Aead`` interface so it can be passed to
    Tink's keyset reader and writer as the keyset encryption AEAD.
    """

    def __init__(self, key_uri: str, primitive: aead.Aead) -> None:
        self._key_uri = key_uri
        self._primitive = primitive

    @property
    def key_uri(self) -> str:
        return self._key_uri

    def wrap(self, plaintext: bytes, associated_data: bytes = b"") -> bytes:
        try:
            return self._primitive.encrypt(plaintext, associated_data)
        except tink.TinkError as exc:
            raise KeyResolutionError(f"KMS refused to wrap with {self._key_uri}: {exc}") from exc

    def unwrap(self, ciphertext: bytes, associated_data: bytes = b"") -> bytes:
        try:
            return self._primitive.decrypt(ciphertext, associated_data)
        except tink.TinkError as exc:
            raise UnwrapError(f"Cannot unwrap with {self._key_uri}: {exc}") from exc

    def encrypt(self, plaintext: bytes, associated_data: bytes) -> bytes:
        return self.wrap(plaintext, associated_data)

    def decrypt(self, ciphertext: bytes, associated_data: bytes) -> bytes:
        return self.unwrap(ciphertext, associated_data)

    def __repr__(self) -> str:
        return f"MasterKeyHandle({self._key_uri!r})"


def default_backends(local_key_dir: Optional[Path] = None) -> List[KmsBackend]:
    return [GcpKmsBackend(), AwsKmsBackend(), LocalKmsBackend(key_dir=local_key_dir)]


class MasterKeyProvider:
    """Resolve key URIs once per process and hand out cached handles"""

    def __init__(self, backends: Optional[Sequence[KmsBackend]] = None) -> None:
        self._backends: List[KmsBackend] = list(backends) if backends is not None else default_backends()
        self._handles: Dict[str, MasterKeyHandle] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, kms_config) -> "MasterKeyProvider":
        extra = [load_entrypoint(spec)() for spec in kms_config.backends]
        local_key_dir = kms_config.local_key_dir or default_local_key_dir()
        return cls([*extra, *default_backends(local_key_dir)])

    @property
    def backends(self) -> Tuple[KmsBackend, ...]:
        return tuple(self._backends)

    def register_backend(self, backend: KmsBackend) -> None:
        """Add a backend ahead of the existing ones"""
        with self._lock:
            self._backends.insert(0, backend)

    def resolved_uris(self) -> Iterable[str]:
        return tuple(self._handles)

    def resolve(
        self,
        key_uri: str,
        credentials_locator: Optional[str | Path] = None,
        *,
        verify: bool = False,
    ) -> MasterKeyHandle:
        if not key_uri or "://" not in key_uri:
            raise KeyResolutionError(f"Malformed key URI: {key_uri!r}")
        credentials_path = self._credentials_path(credentials_locator)

        with self._lock:
            cached = self._handles.get(key_uri)
            if cached is not None:
                return cached
            backend = self._backend_for(key_uri)
            handle = MasterKeyHandle(key_uri, backend.get_aead(key_uri, credentials_path))
            if verify:
                self._self_check(handle)
            self._handles[key_uri] = handle

        logger.info("master key resolved", key_uri=key_uri, backend=type(backend).__name__)
        return handle

    def _backend_for(self, key_uri: str) -> KmsBackend:
        for backend in self._backends:
            if backend.does_support(key_uri):
                return backend
        raise KeyResolutionError(f"No KMS backend supports key URI {key_uri}")

    @staticmethod
    def _credentials_path(locator: Optional[str | Path]) -> Optional[str]:
        if locator is None or str(locator) == "":
            return None
        path = Path(locator).expanduser()
        if not path.is_file():
            raise KeyResolutionError(f"Credentials file not found: {path}")
        return str(path)

    @staticmethod
    def _self_check(handle: MasterKeyHandle) -> None:
        try:
            recovered = handle.unwrap(handle.wrap(_CANARY))
        except UnwrapError as exc:
            raise KeyResolutionError(f"Master key {handle.key_uri} failed the wrap self-check") from exc
        if recovered != _CANARY:
            raise KeyResolutionError(f"Master key {handle.key_uri} returned a corrupted self-check value")


_default_provider: Optional[MasterKeyProvider] = None
_default_lock = threading.Lock()


def default_provider() -> MasterKeyProvider:
    """The process-wide provider; backends registered here are shared by every caller"""
    global _default_provider
    with _default_lock:
        if _default_provider is None:
            _default_provider = MasterKeyProvider()
        return _default_provider


__all__ = ["MasterKeyHandle", "MasterKeyProvider", "default_backends", "default_provider"]
