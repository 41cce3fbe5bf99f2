"""Development KMS backend holding AES-256-GCM master keys locally.

Meant for tests and offline demos. Keys are kept in memory, or in a key
directory as ``<name>.key`` files (base64, mode 0600) so that keysets wrapped
in one run can be unwrapped in the next. Each key name maps to its own
independent key.
"""
from __future__ import annotations

import base64
import binascii
import os
import re
import stat
import threading
from pathlib import Path
from typing import Dict, Final, Optional

import tink
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from tink import aead

from ..core.exceptions import KeyResolutionError
from .base import KmsBackend

AES256_KEY_SIZE: Final[int] = 32
NONCE_SIZE: Final[int] = 12
TAG_SIZE: Final[int] = 16

_KEY_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


class LocalAesGcmAead(aead.Aead):
    """AES-256-GCM with a random 96-bit nonce prepended to each ciphertext"""

    def __init__(self, key: bytes) -> None:
        if len(key) != AES256_KEY_SIZE:
            raise KeyResolutionError("Local master keys must be 32 bytes")
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: bytes, associated_data: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, plaintext, associated_data)

    def decrypt(self, ciphertext: bytes, associated_data: bytes) -> bytes:
        if len(ciphertext) < NONCE_SIZE + TAG_SIZE:
            raise tink.TinkError("ciphertext too short")
        nonce, body = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, body, associated_data)
        except InvalidTag as exc:
            raise tink.TinkError("decryption failed") from exc


class LocalKmsBackend(KmsBackend):
    def __init__(self, prefix: str = "local-kms://", key_dir: Optional[Path] = None) -> None:
        self.prefix = prefix.lower()
        self._key_dir = key_dir
        self._keys: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get_aead(self, key_uri: str, credentials_path: Optional[str] = None) -> aead.Aead:
        name = key_uri[len(self.prefix):]
        if not _KEY_NAME.match(name):
            raise KeyResolutionError(f"Malformed local key URI: {key_uri}")
        with self._lock:
            key = self._keys.get(name)
            if key is None:
                key = self._load_or_create(name)
                self._keys[name] = key
        return LocalAesGcmAead(key)

    def _load_or_create(self, name: str) -> bytes:
        if self._key_dir is None:
            return os.urandom(AES256_KEY_SIZE)
        key_path = self._key_dir / f"{name}.key"
        if key_path.exists():
            self._assert_permissions(key_path)
            try:
                key = base64.b64decode(key_path.read_bytes(), validate=True)
            except (OSError, binascii.Error) as exc:
                raise KeyResolutionError(f"Unreadable local master key {key_path}: {exc}") from exc
            if len(key) != AES256_KEY_SIZE:
                raise KeyResolutionError(f"Local master key {key_path} has the wrong length")
            return key

        key = os.urandom(AES256_KEY_SIZE)
        try:
            self._key_dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(base64.b64encode(key))
        except OSError as exc:
            raise KeyResolutionError(f"Cannot create local master key {key_path}: {exc}") from exc
        return key

    @staticmethod
    def _assert_permissions(key_path: Path) -> None:
        if os.name == "nt":
            return
        mode = stat.S_IMODE(key_path.stat().st_mode)
        if mode & 0o077:
            raise KeyResolutionError(f"Insecure permissions on {key_path}: expected 0o600, found {oct(mode)}")
