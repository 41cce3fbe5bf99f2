"""Encryption engines behind one encrypt/decrypt contract.

Two variants exist: :class:`SymmetricCipher` (AEAD, one keyset for both
directions) and :class:`HybridCipher` (encrypt with public key material,
decrypt with private key material). Callers obtain one via
:func:`create_engine`, which picks the variant from the keysets' declared
primitive kind, and then only use ``encrypt``/``decrypt``.

Engines hold Tink primitives only and never mutate after construction, so a
single instance may be shared between threads.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import structlog
import tink
from tink import aead, hybrid

from ..core.exceptions import AuthenticationError, CapabilityError
from ..models import ManagedKeyset, PrimitiveKind
from .templates import register_primitives

logger = structlog.get_logger(__name__)


@runtime_checkable
class EncryptionEngine(Protocol):
    can_encrypt: bool
    can_decrypt: bool

    def encrypt(self, plaintext: bytes, context: bytes = b"") -> bytes: ...

    def decrypt(self, ciphertext: bytes, context: bytes = b"") -> bytes: ...


def _primitive(keyset: ManagedKeyset, primitive_class):
    register_primitives()
    try:
        return keyset.handle.primitive(primitive_class)
    except tink.TinkError as exc:
        raise CapabilityError(
            f"{keyset.kind.value} keyset cannot provide {primitive_class.__name__}: {exc}"
        ) from exc


class SymmetricCipher:
    """AEAD over a single keyset; ciphertexts carry Tink's key-id prefix"""

    can_encrypt = True
    can_decrypt = True

    def __init__(self, keyset: ManagedKeyset) -> None:
        if keyset.kind is not PrimitiveKind.AEAD:
            raise CapabilityError(f"SymmetricCipher needs an AEAD keyset, got {keyset.kind.value}")
        self._aead: aead.Aead = _primitive(keyset, aead.Aead)
        self._primary_key_id = keyset.description.primary_key_id

    def encrypt(self, plaintext: bytes, context: bytes = b"") -> bytes:
        return self._aead.encrypt(plaintext, context)

    def decrypt(self, ciphertext: bytes, context: bytes = b"") -> bytes:
        try:
            return self._aead.decrypt(ciphertext, context)
        except tink.TinkError as exc:
            raise AuthenticationError("AEAD decryption failed") from exc

    def __repr__(self) -> str:
        return f"SymmetricCipher(primary_key_id={self._primary_key_id})"


class HybridCipher:
    """Public-key encryption; either half may be absent

    With only the private keyset the public half is derived from it, so a single
    process can both encrypt and decrypt (self-check). With only the public
    keyset the engine can encrypt but every decrypt raises CapabilityError.
    """

    def __init__(
        self,
        public: Optional[ManagedKeyset] = None,
        private: Optional[ManagedKeyset] = None,
    ) -> None:
        if public is None and private is None:
            raise CapabilityError("HybridCipher needs a public and/or private keyset")
        if public is not None and public.kind is not PrimitiveKind.HYBRID_PUBLIC:
            raise CapabilityError(f"Expected a hybrid public keyset, got {public.kind.value}")
        if private is not None and private.kind is not PrimitiveKind.HYBRID_PRIVATE:
            raise CapabilityError(f"Expected a hybrid private keyset, got {private.kind.value}")

        if public is None:
            public = private.public()
        elif private is not None:
            _check_same_pair(public, private)
        self._encrypter: hybrid.HybridEncrypt = _primitive(public, hybrid.HybridEncrypt)
        self._decrypter: Optional[hybrid.HybridDecrypt] = (
            _primitive(private, hybrid.HybridDecrypt) if private is not None else None
        )

    @property
    def can_encrypt(self) -> bool:
        return True

    @property
    def can_decrypt(self) -> bool:
        return self._decrypter is not None

    def encrypt(self, plaintext: bytes, context: bytes = b"") -> bytes:
        return self._encrypter.encrypt(plaintext, context)

    def decrypt(self, ciphertext: bytes, context: bytes = b"") -> bytes:
        if self._decrypter is None:
            raise CapabilityError("No private keyset loaded; this engine can only encrypt")
        try:
            return self._decrypter.decrypt(ciphertext, context)
        except tink.TinkError as exc:
            raise AuthenticationError("Hybrid decryption failed") from exc

    def __repr__(self) -> str:
        return f"HybridCipher(can_decrypt={self.can_decrypt})"


def _check_same_pair(public: ManagedKeyset, private: ManagedKeyset) -> None:
    expected = private.public().description
    given = public.description
    if (given.primary_key_id, given.key_ids) != (expected.primary_key_id, expected.key_ids):
        raise CapabilityError(
            f"Public keyset (primary {given.primary_key_id}) is not the public half of "
            f"the private keyset (primary {expected.primary_key_id})"
        )

def create_engine(*keysets: ManagedKeyset) -> EncryptionEngine:
    """Build the engine matching the keysets' declared primitive kind"""
    if not keysets:
        raise CapabilityError("No keyset given")
    by_kind: dict[PrimitiveKind, ManagedKeyset] = {}
    for keyset in keysets:
        if keyset.kind in by_kind:
            raise CapabilityError(f"More than one {keyset.kind.value} keyset given")
        by_kind[keyset.kind] = keyset

    if PrimitiveKind.AEAD in by_kind:
        if len(by_kind) > 1:
            raise CapabilityError("An AEAD keyset cannot be combined with hybrid keysets")
        engine: EncryptionEngine = SymmetricCipher(by_kind[PrimitiveKind.AEAD])
    else:
        engine = HybridCipher(
            public=by_kind.get(PrimitiveKind.HYBRID_PUBLIC),
            private=by_kind.get(PrimitiveKind.HYBRID_PRIVATE),
        )
    logger.info(
        "encryption engine constructed",
        variant=type(engine).__name__,
        can_decrypt=engine.can_decrypt,
    )
    return engine


__all__ = ["EncryptionEngine", "HybridCipher", "SymmetricCipher", "create_engine"]
