# Per-value field encryption with base64 transport encoding.
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..core.exceptions import AuthenticationError, CapabilityError, DecodeError, FieldNotFoundError
from ..crypto.engine import EncryptionEngine
from ..utils import b64d, b64e


class FieldCodec:
    """Encrypt and decrypt individual string fields.

    Ciphertexts are standard padded base64 so they fit text columns and SQL
    literals (``FROM_BASE64``). The same ``context`` must be used on both
    sides. With ``verify_roundtrip`` every encryption is decrypted again and
    compared, which needs an engine holding decryption material. ``fields`` is
    the default column list for the record helpers.
    """

    def __init__(
        self,
        engine: EncryptionEngine,
        context: bytes = b"",
        *,
        verify_roundtrip: bool = False,
        fields: Sequence[str] = (),
    ) -> None:
        if verify_roundtrip and not engine.can_decrypt:
            raise CapabilityError("verify_roundtrip needs an engine that can decrypt")
        self._engine = engine
        self._context = bytes(context)
        self._verify = verify_roundtrip
        self._fields = tuple(fields)

    @property
    def engine(self) -> EncryptionEngine:
        return self._engine

    @property
    def context(self) -> bytes:
        return self._context

    @property
    def fields(self) -> tuple[str, ...]:
        return self._fields

    def encrypt_field(self, plain: str) -> str:
        plaintext = plain.encode("utf-8")
        ciphertext = self._engine.encrypt(plaintext, self._context)
        if self._verify and self._engine.decrypt(ciphertext, self._context) != plaintext:
            raise AuthenticationError("Round-trip check failed for encrypted field")
        return b64e(ciphertext)

    def decrypt_field(self, encoded: str) -> str:
        ciphertext = b64d(encoded)
        plaintext = self._engine.decrypt(ciphertext, self._context)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("Decrypted field is not valid UTF-8") from exc

    def encrypt_record(self, record: Mapping[str, str], fields: Optional[Iterable[str]] = None) -> dict[str, str]:
        """Copy of ``record`` with the named fields, or ``fields`` given at construction, encrypted"""
        return self._transform(record, fields, self.encrypt_field)

    def decrypt_record(self, record: Mapping[str, str], fields: Optional[Iterable[str]] = None) -> dict[str, str]:
        return self._transform(record, fields, self.decrypt_field)

    def _transform(self, record, fields, func) -> dict[str, str]:
        out = dict(record)
        for name in self._fields if fields is None else fields:
            if name not in out:
                raise FieldNotFoundError(f"Record has no field {name!r}")
            out[name] = func(out[name])
        return out
