"""Envelope encryption of individual record fields with KMS-wrapped Tink keysets."""

from .exceptions import (
  AuthenticationError,
  CapabilityError,
  DecodeError,
  FieldGuardianError,
  FormatError,
  KeyResolutionError,
  KeysetIOError,
  UnexpectedSecretMaterialError,
  UnwrapError,
)
from .services import FieldCodec, KeyManager, new_field_cipher
from .version import __version__

__all__ = [
  "AuthenticationError",
  "CapabilityError",
  "DecodeError",
  "FieldCodec",
  "FieldGuardianError",
  "FormatError",
  "KeyManager",
  "KeyResolutionError",
  "KeysetIOError",
  "UnexpectedSecretMaterialError",
  "UnwrapError",
  "__version__",
  "new_field_cipher",
]
