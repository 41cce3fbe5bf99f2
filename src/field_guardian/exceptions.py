
from .core.exceptions import (
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


__all__ = [
  "AuthenticationError",
  "CapabilityError",
  "DecodeError",
  "FieldGuardianError",
  "FormatError",
  "KeyResolutionError",
  "KeysetIOError",
  "UnexpectedSecretMaterialError",
  "UnwrapError",
]
