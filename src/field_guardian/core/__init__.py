"""Core building blocks shared across field_guardian."""
from .exceptions import (
    AuthenticationError,
    CapabilityError,
    ConfigError,
    DecodeError,
    FieldGuardianError,
    FieldNotFoundError,
    FormatError,
    KeyResolutionError,
    KeysetIOError,
    PolicyError,
    UnexpectedSecretMaterialError,
    UnwrapError,
)

__all__ = [
    "AuthenticationError",
    "CapabilityError",
    "ConfigError",
    "DecodeError",
    "FieldGuardianError",
    "FieldNotFoundError",
    "FormatError",
    "KeyResolutionError",
    "KeysetIOError",
    "PolicyError",
    "UnexpectedSecretMaterialError",
    "UnwrapError",
]
