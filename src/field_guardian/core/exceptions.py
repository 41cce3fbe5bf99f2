"""Central exception hierarchy"""
from __future__ import annotations


class FieldGuardianError(Exception):
    """Base exception for all failures"""


class KeyResolutionError(FieldGuardianError):
    """Raised when a KMS key URI cannot be resolved to a usable master key"""


class UnwrapError(FieldGuardianError):
    """Raised when a wrapped keyset was not produced by the given master key or is corrupted"""


class FormatError(FieldGuardianError):
    """Raised for malformed keyset byte streams or documents"""


class UnexpectedSecretMaterialError(FieldGuardianError):
    """Raised when secret key material shows up where only public material is allowed"""


class KeysetIOError(FieldGuardianError, OSError):
    """Raised when a keyset source cannot be read or a sink cannot be written"""


class AuthenticationError(FieldGuardianError):
    """Raised when ciphertext authentication fails (tamper, wrong key or context)"""


class DecodeError(FieldGuardianError):
    """Raised when a field value is not valid base64 or not valid UTF-8"""


class CapabilityError(FieldGuardianError):
    """Raised when an engine lacks the key material for the requested operation"""


class PolicyError(FieldGuardianError):
    """Raised when key protection policy denies an operation"""


class ConfigError(FieldGuardianError):
    """Raised for invalid or incomplete configuration"""


class FieldNotFoundError(FieldGuardianError, KeyError):
    """Raised when a record lacks a field selected for encryption"""

    def __str__(self) -> str:
        return Exception.__str__(self)
