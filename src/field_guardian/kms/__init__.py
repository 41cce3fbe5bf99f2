"""Master key resolution over remote key managers."""
from .base import KmsBackend
from .local import LocalKmsBackend
from .provider import MasterKeyHandle, MasterKeyProvider, default_provider

__all__ = [
    "KmsBackend",
    "LocalKmsBackend",
    "MasterKeyHandle",
    "MasterKeyProvider",
    "default_provider",
]
