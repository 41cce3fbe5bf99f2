
from __future__ import annotations

from typing import Optional

from tink import aead


class KmsBackend:
    """A source of KMS-backed AEAD primitives for one family of key URIs

    Backends only hand out the remote primitive; the key itself never leaves
    the key manager. Subclasses set ``prefix`` and implement :meth:`get_aead`.
    """

    prefix: str = ""

    def does_support(self, key_uri: str) -> bool:
        return bool(self.prefix) and key_uri.lower().startswith(self.prefix)

    def get_aead(self, key_uri: str, credentials_path: Optional[str] = None) -> aead.Aead:
        """Return an AEAD whose encrypt/decrypt run inside the key manager"""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(prefix={self.prefix!r})"
