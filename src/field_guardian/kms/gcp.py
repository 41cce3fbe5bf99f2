# Google Cloud KMS backend (gcp-kms://projects/<p>/locations/<l>/keyRings/<r>/cryptoKeys/<k>).
from __future__ import annotations

import re
from typing import Optional

import tink
from tink import aead

from ..core.exceptions import KeyResolutionError
from .base import KmsBackend

_KEY_NAME = re.compile(r"^projects/[^/]+/locations/[^/]+/keyRings/[^/]+/cryptoKeys/[^/]+$")


class GcpKmsBackend(KmsBackend):
    prefix = "gcp-kms://"

    def get_aead(self, key_uri: str, credentials_path: Optional[str] = None) -> aead.Aead:
        key_name = key_uri[len(self.prefix):]
        if not _KEY_NAME.match(key_name):
            raise KeyResolutionError(f"Malformed Cloud KMS key URI: {key_uri}")
        try:
            from google.auth import exceptions as auth_exceptions
            from tink.integration import gcpkms
        except ImportError as exc:
            raise KeyResolutionError(
                "Cloud KMS support needs the optional dependencies: pip install 'field-guardian[gcp]'"
            ) from exc

        try:
            client = gcpkms.GcpKmsClient(key_uri, credentials_path)
            return client.get_aead(key_uri)
        except (tink.TinkError, auth_exceptions.GoogleAuthError, ValueError, OSError) as exc:
            raise KeyResolutionError(f"Cannot obtain Cloud KMS key {key_uri}: {exc}") from exc
