# AWS KMS backend (aws-kms://arn:aws:kms:<region>:<account>:key/<id>).
from __future__ import annotations

from typing import Optional

import tink
from tink import aead

from ..core.exceptions import KeyResolutionError
from .base import KmsBackend


class AwsKmsBackend(KmsBackend):
    prefix = "aws-kms://"

    def get_aead(self, key_uri: str, credentials_path: Optional[str] = None) -> aead.Aead:
        arn = key_uri[len(self.prefix):]
        if not arn.startswith("arn:") or ":kms:" not in arn:
            raise KeyResolutionError(f"Malformed AWS KMS key URI: {key_uri}")
        try:
            from botocore import exceptions as boto_exceptions
            from tink.integration import awskms
        except ImportError as exc:
            raise KeyResolutionError(
                "AWS KMS support needs the optional dependencies: pip install 'field-guardian[aws]'"
            ) from exc

        try:
            client = awskms.AwsKmsClient(key_uri, credentials_path)
            return client.get_aead(key_uri)
        except (tink.TinkError, boto_exceptions.BotoCoreError, boto_exceptions.ClientError, ValueError, OSError) as exc:
            raise KeyResolutionError(f"Cannot obtain AWS KMS key {key_uri}: {exc}") from exc
