import base64
import binascii

from ..core.exceptions import DecodeError


def b64d(value: str) -> bytes:
    """Strict standard base64 decode; only the canonical padded encoding is accepted"""
    try:
        raw = value.encode("ascii")
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecodeError("Value is not valid base64") from exc
    # b64decode tolerates surplus '=' and stray trailing bits
    if base64.b64encode(decoded) != raw:
        raise DecodeError("Value is not canonical base64")
    return decoded
