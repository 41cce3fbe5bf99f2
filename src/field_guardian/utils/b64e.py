
import base64

def b64e(data: bytes) -> str:
    """Standard padded base64 (RFC 4648), as accepted by SQL FROM_BASE64"""
    return base64.b64encode(data).decode("ascii")
