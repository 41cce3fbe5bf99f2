from .field_cipher import new_field_cipher
from .field_codec import FieldCodec
from .key_manager import KeyManager

__all__ = ["FieldCodec", "KeyManager", "new_field_cipher"]
