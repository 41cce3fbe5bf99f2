from .engine import EncryptionEngine, HybridCipher, SymmetricCipher, create_engine
from .templates import new_aead_keyset, new_hybrid_keyset, register_primitives, template_for

__all__ = [
    "EncryptionEngine",
    "HybridCipher",
    "SymmetricCipher",
    "create_engine",
    "new_aead_keyset",
    "new_hybrid_keyset",
    "register_primitives",
    "template_for",
]
