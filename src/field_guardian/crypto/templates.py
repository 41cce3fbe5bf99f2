from __future__ import annotations

import functools
from typing import Literal

import tink
from tink import aead, hybrid
from tink.proto import tink_pb2

from ..core.exceptions import ConfigError
from ..models import ManagedKeyset

DEFAULT_AEAD_TEMPLATE = "AES256_GCM"
DEFAULT_HYBRID_TEMPLATE = "ECIES_P256_HKDF_HMAC_SHA256_AES128_GCM"


@functools.cache
def register_primitives() -> None:
    """Register the Tink key managers for AEAD and hybrid encryption once per process"""
    aead.register()
    hybrid.register()


def template_for(family: Literal["aead", "hybrid"], name: str) -> tink_pb2.KeyTemplate:
    """Look up a Tink key template by its published name, e.g. ``AES256_GCM``"""
    module = {"aead": aead.aead_key_templates, "hybrid": hybrid.hybrid_key_templates}.get(family)
    if module is None:
        raise ConfigError(f"Unknown primitive family: {family}")
    template = getattr(module, name.upper(), None)
    if not isinstance(template, tink_pb2.KeyTemplate):
        raise ConfigError(f"Unknown {family} key template: {name}")
    return template


def new_aead_keyset(template: str = DEFAULT_AEAD_TEMPLATE) -> ManagedKeyset:
    register_primitives()
    return ManagedKeyset.from_handle(tink.new_keyset_handle(template_for("aead", template)))


def new_hybrid_keyset(template: str = DEFAULT_HYBRID_TEMPLATE) -> ManagedKeyset:
    """Create a hybrid private keyset; call ``.public()`` for the encrypting half"""
    register_primitives()
    return ManagedKeyset.from_handle(tink.new_keyset_handle(template_for("hybrid", template)))
