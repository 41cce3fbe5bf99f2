from __future__ import annotations

import pytest

from field_guardian.crypto import new_aead_keyset, new_hybrid_keyset
from field_guardian.kms import LocalKmsBackend, MasterKeyHandle, MasterKeyProvider
from field_guardian.models import ManagedKeyset
from field_guardian.storage import KeysetStore

TEST_KEY_URI = "kms://test-key"


@pytest.fixture
def provider() -> MasterKeyProvider:
    """Provider resolving ``kms://`` and ``local-kms://`` URIs to in-memory keys"""
    return MasterKeyProvider([LocalKmsBackend(prefix="kms://"), LocalKmsBackend()])


@pytest.fixture
def master_key(provider: MasterKeyProvider) -> MasterKeyHandle:
    return provider.resolve(TEST_KEY_URI)


@pytest.fixture
def other_master_key(provider: MasterKeyProvider) -> MasterKeyHandle:
    return provider.resolve("kms://other-key")


@pytest.fixture
def store() -> KeysetStore:
    return KeysetStore()


@pytest.fixture
def aead_keyset() -> ManagedKeyset:
    return new_aead_keyset()


@pytest.fixture
def hybrid_keyset() -> ManagedKeyset:
    return new_hybrid_keyset()
