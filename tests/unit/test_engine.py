import pytest

from field_guardian.core.exceptions import AuthenticationError, CapabilityError, ConfigError
from field_guardian.crypto import (
    EncryptionEngine,
    HybridCipher,
    SymmetricCipher,
    create_engine,
    new_aead_keyset,
    new_hybrid_keyset,
    template_for,
)

CARD = b"4111111111111111"


def _flip(ciphertext: bytes, index: int = -1) -> bytes:
    tampered = bytearray(ciphertext)
    tampered[index] ^= 0x01
    return bytes(tampered)


def test_create_engine_picks_variant_from_keyset_kind(aead_keyset, hybrid_keyset):
    assert isinstance(create_engine(aead_keyset), SymmetricCipher)
    assert isinstance(create_engine(hybrid_keyset), HybridCipher)
    assert isinstance(create_engine(hybrid_keyset.public()), HybridCipher)
    assert isinstance(create_engine(aead_keyset), EncryptionEngine)


@pytest.mark.parametrize("context", [b"", b"payments/cards"])
def test_symmetric_round_trip(aead_keyset, context):
    engine = create_engine(aead_keyset)
    ciphertext = engine.encrypt(CARD, context)
    assert ciphertext != CARD
    assert engine.decrypt(ciphertext, context) == CARD


@pytest.mark.parametrize("context", [b"", b"payments/cards"])
def test_hybrid_round_trip(hybrid_keyset, context):
    encrypter = create_engine(hybrid_keyset.public())
    decrypter = create_engine(hybrid_keyset)
    assert decrypter.decrypt(encrypter.encrypt(CARD, context), context) == CARD


def test_encryption_is_randomized(aead_keyset):
    engine = create_engine(aead_keyset)
    assert engine.encrypt(CARD) != engine.encrypt(CARD)


def test_context_binding(aead_keyset, hybrid_keyset):
    for engine in (create_engine(aead_keyset), create_engine(hybrid_keyset)):
        ciphertext = engine.encrypt(CARD, b"table=payments")
        with pytest.raises(AuthenticationError):
            engine.decrypt(ciphertext, b"table=refunds")


@pytest.mark.parametrize("index", [0, 10, -1])
def test_tampered_ciphertext_is_rejected(aead_keyset, hybrid_keyset, index):
    for engine in (create_engine(aead_keyset), create_engine(hybrid_keyset)):
        ciphertext = engine.encrypt(CARD)
        with pytest.raises(AuthenticationError):
            engine.decrypt(_flip(ciphertext, index))


def test_ciphertext_from_other_keyset_is_rejected(aead_keyset):
    ciphertext = create_engine(aead_keyset).encrypt(CARD)
    with pytest.raises(AuthenticationError):
        create_engine(new_aead_keyset()).decrypt(ciphertext)


def test_public_only_engine_cannot_decrypt(hybrid_keyset):
    engine = create_engine(hybrid_keyset.public())
    assert engine.can_encrypt
    assert not engine.can_decrypt
    ciphertext = engine.encrypt(CARD)
    with pytest.raises(CapabilityError) as excinfo:
        engine.decrypt(ciphertext)
    assert not isinstance(excinfo.value, AuthenticationError)


def test_private_engine_derives_public_half(hybrid_keyset):
    engine = HybridCipher(private=hybrid_keyset)
    assert engine.can_decrypt
    assert engine.decrypt(engine.encrypt(CARD)) == CARD


def test_public_and_private_halves_must_match(hybrid_keyset):
    paired = create_engine(hybrid_keyset.public(), hybrid_keyset)
    assert paired.decrypt(paired.encrypt(CARD)) == CARD

    stranger = new_hybrid_keyset().public()
    with pytest.raises(CapabilityError):
        create_engine(stranger, hybrid_keyset)
    with pytest.raises(CapabilityError):
        HybridCipher(public=stranger, private=hybrid_keyset)


def test_create_engine_rejects_mixed_or_duplicate_kinds(aead_keyset, hybrid_keyset):
    with pytest.raises(CapabilityError):
        create_engine()
    with pytest.raises(CapabilityError):
        create_engine(aead_keyset, hybrid_keyset)
    with pytest.raises(CapabilityError):
        create_engine(aead_keyset, new_aead_keyset())


def test_variants_reject_wrong_keyset_kind(aead_keyset, hybrid_keyset):
    with pytest.raises(CapabilityError):
        SymmetricCipher(hybrid_keyset)
    with pytest.raises(CapabilityError):
        HybridCipher(public=hybrid_keyset)
    with pytest.raises(CapabilityError):
        HybridCipher(private=aead_keyset)
    with pytest.raises(CapabilityError):
        HybridCipher()


def test_template_lookup():
    assert template_for("aead", "aes128_gcm").type_url.endswith("AesGcmKey")
    with pytest.raises(ConfigError):
        template_for("aead", "NOT_A_TEMPLATE")
    with pytest.raises(ConfigError):
        template_for("signature", "ED25519")
