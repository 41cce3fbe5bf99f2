from pathlib import Path

import pytest

from field_guardian.config import load_config, parse_config
from field_guardian.core.exceptions import ConfigError
from field_guardian.models import CipherMode, KeysetFormat, Protection

_SYMMETRIC = {
    "cipher": {
        "mode": "symmetric",
        "private_key_source": {"path": "keys/dek.bin"},
        "master_key_uri": "gcp-kms://projects/p/locations/global/keyRings/r/cryptoKeys/k",
    }
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("FG_CONFIG", "FG_MASTER_KEY_URI", "FG_CREDENTIALS_PATH", "FG_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = parse_config({})
    assert config.cipher is None
    assert config.kms.backends == []
    assert config.logging.normalized_level() == "INFO"


def test_symmetric_cipher_section():
    cipher = parse_config(_SYMMETRIC).cipher
    assert cipher.mode is CipherMode.SYMMETRIC
    assert cipher.private_key_source.format is KeysetFormat.BINARY
    assert cipher.private_key_source.protection is Protection.WRAPPED
    assert cipher.fields == ["Card Number"]
    assert cipher.context_bytes() == b""
    assert list(cipher.sources()) == [cipher.private_key_source]


@pytest.mark.parametrize(
    "cipher",
    [
        {"mode": "symmetric"},
        {"mode": "symmetric", "private_key_source": {"path": "a"}, "public_key_source": {"path": "b"},
         "master_key_uri": "kms://k"},
        {"mode": "hybrid"},
        {"mode": "symmetric", "private_key_source": {"path": "a"}},
        {"mode": "symmetric", "private_key_source": {"path": "a"}, "master_key_uri": "no-scheme"},
        {"mode": "hybrid", "private_key_source": {"path": "a", "protection": "no-secrets"}},
        {"mode": "stream", "private_key_source": {"path": "a"}, "master_key_uri": "kms://k"},
    ],
)
def test_invalid_cipher_sections(cipher):
    with pytest.raises(ConfigError):
        parse_config({"cipher": cipher})


def test_hybrid_public_only_needs_no_master_key():
    cipher = parse_config(
        {"cipher": {"mode": "hybrid", "public_key_source": {"path": "pub.json", "format": "json",
                                                            "protection": "no-secrets"}}}
    ).cipher
    assert cipher.master_key_uri is None
    assert cipher.public_key_source.format is KeysetFormat.JSON


def test_environment_overrides(monkeypatch, tmp_path: Path):
    credentials = tmp_path / "sa.json"
    monkeypatch.setenv("FG_MASTER_KEY_URI", "kms://from-env")
    monkeypatch.setenv("FG_CREDENTIALS_PATH", str(credentials))
    monkeypatch.setenv("FG_LOG_LEVEL", "debug")
    config = parse_config(_SYMMETRIC)
    assert config.cipher.master_key_uri == "kms://from-env"
    assert config.cipher.credentials_locator == credentials
    assert config.logging.normalized_level() == "DEBUG"


def test_load_config_from_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "cipher:\n"
        "  mode: hybrid\n"
        "  private_key_source:\n"
        "    path: keys/private.json\n"
        "    format: json\n"
        "  master_key_uri: local-kms://dev\n"
        "  context: payments\n"
        "  verify_roundtrip: true\n"
        "kms:\n"
        f"  local_key_dir: {tmp_path / 'keys'}\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.cipher.mode is CipherMode.HYBRID
    assert config.cipher.context_bytes() == b"payments"
    assert config.cipher.verify_roundtrip
    assert config.kms.local_key_dir == tmp_path / "keys"


def test_load_config_via_environment_path(monkeypatch, tmp_path: Path):
    path = tmp_path / "elsewhere.yaml"
    path.write_text("logging:\n  level: warning\n", encoding="utf-8")
    monkeypatch.setenv("FG_CONFIG", str(path))
    assert load_config().logging.normalized_level() == "WARNING"


@pytest.mark.parametrize("content", ["cipher: [unclosed", "- just\n- a list\n"])
def test_load_config_rejects_bad_documents(tmp_path: Path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_load_config_missing_explicit_path(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_backend_references_must_name_a_class():
    with pytest.raises(ConfigError):
        parse_config({"kms": {"backends": ["just_a_module"]}})
