from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

pytest.importorskip("typer")


def _run_cli(*args: str, check: bool = True) -> subprocess.CompletedProcess[bytes]:
    command = [sys.executable, "-m", "field_guardian.cli", *args]
    env = os.environ.copy()
    for name in ("FG_CONFIG", "FG_MASTER_KEY_URI", "FG_CREDENTIALS_PATH", "FG_LOG_LEVEL"):
        env.pop(name, None)
    module_root = Path(__file__).resolve().parents[1] / "src"
    env["PYTHONPATH"] = (
        f"{module_root}{os.pathsep}{env['PYTHONPATH']}"
        if env.get("PYTHONPATH")
        else str(module_root)
    )
    return subprocess.run(
        command,
        check=check,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env,
    )


def _write_config(path: Path, key_dir: Path, cipher: str = "") -> Path:
    path.write_text(f"kms:\n  local_key_dir: {key_dir}\n{cipher}", encoding="utf-8")
    return path


def test_cli_reports_version() -> None:
    result = _run_cli("--version")
    assert result.stdout.decode("utf-8").strip() == "field-guardian 0.3.0"


def test_cli_symmetric_field_round_trip(tmp_path: Path) -> None:
    key_dir = tmp_path / "kms"
    keyset = tmp_path / "dek.bin"
    base = _write_config(tmp_path / "base.yaml", key_dir)
    _run_cli("--config", str(base), "keygen-aead", "-o", str(keyset), "--key-uri", "local-kms://cli")

    config = _write_config(
        tmp_path / "cipher.yaml",
        key_dir,
        "cipher:\n"
        "  mode: symmetric\n"
        f"  private_key_source:\n    path: {keyset}\n"
        "  master_key_uri: local-kms://cli\n"
        "  verify_roundtrip: true\n",
    )
    encrypted = _run_cli("--config", str(config), "encrypt-field", "4111111111111111")
    encoded = encrypted.stdout.decode("utf-8").strip()
    assert encoded and encoded != "4111111111111111"

    decrypted = _run_cli("--config", str(config), "decrypt-field", encoded)
    assert decrypted.stdout.decode("utf-8").strip() == "4111111111111111"


def test_cli_hybrid_keygen_and_inspect(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "config.yaml", tmp_path / "kms")
    private, public = tmp_path / "private.json", tmp_path / "public.json"
    _run_cli(
        "--config", str(config), "keygen-hybrid",
        "--private-out", str(private), "--public-out", str(public),
        "--format", "json", "--key-uri", "local-kms://cli",
    )

    result = _run_cli("--config", str(config), "inspect", "-i", str(private), "--format", "json")
    payload = json.loads(result.stdout.decode("utf-8"))
    assert payload["kind"] == "hybrid-private"
    assert payload["primary_key_id"] in payload["key_ids"]

    result = _run_cli(
        "--config", str(config), "inspect", "-i", str(public), "--format", "json", "--protection", "no-secrets"
    )
    assert json.loads(result.stdout.decode("utf-8"))["kind"] == "hybrid-public"


def test_cli_reports_error_kind_and_exits_non_zero(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "config.yaml", tmp_path / "kms")
    keyset = tmp_path / "dek.bin"
    _run_cli("--config", str(config), "keygen-aead", "-o", str(keyset), "--key-uri", "local-kms://first")

    result = _run_cli(
        "--config", str(config), "rewrap", "-i", str(keyset),
        "--key-uri", "local-kms://second", "--new-key-uri", "local-kms://third",
        check=False,
    )
    assert result.returncode == 1
    assert b"UnwrapError" in result.stderr

    result = _run_cli("--config", str(config), "encrypt-field", "4111111111111111", check=False)
    assert result.returncode == 1
    assert b"ConfigError" in result.stderr


def test_cli_binary_inspect_and_sql_export(tmp_path: Path) -> None:
    config = _write_config(tmp_path / "config.yaml", tmp_path / "kms")
    keyset, sql_keyset = tmp_path / "dek.bin", tmp_path / "dek.sql.bin"
    _run_cli("--config", str(config), "keygen-aead", "-o", str(keyset), "--key-uri", "local-kms://cli")

    result = _run_cli("--config", str(config), "inspect", "-i", str(keyset))
    assert json.loads(result.stdout.decode("utf-8"))["kind"] == "aead"

    _run_cli(
        "--config", str(config), "export-sql-keyset",
        "-i", str(keyset), "-o", str(sql_keyset), "--key-uri", "local-kms://cli",
    )
    wrapped, envelope = sql_keyset.read_bytes(), keyset.read_bytes()
    assert wrapped and wrapped != envelope


def test_cli_config_errors_are_logged_as_json(tmp_path: Path) -> None:
    result = _run_cli("--config", str(tmp_path / "missing.yaml"), "version", check=False)
    assert result.returncode == 1
    assert result.stdout == b""
    lines = result.stderr.decode("utf-8").strip().splitlines()
    record = json.loads(lines[0])
    assert record["msg"] == "command failed"
    assert record["error"] == "ConfigError"
    assert lines[-1].startswith("ConfigError:")
