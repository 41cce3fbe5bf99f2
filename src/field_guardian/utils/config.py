# Application configuration: YAML file, environment overrides, pydantic validation.
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..core.exceptions import ConfigError
from ..models import CipherMode, KeysetFormat, Protection
from ..paths import runtime_config_dir

_CONFIG_ENV = "FG_CONFIG"
_KEY_URI_ENV = "FG_MASTER_KEY_URI"
_CREDENTIALS_ENV = "FG_CREDENTIALS_PATH"
_LOG_LEVEL_ENV = "FG_LOG_LEVEL"


class KeySourceConfig(BaseModel):
    """Location and at-rest representation of one keyset file"""

    path: Path
    format: KeysetFormat = KeysetFormat.BINARY
    protection: Protection = Protection.WRAPPED


class FieldCipherConfig(BaseModel):
    mode: CipherMode = CipherMode.SYMMETRIC
    public_key_source: Optional[KeySourceConfig] = None
    private_key_source: Optional[KeySourceConfig] = None
    master_key_uri: Optional[str] = None
    credentials_locator: Optional[Path] = None
    context: str = Field(default="", description="Associated data bound to every field")
    fields: List[str] = Field(default_factory=lambda: ["Card Number"])
    verify_roundtrip: bool = False
    allow_cleartext: bool = Field(
        default=False,
        description="Permit cleartext keysets; for ephemeral test material only",
    )

    @field_validator("master_key_uri")
    @classmethod
    def _validate_key_uri(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if "://" not in value:
            raise ValueError(f"Key URI must carry a scheme prefix: {value!r}")
        return value

    @model_validator(mode="after")
    def _check_sources(self) -> "FieldCipherConfig":
        if self.mode is CipherMode.SYMMETRIC:
            if self.private_key_source is None:
                raise ValueError("symmetric mode reads its keyset from private_key_source")
            if self.public_key_source is not None:
                raise ValueError("symmetric mode takes no public_key_source")
        elif self.public_key_source is None and self.private_key_source is None:
            raise ValueError("hybrid mode needs a public and/or private key source")

        wrapped = [src for src in self.sources() if src.protection is Protection.WRAPPED]
        if wrapped and not self.master_key_uri:
            raise ValueError("wrapped key sources require master_key_uri")
        if self.private_key_source is not None and self.private_key_source.protection is Protection.NO_SECRETS:
            raise ValueError("private_key_source cannot be a no-secrets keyset")
        return self

    def sources(self) -> Iterable[KeySourceConfig]:
        for source in (self.public_key_source, self.private_key_source):
            if source is not None:
                yield source

    def context_bytes(self) -> bytes:
        return self.context.encode("utf-8")


class KmsConfig(BaseModel):
    local_key_dir: Optional[Path] = Field(default=None, description="Key directory for local-kms:// URIs")
    backends: List[str] = Field(default_factory=list, description="Extra backends as module:Class")

    @field_validator("backends")
    @classmethod
    def _validate_backends(cls, value: List[str]) -> List[str]:
        for entry in value:
            module, _, name = entry.partition(":")
            if not module or not name:
                raise ValueError(f"Backend must be given as module:Class, got {entry!r}")
        return value


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class AppConfig(BaseModel):
    cipher: Optional[FieldCipherConfig] = None
    kms: KmsConfig = Field(default_factory=KmsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    env_path = os.getenv(_CONFIG_ENV)
    if env_path:
        yield Path(env_path).expanduser()
    yield Path.cwd() / ".field_guardian" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def _apply_env_overrides(data: dict) -> dict:
    key_uri = os.getenv(_KEY_URI_ENV)
    credentials = os.getenv(_CREDENTIALS_ENV)
    if (key_uri or credentials) and isinstance(data.get("cipher"), dict):
        cipher = dict(data["cipher"])
        if key_uri:
            cipher["master_key_uri"] = key_uri
        if credentials:
            cipher["credentials_locator"] = credentials
        data["cipher"] = cipher
    level = os.getenv(_LOG_LEVEL_ENV)
    if level:
        data["logging"] = {**(data.get("logging") or {}), "level": level}
    return data


def parse_config(data: dict, *, origin: str = "<memory>") -> AppConfig:
    try:
        return AppConfig.model_validate(_apply_env_overrides(dict(data)))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {origin}: {exc}") from exc


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            try:
                with candidate.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {candidate}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration in {candidate} must be a mapping")
            return parse_config(data, origin=str(candidate))
    return parse_config({}, origin="<defaults>")


__all__ = [
    "AppConfig",
    "FieldCipherConfig",
    "KeySourceConfig",
    "KmsConfig",
    "LoggingConfig",
    "config_search_paths",
    "load_config",
    "parse_config",
]
