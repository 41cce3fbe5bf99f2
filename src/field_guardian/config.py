# Configuration for the application (cipher wiring, KMS backends, logging).

from .utils.config import (
    AppConfig,
    FieldCipherConfig,
    KeySourceConfig,
    KmsConfig,
    LoggingConfig,
    load_config,
    parse_config,
)

__all__ = [
    "AppConfig",
    "FieldCipherConfig",
    "KeySourceConfig",
    "KmsConfig",
    "LoggingConfig",
    "load_config",
    "parse_config",
]
