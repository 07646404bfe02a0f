# SPDX-License-Identifier: Apache-2.0
"""
Configuration settings for the inspection server.

Values are merged once at startup, lowest priority first: field defaults,
the TOML config file, environment variables, command-line flags.
"""

import os
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_BODY_LIMIT = 1024 * 1024

# Environment variable -> Settings field
ENV_VARS = {
    "BIND_ADDR": "bind_addr",
    "WEB_ROOT": "web_root",
    "LOG_LEVEL": "log_level",
    "LOG_DIR": "log_dir",
    "BODY_LIMIT": "body_limit",
    "FALLBACK_FILE": "fallback_file",
    "CONFINE_TO_ROOT": "confine_to_root",
    "RECORD_SINK": "record_sink",
}

RECORD_SINKS = ("stdout", "log")


def get_config_dir() -> Path:
    """Get config directory.

    Returns:
        Path to the config directory (~/.server-log)
    """
    return Path.home() / ".server-log"


def get_config_file() -> Path:
    """Get config file path.

    Returns:
        Path to the config file (~/.server-log/config.toml)
    """
    return get_config_dir() / "config.toml"


DEFAULT_CONFIG = f"""# server-log configuration file
# Environment variables and command-line flags override these values.

# Server
bind_addr = "0.0.0.0:5000"

# Directory served for GET/HEAD/OPTIONS requests
web_root = "."
# Document tried when a path has no matching file (empty disables)
fallback_file = ""
# Refuse paths that escape web_root
confine_to_root = true

# Largest accepted request body, in bytes
body_limit = {DEFAULT_BODY_LIMIT}

# Where request records go: "stdout" or "log"
record_sink = "stdout"

# Logging
log_level = "INFO"
log_dir = ""  # Empty uses platform-specific default
"""


def create_default_config(config_file: Optional[Path] = None) -> bool:
    """Create default config file if not exists.

    Returns:
        True if a new config file was created, False if it already exists
    """
    config_file = config_file or get_config_file()
    if config_file.exists():
        return False

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(DEFAULT_CONFIG, encoding="utf-8")
    return True


def load_config_from_file(config_file: Optional[Path] = None) -> dict:
    """Load configuration from TOML file.

    Returns:
        Dictionary containing configuration values, empty dict if file doesn't exist
    """
    if sys.version_info >= (3, 11):
        import tomllib
    else:
        import tomli as tomllib

    config_file = config_file or get_config_file()
    if not config_file.exists():
        return {}
    with open(config_file, "rb") as f:
        return tomllib.load(f)


def load_env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Collect settings from environment variables that are set."""
    environ = os.environ if environ is None else environ
    return {field: environ[name] for name, field in ENV_VARS.items() if name in environ}


def split_bind_addr(bind_addr: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6-host]:port``) into its parts."""
    host, sep, port = bind_addr.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"bind address must look like host:port, got {bind_addr!r}")
    port_number = int(port)
    if port_number > 65535:
        raise ValueError(f"port out of range: {port_number}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port_number


class Settings(BaseModel):
    """Application settings."""

    model_config = ConfigDict(extra="ignore")

    # Server Configuration
    bind_addr: str = "0.0.0.0:5000"

    # Static files
    web_root: str = "."
    fallback_file: Optional[str] = None
    confine_to_root: bool = True

    # Request capture
    body_limit: int = DEFAULT_BODY_LIMIT
    record_sink: str = "stdout"

    # CORS settings
    cors_origins: list[str] = ["*"]
    cors_credentials: bool = False
    cors_methods: list[str] = ["*"]
    cors_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # Empty means use platform-specific default

    @field_validator("bind_addr")
    @classmethod
    def _check_bind_addr(cls, value: str) -> str:
        split_bind_addr(value)
        return value.strip()

    @field_validator("body_limit")
    @classmethod
    def _check_body_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("body_limit must be a positive number of bytes")
        return value

    @field_validator("record_sink")
    @classmethod
    def _check_record_sink(cls, value: str) -> str:
        value = value.lower()
        if value not in RECORD_SINKS:
            raise ValueError(f"record_sink must be one of {', '.join(RECORD_SINKS)}")
        return value

    @field_validator("fallback_file")
    @classmethod
    def _empty_fallback_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def host(self) -> str:
        return split_bind_addr(self.bind_addr)[0]

    @property
    def port(self) -> int:
        return split_bind_addr(self.bind_addr)[1]

    @property
    def static_root(self) -> Path:
        return Path(self.web_root).expanduser()


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build the settings used for the lifetime of the process.

    Args:
        overrides: Values from the command line; ``None`` entries are ignored
        config_file: TOML file to read instead of the default location
        environ: Environment to read instead of ``os.environ``

    Returns:
        Settings instance
    """
    values: dict[str, Any] = {}
    values.update(load_config_from_file(config_file))
    values.update(load_env_overrides(environ))
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
