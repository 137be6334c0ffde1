#!/usr/bin/env python3
"""
Console configuration loaded from YAML, the environment and CLI flags.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from virtconsole.errors import ConfigError

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "virtconsole" / "config.yaml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "virtconsole"


class ConsoleConfig(BaseModel):
    """Settings for one console session."""

    uri: str = Field(default="qemu:///system", description="libvirt connection URI")
    datacenter: Optional[str] = Field(
        default=None, description="Inventory label; derived from the URI when unset"
    )
    root_label: str = Field(default="Virtual Machines", description="Text of the tree root")
    template_prefix: str = Field(
        default="template-", description="Domains named with this prefix are templates"
    )
    boot_revert_delay: float = Field(
        default=3.0, gt=0, description="Seconds before a network boot override is reverted"
    )
    deployments_dir: Path = Field(default=DEFAULT_DATA_DIR / "deployments")
    storage_dir: Path = Field(default=Path("/var/lib/libvirt/images"))
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)
    log_json: bool = Field(default=False)

    @field_validator("uri")
    @classmethod
    def uri_must_be_set(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("uri cannot be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_valid(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {sorted(valid_levels)}")
        return v.upper()

    @field_validator("deployments_dir", "storage_dir", "log_file")
    @classmethod
    def expand_home(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser() if v is not None else v

    @property
    def datacenter_name(self) -> str:
        """Name shown for the inventory; falls back to the URI host."""
        if self.datacenter:
            return self.datacenter
        parsed = urlparse(self.uri)
        return parsed.hostname or "localhost"

    @classmethod
    def load(cls, path: Optional[Path] = None, **overrides: Any) -> "ConsoleConfig":
        """Load configuration from YAML, then apply non-None overrides.

        A missing default config file is not an error; a missing explicit
        path is.
        """
        data: Dict[str, Any] = {}
        config_file = path or DEFAULT_CONFIG_FILE

        if config_file.exists():
            try:
                raw = yaml.safe_load(config_file.read_text()) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Failed to parse {config_file}: {e}") from e
            if not isinstance(raw, dict):
                raise ConfigError(f"Config file must be a YAML mapping: {config_file}")
            data.update(expand_env_vars(raw, dict(os.environ)))
        elif path is not None:
            raise ConfigError(f"Config file not found: {config_file}")

        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        config_dict = self.model_dump(mode="json", exclude_none=True)
        path.write_text(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))


def expand_env_vars(value, env_vars: dict):
    """Expand ``${VAR_NAME}`` placeholders in string values."""
    if isinstance(value, str):

        def replacer(match):
            return env_vars.get(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replacer, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v, env_vars) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item, env_vars) for item in value]
    return value
