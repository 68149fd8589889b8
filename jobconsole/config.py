"""
Configuration management for jobconsole.

Loads <home>/config.yaml, where home is $JOBCONSOLE_HOME or
~/.config/jobconsole. An optional env_file is loaded into the process
environment with python-dotenv.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from jobconsole.errors import ConfigError
from jobconsole.modules import DEFAULT_HANDLER


LOG_FORMATS = ("pretty", "structured")


def get_jobconsole_home() -> Path:
    """Return the configuration home directory."""
    env_home = os.environ.get("JOBCONSOLE_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path("~/.config/jobconsole").expanduser()


@dataclass
class ConsoleConfig:
    """
    jobconsole settings.

    Attributes:
        handler_module: Handler module name used for launched handler jobs
        catalog_path: Optional YAML module catalog; built-in catalog when unset
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "pretty" (rich console) or "structured" (JSON lines)
        log_file: Optional log file path
        env_file: Optional .env file loaded on startup
    """
    handler_module: str = DEFAULT_HANDLER
    catalog_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConsoleConfig":
        known = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in known})
        cfg.validate()
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}"
            )
        if not isinstance(self.log_level, str) or not self.log_level.strip():
            raise ConfigError("log_level must be a non-empty string")
        if not self.handler_module:
            raise ConfigError("handler_module is required")

    def get_catalog_path(self) -> Optional[Path]:
        return Path(self.catalog_path).expanduser() if self.catalog_path else None

    def get_log_file_path(self) -> Optional[Path]:
        return Path(self.log_file).expanduser() if self.log_file else None


def load_config(config_path: Optional[Path] = None) -> ConsoleConfig:
    """
    Load configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        ConsoleConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the file is not valid YAML or not a mapping
    """
    if config_path is None:
        config_path = get_jobconsole_home() / "config.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"jobconsole config.yaml not found at {config_path}. Run 'jobconsole init' to create one."
        )

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    config = ConsoleConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    return config
