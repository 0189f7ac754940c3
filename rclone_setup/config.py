"""Configuration management for rclone-setup."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError

from .errors import ConfigFileError

DEFAULTS: Dict[str, Any] = {
    "source": "/path/to/backup/source",
    "remote": "minio",
    "bucket": "backup-bucket",
    "endpoint": "http://minio.local:9000",
    "cron": "0 * * * *",
}

# Environment variables that override the built-in defaults and the config file.
ENV_VARS: Dict[str, str] = {
    "source": "BACKUP_SOURCE",
    "remote": "RCLONE_REMOTE",
    "bucket": "REMOTE_BUCKET",
    "endpoint": "MINIO_ENDPOINT",
    "access_key": "MINIO_ACCESS_KEY",
    "secret_key": "MINIO_SECRET_KEY",
    "cron": "CRON_SCHEDULE",
    "verbose": "RCLONE_SETUP_VERBOSE",
    "dry_run": "RCLONE_SETUP_DRY_RUN",
    "log_file": "RCLONE_SETUP_LOG_FILE",
}

CONFIG_ENV_VAR = "RCLONE_SETUP_CONFIG"

# Settings a config file may provide. home_dir is not among them, so the
# artifact locations always follow the invoking user.
FILE_SETTINGS = frozenset(ENV_VARS)

# Fields where an exported-but-empty variable reads as "not set".
BLANK_MEANS_UNSET = frozenset({"verbose", "dry_run", "log_file"})


class BackupParameters(BaseModel):
    """Everything needed to provision the backup job for one run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(
        default=DEFAULTS["source"], description="Local directory to back up"
    )
    remote: str = Field(default=DEFAULTS["remote"], description="Rclone remote name")
    bucket: str = Field(
        default=DEFAULTS["bucket"], description="Remote bucket/container name"
    )
    endpoint: str = Field(
        default=DEFAULTS["endpoint"], description="MinIO server endpoint URL"
    )
    access_key: SecretStr = Field(default=SecretStr(""), description="MinIO access key")
    secret_key: SecretStr = Field(default=SecretStr(""), description="MinIO secret key")
    cron: str = Field(
        default=DEFAULTS["cron"],
        description="Cron schedule: 'minute hour day-of-month month day-of-week'",
    )
    verbose: bool = Field(default=False, description="Enable verbose logging")
    dry_run: bool = Field(
        default=False, description="Show actions without making changes"
    )
    log_file: Optional[Path] = Field(
        default=None, description="Optional file to mirror log output into"
    )
    home_dir: Path = Field(
        default_factory=Path.home,
        description="Home directory the config and script are written under",
    )

    @property
    def rclone_config_dir(self) -> Path:
        """Directory holding rclone.conf."""
        return self.home_dir / ".config" / "rclone"

    @property
    def rclone_config_file(self) -> Path:
        """Path of the rclone configuration file."""
        return self.rclone_config_dir / "rclone.conf"

    @property
    def backup_script(self) -> Path:
        """Path of the generated sync script referenced by the crontab."""
        return self.home_dir / "rclone_backup.sh"


def load_config_file(config_path: str | Path) -> Dict[str, Any]:
    """Load parameter overrides from a YAML file.

    Keys may use either ``dry_run`` or ``dry-run`` spelling. An empty file
    means no overrides.
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML format in config file: {e}") from e

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        raise ConfigFileError(
            f"Configuration file must contain a mapping of settings: {config_path}"
        )

    settings = {str(key).replace("-", "_"): value for key, value in config_data.items()}
    unknown = sorted(set(settings) - FILE_SETTINGS)
    if unknown:
        raise ConfigFileError(
            f"Unknown setting(s) in config file {config_path}: {', '.join(unknown)}"
        )
    return settings


def build_parameters(
    cli_values: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
    config_path: str | Path | None = None,
) -> BackupParameters:
    """
    Merge defaults, config file, environment and CLI values into parameters.

    Precedence, lowest to highest: built-in defaults, YAML config file,
    environment variables, command-line flags. ``None`` values in
    ``cli_values`` mean "flag not given".

    Args:
        cli_values: Parsed command-line values keyed by field name
        environ: Environment mapping (defaults to ``os.environ``)
        config_path: Optional YAML config file; falls back to $RCLONE_SETUP_CONFIG

    Returns:
        Frozen BackupParameters for this run
    """
    if environ is None:
        environ = os.environ

    merged: Dict[str, Any] = dict(DEFAULTS)

    if config_path is None:
        config_path = environ.get(CONFIG_ENV_VAR) or None
    if config_path:
        merged.update(load_config_file(config_path))

    for field_name, env_name in ENV_VARS.items():
        value = environ.get(env_name)
        if value is None:
            continue
        if field_name in BLANK_MEANS_UNSET and not value.strip():
            continue
        merged[field_name] = value

    for field_name, value in cli_values.items():
        if value is not None:
            merged[field_name] = value

    try:
        return BackupParameters(**merged)
    except ValidationError as e:
        raise ConfigFileError(f"Invalid parameters: {e}") from e
    except RuntimeError as e:
        # Path.home() raises RuntimeError when no home directory can be resolved.
        raise ConfigFileError(f"Could not find home directory: {e}") from e
