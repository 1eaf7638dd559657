"""
Project configuration loaded from ``rivet.toml``.

Example rivet.toml:

    [project]
    environment = "development"

    [database.datasources]
    default = ".rivet/data.db"
    reporting = ".rivet/reporting.db"

    [diagnostics]
    detect_n_plus_one = true
    n_plus_one_threshold = 3

    [logging]
    level = "DEBUG"
    log_dir = ".rivet/logs"

Environment variables override the file:
    RIVET_ENV            -> project.environment
    RIVET_DATABASE_PATH  -> database.datasources.default
    RIVET_LOG_LEVEL      -> logging.level
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MANIFEST = "rivet.toml"
DEFAULT_DATASOURCE = "default"


@dataclass
class DatabaseConfig:
    """Named SQLite data sources (name -> file path or ':memory:')."""

    datasources: dict[str, str] = field(
        default_factory=lambda: {DEFAULT_DATASOURCE: ".rivet/data.db"}
    )


@dataclass
class DiagnosticsConfig:
    """Development diagnostics."""

    detect_n_plus_one: bool | None = None  # None = follow environment
    n_plus_one_threshold: int = 2


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_dir: str = ".rivet/logs"
    console: bool = True


@dataclass
class RivetConfig:
    """Complete Rivet configuration."""

    environment: str = "production"  # "development" | "test" | "production"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def dev_mode(self) -> bool:
        """True when running in a development environment."""
        return self.environment in ("development", "dev")

    @property
    def n_plus_one_enabled(self) -> bool:
        """Whether lazy-access diagnostics should flag N+1 patterns."""
        if self.diagnostics.detect_n_plus_one is not None:
            return self.diagnostics.detect_n_plus_one
        return self.dev_mode


def parse_config(data: dict) -> RivetConfig:
    """Build a RivetConfig from an already-parsed TOML document."""
    project = data.get("project", {})
    database_data = data.get("database", {})
    diagnostics_data = data.get("diagnostics", {})
    logging_data = data.get("logging", {})

    datasources = database_data.get("datasources") or {DEFAULT_DATASOURCE: ".rivet/data.db"}

    return RivetConfig(
        environment=project.get("environment", "production"),
        database=DatabaseConfig(datasources={k: str(v) for k, v in datasources.items()}),
        diagnostics=DiagnosticsConfig(
            detect_n_plus_one=diagnostics_data.get("detect_n_plus_one"),
            n_plus_one_threshold=diagnostics_data.get("n_plus_one_threshold", 2),
        ),
        logging=LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            log_dir=logging_data.get("log_dir", ".rivet/logs"),
            console=bool(logging_data.get("console", True)),
        ),
    )


def _apply_env_overrides(config: RivetConfig) -> RivetConfig:
    """Apply RIVET_* environment variables on top of file values."""
    env = os.environ.get("RIVET_ENV")
    if env:
        config.environment = env

    db_path = os.environ.get("RIVET_DATABASE_PATH")
    if db_path:
        config.database.datasources[DEFAULT_DATASOURCE] = db_path

    log_level = os.environ.get("RIVET_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    return config


def load_config(path: Path | str | None = None) -> RivetConfig:
    """
    Load configuration from a rivet.toml file.

    A missing file yields the defaults; environment overrides apply either way.

    Args:
        path: Manifest path (defaults to ./rivet.toml)

    Returns:
        Resolved configuration
    """
    manifest_path = Path(path) if path else Path(DEFAULT_MANIFEST)

    if manifest_path.exists():
        data = tomllib.loads(manifest_path.read_text(encoding="utf-8"))
        config = parse_config(data)
    else:
        config = RivetConfig()

    return _apply_env_overrides(config)
