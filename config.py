"""
Configuration management for the price trend monitor.
"""

import os
import threading
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path
import json
import logging

import jsonschema
from jsonschema import validate

from price_trend_monitor.utils.errors import ConfigurationError


@dataclass
class DatabaseConfig:
    """Database configuration settings."""
    sqlite_path: str = "data/price_trend_monitor.db"
    # Reject a second price for the same product on the same date
    unique_daily_prices: bool = False


@dataclass
class ChartConfig:
    """Chart rendering settings."""
    output_dir: str = "charts"
    width: float = 12.0
    height: float = 8.0
    dpi: int = 100


@dataclass
class SystemConfig:
    """Main system configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    default_owner: str = "local"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_retention_days: int = 7


# Configuration schema for validation
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "database": {
            "type": "object",
            "properties": {
                "sqlite_path": {"type": "string", "minLength": 1},
                "unique_daily_prices": {"type": "boolean"}
            },
            "additionalProperties": False
        },
        "chart": {
            "type": "object",
            "properties": {
                "output_dir": {"type": "string", "minLength": 1},
                "width": {"type": "number", "exclusiveMinimum": 0, "maximum": 100},
                "height": {"type": "number", "exclusiveMinimum": 0, "maximum": 100},
                "dpi": {"type": "integer", "minimum": 10, "maximum": 1200}
            },
            "additionalProperties": False
        },
        "default_owner": {"type": "string", "minLength": 1},
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        },
        "log_file": {"type": ["string", "null"]},
        "log_retention_days": {"type": "integer", "minimum": 1, "maximum": 3650}
    },
    "additionalProperties": False
}


def load_env_file(env_file: Path = Path('.env')) -> None:
    """Load KEY=VALUE lines from a .env file into the environment."""
    if not env_file.exists():
        return
    try:
        with open(env_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())
        logging.info("Loaded environment variables from .env file")
    except OSError as e:
        logging.warning(f"Failed to load .env file: {e}")


class ConfigManager:
    """Configuration manager with schema validation, env overrides and reload."""

    def __init__(self, config_path: str = "config.json"):
        self.config_path = Path(config_path)
        self._config: Optional[SystemConfig] = None
        self._last_modified: Optional[float] = None
        self._lock = threading.RLock()

    def validate_config(self, config_data: Dict[str, Any]) -> None:
        """Validate configuration data against schema."""
        try:
            validate(instance=config_data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.message}",
                {"path": list(e.absolute_path)}
            )

    def load_config(self) -> SystemConfig:
        """Load configuration from file or environment variables."""
        with self._lock:
            if self.config_path.exists():
                current_modified = self.config_path.stat().st_mtime
                if self._config is None or current_modified != self._last_modified:
                    self._load_from_file()
                    self._last_modified = current_modified
            elif self._config is None:
                self._load_from_env()

            return self._config

    def _load_from_file(self) -> None:
        """Load configuration from JSON file with validation."""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Failed to read configuration file {self.config_path}",
                {"error": str(e)}
            )

        self.validate_config(config_data)

        self._config = self._dict_to_config(config_data)
        self._override_with_env_vars()

        logging.info(f"Configuration loaded and validated from {self.config_path}")

    def _load_from_env(self) -> None:
        """Load configuration from defaults plus environment variables."""
        self._config = SystemConfig()
        self._override_with_env_vars()
        logging.info("Configuration loaded from environment variables")

    def _override_with_env_vars(self) -> None:
        """Override configuration with environment variables."""
        load_env_file()

        if os.getenv("PTM_DB_PATH"):
            self._config.database.sqlite_path = os.getenv("PTM_DB_PATH")

        log_level = os.getenv("PTM_LOG_LEVEL")
        if log_level:
            if log_level.upper() not in CONFIG_SCHEMA["properties"]["log_level"]["enum"]:
                raise ConfigurationError(
                    f"Invalid PTM_LOG_LEVEL: {log_level}",
                    {"value": log_level}
                )
            self._config.log_level = log_level.upper()

        if os.getenv("PTM_LOG_FILE"):
            self._config.log_file = os.getenv("PTM_LOG_FILE")

        if os.getenv("PTM_OWNER"):
            self._config.default_owner = os.getenv("PTM_OWNER")

    def _dict_to_config(self, data: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object."""
        config = SystemConfig()

        if "database" in data:
            config.database = DatabaseConfig(**data["database"])

        if "chart" in data:
            config.chart = ChartConfig(**data["chart"])

        config.default_owner = data.get("default_owner", config.default_owner)
        config.log_level = data.get("log_level", config.log_level)
        config.log_file = data.get("log_file", config.log_file)
        config.log_retention_days = data.get("log_retention_days", config.log_retention_days)

        return config

    def reload_if_changed(self) -> bool:
        """Check if config file has changed and reload if necessary."""
        with self._lock:
            if not self.config_path.exists():
                return False

            current_modified = self.config_path.stat().st_mtime
            if current_modified != self._last_modified:
                self.load_config()
                return True
            return False

    def export_config(self) -> Dict[str, Any]:
        """Export current configuration as dictionary."""
        with self._lock:
            if not self._config:
                return {}

            return {
                "database": asdict(self._config.database),
                "chart": asdict(self._config.chart),
                "default_owner": self._config.default_owner,
                "log_level": self._config.log_level,
                "log_file": self._config.log_file,
                "log_retention_days": self._config.log_retention_days
            }

    def save_config(self, config_path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        with self._lock:
            if not self._config:
                raise ConfigurationError("No configuration loaded to save")

            save_path = Path(config_path) if config_path else self.config_path
            config_dict = self.export_config()

            self.validate_config(config_dict)

            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False)

            logging.info(f"Configuration saved to {save_path}")


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> SystemConfig:
    """Get the current system configuration."""
    return config_manager.load_config()


def reload_config() -> SystemConfig:
    """Force reload configuration and return updated config."""
    config_manager._config = None
    config_manager._last_modified = None
    return config_manager.load_config()
