"""Configuration management for the cover validation service."""

import os
import json
import copy
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .models import Config
from .errors import ConfigurationError


TRUTHY = ("true", "1", "yes")


class ConfigManager:
    """Manages configuration loading and validation."""

    DEFAULT_CONFIG = {
        "store": {
            "backend": "memory",
            "db_path": "covervote.db",
        },
        "review": {
            "quota": 3,
            "match_threshold": 2,
            "fallback_bucket": "others",
            "reviewers": [],
        },
        "api": {
            "host": "0.0.0.0",
            "port": 3000,
            "cors_origins": ["*"],
            "cors_allow_credentials": False,
            "max_body_mb": 50,
        },
        "logging": {
            "format": "json",
            "level": "INFO",
            "file": None,
        },
    }

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize config manager.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults + env vars
            load_env_file: Whether to read a .env file into the environment first
        """
        self.config_path = Path(config_path) if config_path else None
        self.load_env_file = load_env_file
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file and environment."""
        if self._config:
            return self._config

        if self.load_env_file:
            load_dotenv()

        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {self.config_path}",
                    config_key="config_path",
                )
            with open(self.config_path, "r", encoding="utf-8") as f:
                try:
                    file_config = json.load(f)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(
                        f"Invalid JSON in {self.config_path}: {e}", config_key="config_path"
                    ) from e
            config_dict = self._deep_merge(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        try:
            self._config = Config(**config_dict)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        return self._config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        store = config.setdefault("store", {})
        review = config.setdefault("review", {})
        api = config.setdefault("api", {})
        logging_section = config.setdefault("logging", {})

        backend = os.getenv("COVERVOTE_STORE_BACKEND")
        if backend:
            store["backend"] = backend.lower()

        db_path = os.getenv("COVERVOTE_DB_PATH")
        if db_path:
            store["db_path"] = db_path
            # A database path only makes sense with the sqlite backend
            if not backend:
                store["backend"] = "sqlite"

        reviewers = os.getenv("COVERVOTE_REVIEWERS")
        if reviewers:
            review["reviewers"] = [name.strip() for name in reviewers.split(",") if name.strip()]

        quota = os.getenv("COVERVOTE_QUOTA")
        if quota:
            review["quota"] = self._parse_int("COVERVOTE_QUOTA", quota)

        port = os.getenv("COVERVOTE_PORT") or os.getenv("PORT")
        if port:
            api["port"] = self._parse_int("PORT", port)

        host = os.getenv("COVERVOTE_HOST")
        if host:
            api["host"] = host

        cors = os.getenv("CORS_ORIGINS")
        if cors:
            api["cors_origins"] = [origin.strip() for origin in cors.split(",") if origin.strip()]

        level = os.getenv("COVERVOTE_LOG_LEVEL")
        if level:
            logging_section["level"] = level.upper()

        log_format = os.getenv("COVERVOTE_LOG_FORMAT")
        if log_format:
            logging_section["format"] = log_format.lower()

        if os.getenv("COVERVOTE_DEBUG", "").lower() in TRUTHY:
            logging_section["level"] = "DEBUG"
            logging_section["format"] = "text"

        return config

    @staticmethod
    def _parse_int(name: str, value: str) -> int:
        try:
            return int(value)
        except ValueError as e:
            raise ConfigurationError(f"{name} must be an integer, got {value!r}", config_key=name) from e

    def save_template(self, path: str):
        """Save a configuration template file."""
        template = copy.deepcopy(self.DEFAULT_CONFIG)
        template["store"]["backend"] = "sqlite"
        template["review"]["reviewers"] = ["Ann", "Bob"]

        with open(path, "w", encoding="utf-8") as f:
            json.dump(template, f, indent=2)

    def validate(self) -> bool:
        """Validate the current configuration."""
        config = self.load()

        if config.store.backend not in ("memory", "sqlite"):
            raise ConfigurationError(
                f"Unknown store backend: {config.store.backend}", config_key="store.backend"
            )

        if config.store.backend == "sqlite" and not config.store.db_path:
            raise ConfigurationError("SQLite backend requires db_path", config_key="store.db_path")

        if config.logging.format not in ("json", "text"):
            raise ConfigurationError(
                f"Unknown log format: {config.logging.format}", config_key="logging.format"
            )

        return True

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            self._config = self.load()
        return self._config
