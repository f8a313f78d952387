"""
Configuration management for zoomvault
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from platformdirs import user_config_dir

from zoomvault.exceptions import ConfigError

# Check YAML availability at module level
try:
    from importlib.util import find_spec

    YAML_AVAILABLE = find_spec("yaml") is not None
except ImportError:
    YAML_AVAILABLE = False


class Config:
    """Configuration loader and validator with multi-source support"""

    REQUIRED_FIELDS = ["bot_token"]
    OPTIONAL_FIELDS: dict[str, Any] = {
        "admin_id": None,
        "downloads_dir": "downloads",
        "database_path": "zoom_bot.db",
        "web_host": "127.0.0.1",
        "web_port": 3000,
        "log_level": "INFO",
        "downloader": "yt-dlp",
        "delivery_limit_mb": 50,
        "telegram_api_url": "https://api.telegram.org",
    }

    def __init__(self, env_file: str | None = None):
        # Configuration priority:
        # 1. Config file (JSON/YAML), or .env file passed explicitly
        # 2. Environment variables
        # 3. Defaults

        self.config_dir = Path(user_config_dir("zoomvault"))
        config_data: dict[str, Any] = {}

        if env_file is not None:
            config_data = self._load_config_file(env_file)
        else:
            default_config = self._find_default_config()
            if default_config:
                config_data = self._load_config_file(str(default_config))

        def _resolve(config_key: str, env_key: str) -> Any:
            value = config_data.get(config_key)
            if value is None:
                value = os.getenv(env_key)
            if value is None:
                value = self.OPTIONAL_FIELDS.get(config_key)
            return value

        # Stored privately so it never shows up in logs/tracebacks
        self._bot_token: str | None = _resolve("bot_token", "BOT_TOKEN")

        self.admin_id = self._parse_int(_resolve("admin_id", "ADMIN_ID"), "admin_id")
        self.downloads_dir = Path(str(_resolve("downloads_dir", "DOWNLOADS_DIR")))
        self.database_path = Path(str(_resolve("database_path", "DATABASE_PATH")))
        self.web_host = str(_resolve("web_host", "HOST"))
        self.web_port = self._parse_int(_resolve("web_port", "PORT"), "web_port") or 3000
        self.log_level = str(_resolve("log_level", "LOG_LEVEL"))
        self.downloader = str(_resolve("downloader", "DOWNLOADER_PATH"))
        limit_mb = self._parse_int(
            _resolve("delivery_limit_mb", "DELIVERY_LIMIT_MB"), "delivery_limit_mb"
        )
        self.delivery_limit_bytes = (limit_mb or 50) * 1024 * 1024
        self.telegram_api_url = str(_resolve("telegram_api_url", "TELEGRAM_API_URL")).rstrip("/")

    @property
    def bot_token(self) -> str | None:
        """Telegram bot token (read-only property)"""
        return self._bot_token

    def __repr__(self) -> str:
        return (
            f"Config("
            f"downloads_dir={self.downloads_dir!r}, "
            f"database_path={self.database_path!r}, "
            f"web={self.web_host}:{self.web_port}, "
            f"admin_id={self.admin_id!r}, "
            f"bot_token={'configured' if self._bot_token else 'missing'}"
            f")"
        )

    def is_admin(self, principal_id: int | None) -> bool:
        """True only for the configured administrator"""
        return self.admin_id is not None and principal_id == self.admin_id

    @staticmethod
    def _parse_int(value: Any, name: str) -> int | None:
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}")

    @staticmethod
    def _is_null_device(path_str: str) -> bool:
        """Return True when the provided path represents the OS null device."""
        normalized = path_str.strip().lower().replace("\\", "/")
        null_candidates = {"/dev/null", "nul", "nul:", os.devnull.lower()}
        return normalized in null_candidates

    def _load_config_file(self, config_path: str) -> dict[str, Any]:
        """
        Load configuration from JSON, YAML or .env file

        Args:
            config_path: Path to config file

        Returns:
            Configuration dictionary (empty for .env files, which populate the environment)

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        if self._is_null_device(config_path):
            return {}

        path = Path(config_path)

        if not path.exists():
            raise ConfigError(
                f"Config file '{config_path}' does not exist. "
                "Provide an existing JSON/YAML/.env file or remove the --config flag."
            )

        if path.suffix.lower() in [".yaml", ".yml"] and not YAML_AVAILABLE:
            raise ConfigError(
                f"Cannot load YAML config file '{path.name}': PyYAML not installed. "
                "Install with: pip install pyyaml"
            )

        try:
            with open(path) as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                elif path.suffix.lower() in [".yaml", ".yml"]:
                    data = self._load_yaml(f)
                else:
                    # Assume .env file
                    load_dotenv(config_path)
                    return {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {config_path}: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to load config file {config_path}: {e}")

        self._validate_schema(data, path)
        return dict(data)

    def _load_yaml(self, file_obj: Any) -> dict[str, Any]:
        import yaml

        try:
            result = yaml.safe_load(file_obj)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")
        return dict(result) if result else {}

    def _find_default_config(self) -> Path | None:
        """Locate the default config file in the user config directory."""
        for filename in ("config.json", "config.yaml", "config.yml"):
            candidate = self.config_dir / filename
            if candidate.exists():
                return candidate
        return None

    def _validate_schema(self, data: Any, path: Path) -> None:
        """
        Validate configuration schema

        Raises:
            ConfigError: If schema validation fails
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON/YAML object")

        known_keys = set(self.REQUIRED_FIELDS) | set(self.OPTIONAL_FIELDS.keys())
        unknown_keys = set(data.keys()) - known_keys
        if unknown_keys:
            raise ConfigError(
                f"Unknown keys in config file {path}: {', '.join(sorted(unknown_keys))}\n"
                f"Valid keys: {', '.join(sorted(known_keys))}"
            )

        for key in ("bot_token", "downloads_dir", "database_path", "web_host", "downloader"):
            if key in data and not isinstance(data[key], str):
                raise ConfigError(f"{key} must be a string in {path}")

        for key in ("admin_id", "web_port", "delivery_limit_mb"):
            if key in data and (isinstance(data[key], bool) or not isinstance(data[key], int)):
                raise ConfigError(f"{key} must be an integer in {path}")

        if "log_level" in data:
            valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if str(data["log_level"]).upper() not in valid_levels:
                raise ConfigError(f"log_level must be one of {valid_levels} in {path}")

    def validate(self) -> None:
        """Validate configuration required to run the bot"""
        if not self.bot_token:
            raise ConfigError(
                "Missing required environment variable: BOT_TOKEN\n"
                "Please set it in .env file, environment or config file"
            )

    def is_valid(self) -> bool:
        """Check if configuration is valid"""
        try:
            self.validate()
            return True
        except ConfigError:
            return False
