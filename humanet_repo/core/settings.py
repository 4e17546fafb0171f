import os
import json
import logging
import appdirs
from typing import Dict, Any, Optional
from logging.handlers import RotatingFileHandler

from humanet_repo.utils.type_handler import DEFAULT_ALLOWED_EXTENSIONS

APP_NAME = "Humanet"
APP_AUTHOR = "Humanet"
LOGGER_NAME = "humanet_repo"

# 10 MB per file
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

logger = logging.getLogger(__name__)


def configure_logging(log_dir: str, level: int = logging.INFO) -> logging.Handler:
    """
    Attach a rotating log file to the package logger.

    Safe to call more than once: an existing handler for the same file is
    reused instead of stacking a duplicate.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.abspath(os.path.join(log_dir, "repository.log"))

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level)

    for hdlr in package_logger.handlers:
        if isinstance(hdlr, RotatingFileHandler) and hdlr.baseFilename == log_file:
            return hdlr

    handler = RotatingFileHandler(
        log_file,
        maxBytes=5*1024*1024,  # 5 MB
        backupCount=3,
        encoding='utf-8'
    )
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    package_logger.addHandler(handler)
    return handler


class SettingsManager:
    """
    Settings for the repository service: where repositories live, how much
    history each file keeps and which uploads are accepted.

    Values come from, in increasing precedence: built-in defaults, an optional
    JSON settings file, environment variables, and keyword overrides.
    """

    SETTINGS_SCHEMA = {
        "storage_path": {"type": str, "required": True},
        "max_versions": {"type": int, "min": 1, "max": 100, "required": True},
        "max_file_size": {"type": int, "min": 1, "required": True},
        "allowed_extensions": {"type": list, "required": True},
        "logging_enabled": {"type": bool, "required": True},
        "log_dir": {"type": str, "required": True},
    }

    ENV_OVERRIDES = {
        "storage_path": ["HUMANET_STORAGE_PATH", "STORAGE_PATH"],
        "log_dir": ["HUMANET_LOG_DIR"],
    }

    def __init__(self, settings_file: Optional[str] = None, configure_logs: bool = False,
                 **overrides: Any):
        """
        Initialize the settings manager.

        Args:
            settings_file: Optional path to a JSON settings file
            configure_logs: Attach the rotating log handler when logging is enabled
            overrides: Explicit values that win over every other source
        """
        self.settings_file = settings_file
        self.settings = self._load_settings(overrides)

        if configure_logs and self.get("logging_enabled"):
            configure_logging(self.get("log_dir"))

    def _get_default_settings(self) -> Dict[str, Any]:
        return {
            "storage_path": os.path.join(os.getcwd(), "storage", "ideas"),
            "max_versions": 5,
            "max_file_size": DEFAULT_MAX_FILE_SIZE,
            "allowed_extensions": list(DEFAULT_ALLOWED_EXTENSIONS),
            "logging_enabled": True,
            "log_dir": appdirs.user_log_dir(APP_NAME, APP_AUTHOR),
        }

    def _load_settings(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Load settings with defaults and validation."""
        settings = self._get_default_settings()

        if self.settings_file and os.path.exists(self.settings_file):
            try:
                with open(self.settings_file, "r", encoding='utf-8') as f:
                    file_settings = json.load(f)
                if isinstance(file_settings, dict):
                    settings.update(file_settings)
                else:
                    logger.error(f"Settings file {self.settings_file} is not a JSON object. Using defaults.")
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Settings file error: {str(e)}. Using defaults.")

        for key, env_names in self.ENV_OVERRIDES.items():
            for env_name in env_names:
                if os.environ.get(env_name):
                    settings[key] = os.environ[env_name]
                    break

        for key, value in overrides.items():
            if value is not None:
                settings[key] = value

        return self._validate_settings(settings)

    def _validate_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Validate settings against schema and fix any issues."""
        validated = {}
        default_settings = self._get_default_settings()

        for key, schema in self.SETTINGS_SCHEMA.items():
            if key not in settings:
                validated[key] = default_settings.get(key)
                logger.warning(f"Missing required setting '{key}'. Using default: {default_settings.get(key)}")
                continue

            value = settings[key]

            # Type validation
            expected_type = schema.get("type")
            if expected_type and not isinstance(value, expected_type):
                try:
                    if expected_type == bool and isinstance(value, (int, str)):
                        if isinstance(value, str):
                            value = value.lower() in ('yes', 'true', 'y', '1')
                        else:
                            value = bool(value)
                    elif expected_type == int and isinstance(value, str):
                        value = int(value)
                    elif expected_type == str:
                        value = str(value)
                    elif expected_type == list and isinstance(value, str):
                        value = [item.strip() for item in value.split(",") if item.strip()]
                    else:
                        value = default_settings.get(key)
                        logger.warning(f"Invalid type for '{key}'. Using default: {value}")
                except (ValueError, TypeError):
                    value = default_settings.get(key)
                    logger.warning(f"Could not convert '{key}'. Using default: {value}")

            # Range validation for numeric values
            if expected_type == int:
                min_val = schema.get("min")
                max_val = schema.get("max")
                if min_val is not None and value < min_val:
                    value = min_val
                    logger.warning(f"Value for '{key}' below minimum ({min_val}). Adjusted.")
                if max_val is not None and value > max_val:
                    value = max_val
                    logger.warning(f"Value for '{key}' above maximum ({max_val}). Adjusted.")

            validated[key] = value

        validated["storage_path"] = os.path.abspath(validated["storage_path"])
        validated["allowed_extensions"] = [
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in validated["allowed_extensions"]
        ]
        return validated

    def save_settings(self, settings_file: Optional[str] = None) -> bool:
        """
        Save settings as JSON.

        Returns:
            bool: True if save was successful, False otherwise
        """
        target = settings_file or self.settings_file
        if not target:
            logger.warning("No settings file configured, nothing saved")
            return False

        try:
            with open(target, "w", encoding='utf-8') as f:
                json.dump(self.settings, f, indent=4, ensure_ascii=False)
            logger.info(f"Settings saved to {target}")
            return True
        except (IOError, OSError) as e:
            logger.error(f"Failed to save settings: {str(e)}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value with default fallback."""
        return self.settings.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Set a validated setting in memory.

        Returns:
            bool: True if the setting was changed, False otherwise
        """
        if key not in self.SETTINGS_SCHEMA:
            logger.warning(f"Attempted to set unknown setting: {key}")
            return False

        schema = self.SETTINGS_SCHEMA[key]
        expected_type = schema.get("type")

        if expected_type and not isinstance(value, expected_type):
            logger.warning(f"Invalid type for setting '{key}'. Expected {expected_type}, got {type(value)}")
            return False

        if expected_type == int:
            min_val = schema.get("min")
            max_val = schema.get("max")
            if min_val is not None and value < min_val:
                logger.warning(f"Value for '{key}' below minimum ({min_val})")
                return False
            if max_val is not None and value > max_val:
                logger.warning(f"Value for '{key}' above maximum ({max_val})")
                return False

        changed = self.settings.get(key) != value
        self.settings[key] = value
        return changed

    def reset_to_defaults(self) -> None:
        self.settings = self._validate_settings(self._get_default_settings())
        logger.info("Settings reset to default values")
