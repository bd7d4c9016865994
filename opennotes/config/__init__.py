"""Simple YAML configuration loader for OpenNotes."""

import copy
import os
import tempfile
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_api_key_here"

DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 48000,
        "chunk_size": 1024,
        "flush_interval_seconds": 1.0,
        "stall_timeout_seconds": 2.0,
        "loopback_device_hints": ["loopback", "monitor", "blackhole", "stereo mix", "soundflower"],
    },
    "transcription": {
        "api_key_env": "ASSEMBLYAI_API_KEY",
        "base_url": "https://api.assemblyai.com",
        "poll_interval_seconds": 3.0,
        "max_polls": 200,
        "min_speakers": 2,
        "max_speakers": 6,
    },
    "summarization": {
        "api_key_env": "GOOGLE_GENERATIVE_AI_API_KEY",
        "base_url": "https://generativelanguage.googleapis.com",
        "model": "gemini-2.0-flash",
        "temperature": 0.3,
        "max_output_tokens": 2048,
        "max_attempts": 3,
    },
    "storage": {
        "data_directory": "~/Documents/OpenNotes",
        "temp_directory": None,
    },
    "logging": {
        "level": "INFO",
        "file_path": "~/.opennotes/logs/opennotes.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class OpenNotesConfig:
    """OpenNotes configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

        if not loaded:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        config = _merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("storage", "data_directory"),
                             ("storage", "temp_directory"),
                             ("logging", "file_path")):
            value = config.get(section, {}).get(key)
            if not value:
                continue
            expanded = os.path.expanduser(value)
            if not os.path.isabs(expanded):
                expanded = str(config_dir / expanded)
            config[section][key] = expanded

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.max_polls').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'summarization.model')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def _get_api_key(self, section: str) -> str:
        env_name = self.get(f'{section}.api_key_env')
        if not env_name:
            raise ConfigurationError(f"{section}.api_key_env not configured")

        api_key = os.environ.get(env_name, '').strip()
        if not api_key or api_key == PLACEHOLDER_API_KEY:
            raise ConfigurationError(f"API key not configured. Please set {env_name} in the environment")
        return api_key

    def get_transcription_api_key(self) -> str:
        """Get the transcription provider key - raises ConfigurationError if missing."""
        return self._get_api_key('transcription')

    def get_summarization_api_key(self) -> str:
        """Get the summarization provider key - raises ConfigurationError if missing."""
        return self._get_api_key('summarization')

    def get_data_directory(self) -> str:
        """Get the directory transcripts and summaries are written to."""
        data_dir = self.get('storage.data_directory') or DEFAULT_CONFIG['storage']['data_directory']
        return str(Path(os.path.expanduser(data_dir)).absolute())

    def get_temp_directory(self) -> str:
        """Get the directory temporary audio artifacts are written to."""
        temp_dir = self.get('storage.temp_directory')
        if not temp_dir:
            return tempfile.gettempdir()
        return str(Path(os.path.expanduser(temp_dir)).absolute())
