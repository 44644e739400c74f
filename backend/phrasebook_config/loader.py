"""YAML config loader with environment variable support"""

import yaml
import os
import copy
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "phrasebook.yaml"
ENV_PREFIX = "PHRASEBOOK_"

DEFAULTS: Dict[str, Any] = {
    "data_dir": "data",
    "media_dir": "public/media",
    "host": "127.0.0.1",
    "port": 3001,
    "page_size": 10,
    "max_upload_mb": 10,
    "cors_origins": ["http://localhost:5173"],
    "log_dir": "logs",
    "log_level": "INFO",
}


def _coerce(value: str) -> Any:
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    if value.isdigit():
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


class ConfigLoader:
    """Load and validate application configuration"""

    @staticmethod
    def load_config(path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML, falling back to defaults

        Args:
            path: Config file path (default phrasebook.yaml); a missing
                default file is fine, a missing explicit file is not

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If an explicitly given file doesn't exist
            ValueError: If the YAML document is not a mapping
        """
        config = copy.deepcopy(DEFAULTS)
        config_path = Path(path or DEFAULT_CONFIG_FILE)

        if config_path.exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Config must be a mapping: {config_path}")
            config.update(loaded)
        elif path:
            raise FileNotFoundError(f"Config not found: {config_path}")
        else:
            logger.debug(f"No {DEFAULT_CONFIG_FILE}, using defaults")

        # Override with environment variables
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower()
                if config_key == 'cors_origins':
                    config[config_key] = [o.strip() for o in value.split(',') if o.strip()]
                else:
                    config[config_key] = _coerce(value)

        return config

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> tuple[bool, Optional[str]]:
        """
        Validate configuration structure

        Args:
            config: Configuration dictionary

        Returns:
            Tuple of (is_valid, error_message)
        """
        for field in ('data_dir', 'host'):
            if not isinstance(config.get(field), str) or not config[field]:
                return False, f"{field} must be a non-empty string"

        for field in ('port', 'page_size', 'max_upload_mb'):
            value = config.get(field)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                return False, f"{field} must be a positive integer"

        if config['port'] > 65535:
            return False, "port must be at most 65535"

        if not isinstance(config.get('cors_origins', []), list):
            return False, "cors_origins must be a list"

        if str(config.get('log_level', 'INFO')).upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            return False, f"Unknown log_level: {config.get('log_level')}"

        return True, None
