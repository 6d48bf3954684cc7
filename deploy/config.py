"""Configuration management for the deployment command."""

import json
import os
from pathlib import Path
from typing import Any, Optional

from common.constants import (
    API_TOKEN_ENV,
    DEFAULT_API_URL,
    DEFAULT_ASSETS_BINDING,
    DEFAULT_COMPATIBILITY_DATE,
    DEFAULT_MAIN_MODULE,
    DEFAULT_MAX_CONCURRENT_UPLOADS,
    DEFAULT_TIMEOUT_SECONDS,
)
from deploy.exceptions import ConfigError


def _default_config() -> dict:
    return {
        "account_id": os.environ.get("CLOUDFLARE_ACCOUNT_ID", ""),
        "assets_dir": os.environ.get("ASSETS_DIRECTORY", "assets"),
        "script_name": os.environ.get("SCRIPT_NAME", ""),
        "api_url": os.environ.get("CLOUDFLARE_API_URL", DEFAULT_API_URL),
        "main_module": DEFAULT_MAIN_MODULE,
        "compatibility_date": DEFAULT_COMPATIBILITY_DATE,
        "binding_name": DEFAULT_ASSETS_BINDING,
        "script_file": None,
        "timeout": DEFAULT_TIMEOUT_SECONDS,
        "max_concurrent_uploads": DEFAULT_MAX_CONCURRENT_UPLOADS,
    }


class Config:
    """
    Deployment settings.

    Precedence, lowest to highest: environment-derived defaults, the optional
    JSON config file, explicit overrides (CLI flags). The API token is only
    ever read from the environment and is never stored in the file.
    """

    STRING_SETTINGS = (
        'account_id',
        'script_name',
        'assets_dir',
        'api_url',
        'main_module',
        'compatibility_date',
        'binding_name',
        'script_file',
    )

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[dict] = None,
        api_token: Optional[str] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Optional path to a JSON config file
            overrides: Values that win over file and environment (None values are ignored)
            api_token: API token; defaults to the CLOUDFLARE_API_TOKEN env var
        """
        self.config_path = config_path
        self.data = self._load()
        if overrides:
            self.data.update({k: v for k, v in overrides.items() if v is not None})
        self.api_token = api_token if api_token is not None else os.environ.get(API_TOKEN_ENV)

    def _load(self) -> dict:
        """
        Load configuration from file, falling back to defaults.

        Returns:
            Configuration dictionary

        Raises:
            ConfigError: If the file is missing or not a JSON object
        """
        config = _default_config()
        if self.config_path is None:
            return config

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {self.config_path}")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {self.config_path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {self.config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a JSON object")

        # never take credentials from the file
        data.pop('api_token', None)
        config.update(data)
        return config

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def get_account_id(self) -> str:
        return self.data.get('account_id') or ""

    def get_script_name(self) -> str:
        return self.data.get('script_name') or ""

    def get_assets_dir(self) -> Path:
        return Path(self.data.get('assets_dir') or "assets")

    def get_api_url(self) -> str:
        """
        Get API base URL.

        Returns:
            Base URL string without trailing slash (e.g., "https://api.cloudflare.com/client/v4")
        """
        return str(self.data.get('api_url') or DEFAULT_API_URL).rstrip('/')

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return float(self.data.get('timeout', DEFAULT_TIMEOUT_SECONDS))

    def get_max_concurrent_uploads(self) -> int:
        return max(1, int(self.data.get('max_concurrent_uploads', DEFAULT_MAX_CONCURRENT_UPLOADS)))

    def get_script_file(self) -> Optional[Path]:
        script_file = self.data.get('script_file')
        return Path(script_file) if script_file else None

    def validate(self, require_token: bool = True) -> None:
        """
        Check that everything a deployment needs is set.

        Args:
            require_token: Whether the API token must be present (False for dry runs)

        Raises:
            ConfigError: Listing every missing setting
        """
        missing = []
        if not self.get_account_id():
            missing.append('account_id (--account-id or CLOUDFLARE_ACCOUNT_ID)')
        if not self.get_script_name():
            missing.append('script_name (--script-name or SCRIPT_NAME)')
        if not self.data.get('assets_dir'):
            missing.append('assets_dir (--assets-dir or ASSETS_DIRECTORY)')
        if not self.data.get('main_module'):
            missing.append('main_module (--main-module)')
        if not self.data.get('compatibility_date'):
            missing.append('compatibility_date (--compatibility-date)')
        if require_token and not self.api_token:
            missing.append(f'API token ({API_TOKEN_ENV})')
        if missing:
            raise ConfigError("Missing configuration: " + ", ".join(missing))

        for key in self.STRING_SETTINGS:
            value = self.data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {type(value).__name__}")

        try:
            if self.get_timeout() <= 0:
                raise ConfigError("timeout must be positive")
            self.get_max_concurrent_uploads()
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}")
