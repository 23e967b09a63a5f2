"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (~/.bamboocli/config.yaml), and assembles the read-only
ClientSettings consumed by the API client.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from bamboocli.domain.models.common import ResourceClass
from bamboocli.domain.models.config import ClientSettings, ResourceClassConfig, default_resource_classes

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".bamboocli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
# Credentials stay verbatim: an all-digit key must keep its leading zeros.
RAW_STRING_ENV_VARS = frozenset({'BAMBOO_API_KEY', 'BAMBOO_SUBDOMAIN'})

_MISSING = object()

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Default values supplied by callers

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    # 3. Environment variables are consulted live by get_config
    _loaded = True
    logger.info("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        return float(value) if '.' in value else int(value)
    except ValueError:
        return value


def _lookup_nested(data: Dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    node: Any = data
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def env_var_name(key: str) -> str:
    """'client.request_timeout_seconds' -> 'CLIENT_REQUEST_TIMEOUT_SECONDS'."""
    return key.upper().replace('.', '_').replace('-', '_')


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Dotted keys address nested YAML mappings ('logging.level').

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        raw = os.environ[env_key]
        return raw if env_key in RAW_STRING_ENV_VARS else _coerce(raw)

    value = _lookup_nested(_config, key)
    if value is not _MISSING:
        return value

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_key() -> Optional[str]:
    """BambooHR API key (BAMBOO_API_KEY or bamboo.api_key)."""
    key = get_config('BAMBOO_API_KEY') or get_config('bamboo.api_key')
    return str(key) if key is not None else None


def get_subdomain() -> Optional[str]:
    """BambooHR company subdomain (BAMBOO_SUBDOMAIN or bamboo.subdomain)."""
    subdomain = get_config('BAMBOO_SUBDOMAIN') or get_config('bamboo.subdomain')
    return str(subdomain) if subdomain is not None else None


def _resource_class_names() -> set:
    names = set(default_resource_classes())
    configured = _lookup_nested(_config, 'resource_classes')
    if isinstance(configured, dict):
        names.update(configured)
    names.update(_test_config.get('resource_classes', {}) or {})
    return names


def get_resource_classes() -> Dict[ResourceClass, ResourceClassConfig]:
    """Per-class TTL and rate budget, defaults overlaid with configuration."""
    defaults = default_resource_classes()
    fallback = defaults[ResourceClass('default')]
    result: Dict[ResourceClass, ResourceClassConfig] = {}
    for name in sorted(_resource_class_names()):
        base = defaults.get(ResourceClass(name), fallback)
        prefix = f'resource_classes.{name}'
        result[ResourceClass(name)] = ResourceClassConfig(
            cache_ttl_seconds=float(get_config(f'{prefix}.cache_ttl_seconds', base.cache_ttl_seconds)),
            max_requests=int(get_config(f'{prefix}.max_requests', base.max_requests)),
            window_seconds=float(get_config(f'{prefix}.window_seconds', base.window_seconds)),
        )
    return result


def build_client_settings() -> ClientSettings:
    """Assembles ClientSettings from the loaded configuration.

    Raises:
        ValueError: If the API key or subdomain is missing, or a value is invalid.
    """
    api_key = get_api_key()
    subdomain = get_subdomain()
    if not api_key:
        raise ValueError("BambooHR API key not provided. Set BAMBOO_API_KEY or bamboo.api_key.")
    if not subdomain:
        raise ValueError("BambooHR subdomain not provided. Set BAMBOO_SUBDOMAIN or bamboo.subdomain.")

    return ClientSettings(
        api_key=api_key,
        subdomain=subdomain,
        base_url=get_config('bamboo.base_url'),
        request_timeout_seconds=float(get_config('client.request_timeout_seconds', 30)),
        max_retry_attempts=int(get_config('client.max_retry_attempts', 3)),
        retry_max_delay_ms=float(get_config('client.retry_max_delay_ms', 30_000)),
        retry_jitter_ms=float(get_config('client.retry_jitter_ms', 1_000)),
        coalesce_requests=bool(get_config('client.coalesce_requests', False)),
        resource_classes=get_resource_classes(),
    )


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
