"""Loading of the WeCom provider configuration.

The configuration is a YAML mapping, either at the top level or nested under a
``wecom:`` key. String values may reference external values:

- ``${ENV_VAR}``: replaced by the environment variable (anywhere in the string)
- ``file://path``: replaced by the stripped content of a local file

Example::

    wecom:
      client_id: ww0123456789abcdef
      client_secret: ${WECOM_CORP_SECRET}
      agent_id: "1000002"
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import WecomAuthConfigModel
from .providers.wecom import WecomProviderAdapter

logger = logging.getLogger(__name__)

ENV_VAR_PATTERN = re.compile(r"\${([A-Za-z0-9_]+)}")
FILE_URL_PATTERN = re.compile(r"file://(.+)")

CONFIG_ENV_VAR = "WECOM_AUTH_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".wecom-auth" / "config.yml"

__all__ = [
    "create_provider_adapter",
    "interpolate_all",
    "load_provider_config",
    "resolve_env_var",
    "resolve_file_url",
]


def is_external_reference(value: Any) -> bool:
    """Check if a value contains any external reference."""
    if not isinstance(value, str):
        return False
    return value.startswith("file://") or ENV_VAR_PATTERN.search(value) is not None


def resolve_env_var(value: str) -> str:
    """Resolve ``${ENV_VAR}`` references in a string.

    Raises:
        ValueError: If an environment variable is not set
    """
    result = value
    for env_var in ENV_VAR_PATTERN.findall(value):
        if env_var not in os.environ:
            raise ValueError(f"Environment variable {env_var} is not set")
        result = result.replace(f"${{{env_var}}}", os.environ[env_var])
    return result


def resolve_file_url(file_url: str) -> str:
    """Read the value of a ``file://`` reference.

    Relative paths are resolved against the current working directory.

    Raises:
        ValueError: If the URL is malformed or the path is not a readable file
        FileNotFoundError: If the file does not exist
    """
    match = FILE_URL_PATTERN.match(file_url)
    if not match:
        raise ValueError(
            f"Invalid file URL format: '{file_url}'. Expected format: file://path/to/file"
        )

    file_path_str = match.group(1)
    file_path = Path(file_path_str) if file_path_str.startswith("/") else Path.cwd() / file_path_str

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if not file_path.is_file():
        raise ValueError(f"Path is not a file: {file_path}")

    try:
        content = file_path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ValueError(f"Error reading file '{file_path}': {e}") from e

    if not content:
        logger.warning("Referenced file is empty", extra={"path": str(file_path)})
    return content


def interpolate_all(config: Any) -> Any:
    """Recursively resolve all external references in a configuration."""
    if isinstance(config, str) and is_external_reference(config):
        if config.startswith("file://"):
            return resolve_file_url(config)
        return resolve_env_var(config)
    elif isinstance(config, dict):
        return {k: interpolate_all(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [interpolate_all(item) for item in config]
    return config


def load_provider_config(path: str | Path | None = None) -> WecomAuthConfigModel:
    """Load the provider config from ``path``, ``$WECOM_AUTH_CONFIG`` or the default path."""
    config_path = Path(path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        raise FileNotFoundError(f"WeCom auth config not found at {config_path}")

    with open(config_path, encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        raise ValueError("WeCom auth config must be a mapping")

    if "wecom" in config_data:
        config_data = config_data["wecom"] or {}
        if not isinstance(config_data, dict):
            raise ValueError("The 'wecom' section must be a mapping")

    config_data = interpolate_all(config_data)

    try:
        return WecomAuthConfigModel.model_validate(config_data)
    except ValidationError as exc:
        raise ValueError(f"Invalid WeCom auth config: {exc}") from exc


def create_provider_adapter(
    wecom_config: WecomAuthConfigModel | None = None,
) -> WecomProviderAdapter:
    """Create a configured adapter, loading the config file when none is given."""
    if wecom_config is None:
        wecom_config = load_provider_config()
    if not wecom_config.client_id or not wecom_config.client_secret:
        raise ValueError("WeCom provider selected but client_id/client_secret are missing")
    return WecomProviderAdapter(wecom_config)
