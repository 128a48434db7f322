"""Load :class:`PublishSettings` from a YAML file overlaid with environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from gardenpub.models.settings import PublishSettings


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES: tuple[str, ...] = ("garden.yaml", "garden.yml")
CONFIG_PATH_ENV = "GARDEN_CONFIG"

_ENV_FIELDS: Mapping[str, str] = {
    "GARDEN_GITHUB_REPO": "github_repo",
    "GARDEN_GITHUB_USERNAME": "github_user_name",
    "GARDEN_GITHUB_TOKEN": "github_token",
    "GARDEN_GITHUB_API_URL": "github_api_url",
    "GARDEN_BRANCH": "branch",
    "GARDEN_VAULT_PATH": "vault_path",
    "GARDEN_EXPORT_PATH": "export_path",
    "GARDEN_PATH_REWRITE_RULES": "path_rewrite_rules",
    "GARDEN_PUBLISH_FLAG": "publish_flag",
    "GARDEN_SLUGIFY_PATHS": "slugify_paths",
    "GARDEN_TIMEOUT": "operation_timeout",
    "GARDEN_DEV_PLUGIN_PATH": "dev_plugin_path",
}


def _find_config(config_path: Path | str | None, env: Mapping[str, str]) -> Path | None:
    if config_path is None and env.get(CONFIG_PATH_ENV):
        config_path = env[CONFIG_PATH_ENV]

    if config_path is None:
        for candidate in DEFAULT_CONFIG_FILES:
            if Path(candidate).is_file():
                return Path(candidate)
        return None

    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    return path


def _read_config(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_settings(
    config_path: Path | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> PublishSettings:
    """Build settings from, in increasing precedence: the config file, environment, ``overrides``.

    ``GITHUB_TOKEN`` is honoured when ``GARDEN_GITHUB_TOKEN`` is not set. Invalid
    values raise :class:`pydantic.ValidationError`.
    """

    environ = os.environ if env is None else env
    values: dict[str, Any] = {}

    path = _find_config(config_path, environ)
    if path is not None:
        logger.debug("Loading settings from %s", path)
        values.update(_read_config(path))

    if environ.get("GITHUB_TOKEN"):
        values["github_token"] = environ["GITHUB_TOKEN"]
    for env_key, field_name in _ENV_FIELDS.items():
        raw = environ.get(env_key)
        if raw is not None and raw != "":
            values[field_name] = raw

    values.update({key: value for key, value in overrides.items() if value is not None})
    return PublishSettings.model_validate(values)
