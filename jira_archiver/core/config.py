"""Central configuration, constants, and settings loading."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

# =============================================================================
# Jira Connection Settings
# =============================================================================
TIMEZONE = "UTC"

# Endpoints are relative to the server base URL
SEARCH_ENDPOINT = "rest/api/3/search/jql"
ATTACHMENT_ENDPOINT = "rest/api/3/attachment"  # content at <endpoint>/<id>/content

# Environment variable names; first token name found wins
ENV_SERVER = "JIRA_SERVER"
ENV_EMAIL = "JIRA_EMAIL"
ENV_TOKENS: tuple[str, ...] = ("JIRA_API_TOKEN", "JIRA_TOKEN")

# =============================================================================
# Tuning knobs
# =============================================================================
DEFAULT_PAGE_SIZE: int = 100  # maxResults hint for raw search pagination
DEFAULT_TIMEOUT: float = 60.0  # seconds per HTTP request
DEFAULT_MAX_WORKERS: int = 1  # 1 = sequential processing
DOWNLOAD_CHUNK_SIZE: int = 64 * 1024
PARTIAL_SUFFIX = ".part"

DEFAULT_CONFIG_FILENAME = "jira-archiver.yaml"


@dataclass(slots=True)
class ArchiverSettings:
    server: str | None = None
    email: str | None = None
    token: str | None = None
    archive_root: Path = Path(".")
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    dry_run: bool = False

    @property
    def base_url(self) -> str | None:
        if not self.server:
            return None
        return self.server.rstrip("/")

    @property
    def has_credential(self) -> bool:
        return bool(self.email and self.token)

    def require_base_url(self) -> str:
        base = self.base_url
        if not base:
            raise ConfigurationError("No Jira server configured (use --server or JIRA_SERVER)")
        return base

    def require_credential(self) -> tuple[str, str]:
        if not self.has_credential:
            raise ConfigurationError("Jira credential missing (email and API token are both required)")
        return str(self.email), str(self.token)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    # Accept either a top-level mapping or a [jira] section like the secrets file
    section = data.get("jira")
    if isinstance(section, dict):
        merged = {k: v for k, v in data.items() if k != "jira"}
        merged.update(section)
        data = merged
    return {str(k).lower(): v for k, v in data.items()}


def _from_env(env: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if env.get(ENV_SERVER):
        out["server"] = env[ENV_SERVER]
    if env.get(ENV_EMAIL):
        out["email"] = env[ENV_EMAIL]
    for name in ENV_TOKENS:
        if env.get(name):
            out["token"] = env[name]
            break
    return out


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(ArchiverSettings)}
    out: dict[str, Any] = {}
    for key, value in values.items():
        if key == "api_token":
            key = "token"
        if key not in known or value is None:
            continue
        try:
            if key == "archive_root":
                value = Path(value).expanduser()
            elif key in ("page_size", "max_workers"):
                value = int(value)
            elif key == "timeout":
                value = float(value)
            elif key == "dry_run":
                value = bool(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid value for {key}: {value!r}") from exc
        out[key] = value
    return out


def load_settings(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ArchiverSettings:
    """Build settings with precedence: explicit overrides > environment > YAML file > defaults.

    When ``config_path`` is None, ``jira-archiver.yaml`` in the working directory
    is used if present. ``None`` override values are ignored so callers can pass
    unset CLI options straight through.
    """
    env = os.environ if env is None else env
    settings = ArchiverSettings()

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        settings = replace(settings, **_coerce(_read_yaml(path)))
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if default_path.exists():
            settings = replace(settings, **_coerce(_read_yaml(default_path)))

    settings = replace(settings, **_coerce(_from_env(env)))
    settings = replace(settings, **_coerce(overrides))

    if settings.page_size <= 0:
        raise ConfigurationError("page_size must be positive")
    if settings.max_workers <= 0:
        raise ConfigurationError("max_workers must be positive")
    if settings.timeout <= 0:
        raise ConfigurationError("timeout must be positive")
    return settings
