"""Configuration helpers for the dross CLI."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, ValidationError

from .notion.client import DEFAULT_API_VERSION, DEFAULT_BASE_URL


class NotionCredentials(BaseModel):
    """Connection information for the Notion REST API."""

    token: str = Field(..., description="Notion integration token")
    base_url: HttpUrl = Field(DEFAULT_BASE_URL, description="Base URL of the Notion API")
    api_version: str = Field(DEFAULT_API_VERSION, description="Value sent in the Notion-Version header")


class IngestDefaults(BaseModel):
    """Default parameters for ingest runs."""

    window_days: float = Field(7.0, gt=0, description="How far back an edit counts as recent")
    root_budget_seconds: float = Field(30.0, ge=0, description="Wall-clock budget for root finding per page")
    indent: str = Field("\t", description="Indentation unit for one level of nesting")
    text_separator: str = Field(" ", description="Separator between rich text runs of one block")
    render_page_root: bool = Field(False, description="Nest block lines under the page title line")
    format_markers: bool = Field(False, description="Prefix headings and list items with markdown markers")
    skip_url_patterns: list[str] = Field(
        default_factory=list, description="Pages whose URL contains any of these are skipped"
    )


class DrossConfig(BaseModel):
    """Aggregate configuration for the CLI."""

    credentials: NotionCredentials
    defaults: IngestDefaults = Field(default_factory=IngestDefaults)


ENV_PREFIX = "DROSS"
TOKEN_ENV = "NOTION_TOKEN"
DEFAULT_CONFIG_PATHS = (
    Path.cwd() / "dross.toml",
    Path.home() / ".config" / "dross" / "config.toml",
)

_DEFAULT_KEYS = (
    "WINDOW_DAYS",
    "ROOT_BUDGET_SECONDS",
    "INDENT",
    "TEXT_SEPARATOR",
    "RENDER_PAGE_ROOT",
    "FORMAT_MARKERS",
)


@dataclasses.dataclass
class ConfigSource:
    """Result of attempting to resolve configuration data."""

    config: Optional[DrossConfig]
    path: Optional[Path]
    error: Optional[Exception]


def _get_env(name: str) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}_{name}")


def _load_env_defaults() -> dict[str, object]:
    """Return the ``DROSS_*`` ingest defaults set in the environment."""

    load_dotenv(override=False)

    defaults: dict[str, object] = {}
    for key in _DEFAULT_KEYS:
        value = _get_env(key)
        if value:
            defaults[key.lower()] = value
    patterns = _get_env("SKIP_URL_PATTERNS")
    if patterns:
        defaults["skip_url_patterns"] = [item.strip() for item in patterns.split(",") if item.strip()]

    return defaults


def _load_from_env() -> dict[str, object]:
    """Return configuration values found in the environment (and a ``.env`` file)."""

    defaults = _load_env_defaults()
    token = os.getenv(TOKEN_ENV) or _get_env("TOKEN")
    if not token:
        return {}

    credentials: dict[str, object] = {"token": token}
    for key in ("BASE_URL", "API_VERSION"):
        value = _get_env(key)
        if value:
            credentials[key.lower()] = value

    return {"credentials": credentials, "defaults": defaults}


def _load_toml(path: Path) -> Optional[dict]:
    if not path.exists():
        return None

    try:  # Python 3.11+
        import tomllib  # type: ignore
    except ModuleNotFoundError:  # pragma: no cover - Python <3.11 fallback
        import tomli as tomllib  # type: ignore

    with path.open("rb") as handle:
        return tomllib.load(handle)


def resolve_config(explicit_path: Optional[Path] = None) -> ConfigSource:
    """Discover configuration using the first available source.

    The priority order is:
    1. Explicit path provided via CLI argument.
    2. Default configuration files in the working directory or the user's config directory.
    3. Environment variables (``NOTION_TOKEN`` and the ``DROSS_`` prefix), including a ``.env`` file.
    """

    errors: list[Exception] = []
    sources: list[tuple[Optional[Path], dict]] = []

    if explicit_path:
        try:
            data = _load_toml(explicit_path)
            if data is not None:
                sources.append((explicit_path, data))
            else:
                errors.append(FileNotFoundError(f"Configuration file {explicit_path} does not exist"))
        except Exception as exc:  # pragma: no cover - configuration loading failure path
            errors.append(exc)

    if not sources:
        for path in DEFAULT_CONFIG_PATHS:
            try:
                data = _load_toml(path)
            except Exception as exc:  # pragma: no cover
                errors.append(exc)
                continue
            if data is not None:
                sources.append((path, data))
                break

    if not sources:
        env_data = _load_from_env()
        if env_data:
            sources.append((None, env_data))

    for path, data in sources:
        try:
            config = DrossConfig.model_validate(data)
            return ConfigSource(config=config, path=path, error=None)
        except ValidationError as exc:
            errors.append(exc)

    error = errors[0] if errors else None
    return ConfigSource(config=None, path=None, error=error)


def ensure_config(
    *,
    token: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> DrossConfig:
    """Resolve configuration from precedence order and fall back to explicit CLI options."""

    source = resolve_config(config_path)

    if source.config:
        config = source.config.model_copy(deep=True)
    else:
        if not token:
            hint = f" ({source.error})" if source.error else ""
            raise RuntimeError(
                f"Missing Notion token. Provide it via --token, the {TOKEN_ENV} environment variable"
                " or a configuration file" + hint
            )
        try:
            defaults = IngestDefaults.model_validate(_load_env_defaults())
        except ValidationError as exc:
            raise RuntimeError(f"Invalid {ENV_PREFIX}_* settings in the environment: {exc}") from exc
        config = DrossConfig(credentials=NotionCredentials(token=token), defaults=defaults)

    if token:
        config.credentials.token = token

    return config


def render_starter_config(token: str = "secret_...") -> str:
    """Return a commented TOML configuration holding the default settings."""

    defaults = IngestDefaults()
    patterns = ", ".join(f'"{pattern}"' for pattern in defaults.skip_url_patterns)
    return (
        "[credentials]\n"
        f'token = "{token}"\n'
        f'# base_url = "{DEFAULT_BASE_URL}"\n'
        f'# api_version = "{DEFAULT_API_VERSION}"\n'
        "\n"
        "[defaults]\n"
        f"window_days = {defaults.window_days:g}\n"
        f"root_budget_seconds = {defaults.root_budget_seconds:g}\n"
        'indent = "\\t"\n'
        f'text_separator = "{defaults.text_separator}"\n'
        f"render_page_root = {str(defaults.render_page_root).lower()}\n"
        f"format_markers = {str(defaults.format_markers).lower()}\n"
        f"skip_url_patterns = [{patterns}]\n"
    )
