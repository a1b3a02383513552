"""YAML + env var config loading with pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from cspguard.config.directive_defaults import get_default_directives
from cspguard.middleware.csp_builder import dashify
from cspguard.middleware.nonce import nonce_source

logger = structlog.get_logger()


class CSPSettings(BaseSettings):
    """Service configuration loaded from env vars (``CSP_`` prefix) and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    report_only: bool = False
    # YAML file with a ``directives`` mapping; empty means built-in defaults
    directives_file: str = ""
    # Directives that get a per-request nonce source appended
    nonce_directives: list[str] = []
    log_level: str = "info"
    log_json: bool = True


_settings: CSPSettings | None = None


def get_settings() -> CSPSettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> CSPSettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = CSPSettings()
    logger.info(
        "config_loaded",
        report_only=_settings.report_only,
        directives_file=_settings.directives_file or None,
    )
    return _settings


def load_directives_file(path: str | Path) -> dict[str, Any]:
    """Load a YAML policy file. A missing file raises FileNotFoundError.

    Expected shape::

        report_only: false
        directives:
          default-src: ["'self'"]
          upgrade-insecure-requests: []
    """
    path = Path(path)
    if not path.exists():
        logger.error("directives_file_not_found", path=str(path))
        raise FileNotFoundError(f"CSP directives file not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def build_options(settings: CSPSettings | None = None) -> dict[str, Any]:
    """Assemble content_security_policy() options from settings and the policy file."""
    settings = settings or get_settings()
    options: dict[str, Any] = {}
    if settings.directives_file:
        options.update(load_directives_file(settings.directives_file))

    if "report_only" not in options and "reportOnly" not in options:
        options["report_only"] = settings.report_only

    directives = options.get("directives")
    if directives is None:
        directives = get_default_directives()
    elif isinstance(directives, Mapping):
        directives = dict(directives)
    else:
        # Not a mapping: normalize_directives reports it.
        return options

    for name in settings.nonce_directives:
        key = _find_directive_key(directives, name)
        if key is None:
            directives[name] = [nonce_source]
            continue
        value = directives[key]
        if isinstance(value, str):
            value = [value]
        elif not isinstance(value, (list, tuple)):
            # Left for normalize_directives to reject or skip.
            continue
        directives[key] = [*value, nonce_source]

    options["directives"] = directives
    return options


def _find_directive_key(directives: dict[str, Any], name: str) -> str | None:
    target = dashify(name)
    for key in directives:
        if isinstance(key, str) and dashify(key) == target:
            return key
    return None
