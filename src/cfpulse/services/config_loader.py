"""Configuration loader for cfpulse."""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from cfpulse import constants
from cfpulse.errors import ConfigError
from cfpulse.errors_catalog import actionable_error


@dataclass(frozen=True)
class CfSettings:
    """Connection details and time budgets for one cfpulse process."""

    api_host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    organization: Optional[str] = None
    space: Optional[str] = None
    skip_ssl_validation: bool = False
    cf_binary: str = "cf"
    clone_timeout_seconds: float = constants.CLONE_TIMEOUT_SECONDS
    push_staging_timeout_seconds: float = constants.PUSH_STAGING_TIMEOUT_SECONDS
    staging_timeout_seconds: float = constants.STAGING_TIMEOUT_SECONDS
    startup_timeout_seconds: float = constants.STARTUP_TIMEOUT_SECONDS
    command_timeout_seconds: float = constants.COMMAND_TIMEOUT_SECONDS
    retry_attempts: int = constants.RETRY_ATTEMPTS
    retry_delay_seconds: float = constants.RETRY_DELAY_SECONDS

    def validate(self, logger: Optional[logging.Logger] = None) -> "CfSettings":
        logger = logger or logging.getLogger("cfpulse")
        logger.info("Validating Cloud Foundry configuration...")

        missing = []
        if not _has_text(self.api_host):
            missing.append("API host (CF_APIHOST)")
        if not _has_text(self.username):
            missing.append("username (CF_USERNAME)")
        if not _has_text(self.password):
            missing.append("password (CF_PASSWORD)")

        if not _has_text(self.organization):
            logger.warning("CF organization is not configured. Set CF_ORG or `organization`.")
        if not _has_text(self.space):
            logger.warning("CF space is not configured. Set CF_SPACE or `space`.")

        if missing:
            raise ConfigError(actionable_error("missing_settings", fields=", ".join(missing)))

        logger.info(
            "Cloud Foundry configuration validation passed. API: %s, Org: %s, Space: %s",
            self.api_host,
            self.organization,
            self.space,
        )
        return self


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "on", "1"):
        return True
    if text in ("false", "no", "off", "0"):
        return False
    raise ConfigError(f"Invalid boolean configuration value: {value!r}")


class ConfigLoader:
    """Loads YAML configuration files and CF_* environment overrides."""

    SUPPORTED_KEYS = {item.name for item in fields(CfSettings)}

    ENVIRONMENT_KEYS = {
        "CF_APIHOST": "api_host",
        "CF_USERNAME": "username",
        "CF_PASSWORD": "password",
        "CF_ORG": "organization",
        "CF_SPACE": "space",
    }

    FLOAT_KEYS = {
        "clone_timeout_seconds",
        "push_staging_timeout_seconds",
        "staging_timeout_seconds",
        "startup_timeout_seconds",
        "command_timeout_seconds",
        "retry_delay_seconds",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigError(f"Unknown configuration keys: {unknown_list}")

        return parsed

    def default_config_path(self, cwd: Optional[str] = None) -> Optional[str]:
        candidate = os.path.join(cwd or os.getcwd(), constants.DEFAULT_CONFIG_FILE)
        return candidate if os.path.exists(candidate) else None

    def load_settings(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> CfSettings:
        values = self.load(config_path or self.default_config_path())
        environ = os.environ if environ is None else environ

        for env_name, key in self.ENVIRONMENT_KEYS.items():
            if environ.get(env_name):
                values[key] = environ[env_name]

        try:
            for key in self.FLOAT_KEYS & set(values):
                values[key] = float(values[key])
            if "retry_attempts" in values:
                values["retry_attempts"] = int(values["retry_attempts"])
            if "skip_ssl_validation" in values:
                values["skip_ssl_validation"] = _as_bool(values["skip_ssl_validation"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid numeric configuration value: {exc}") from exc

        for key in ("organization", "space", "api_host", "username", "password"):
            if values.get(key) is not None:
                values[key] = str(values[key])

        return replace(CfSettings(), **values)
