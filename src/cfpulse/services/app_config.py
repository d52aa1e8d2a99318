"""Reads and applies application sizing, runtime and environment configuration."""

import json
from typing import Dict, Mapping, Optional

from cfpulse.errors import CancellationError, PreconditionError
from cfpulse.errors_catalog import actionable_error
from cfpulse.models import AppConfig, RuntimeIdentity, TargetContext
from cfpulse.services.retry import execute_with_retry


class ApplicationConfigService:
    """Snapshots an application's configuration and re-applies environment variables."""

    def __init__(
        self,
        operations,
        logger,
        retry_attempts: int = 3,
        retry_delay: float = 2.0,
        command_timeout: Optional[float] = None,
    ):
        self.operations = operations
        self.logger = logger
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.command_timeout = command_timeout

    def _call(self, description: str, operation, deadline=None):
        return execute_with_retry(
            operation,
            max_attempts=self.retry_attempts,
            delay=self.retry_delay,
            deadline=deadline,
            logger=self.logger,
            description=description,
        )

    def _timeout(self, deadline) -> Optional[float]:
        if deadline is None:
            return self.command_timeout
        return deadline.bound(self.command_timeout)

    def capture_config(
        self,
        app_name: str,
        context: Optional[TargetContext] = None,
        deadline=None,
    ) -> AppConfig:
        session = self.operations.resolve(context)
        detail = self._call(
            f"Reading application '{app_name}'",
            lambda: session.get_application(app_name, timeout=self._timeout(deadline)),
            deadline,
        )

        missing = [
            label
            for label, value in (
                ("memory", detail.memory_limit_mb),
                ("disk", detail.disk_quota_mb),
                ("instances", detail.instances),
            )
            if value is None
        ]
        if missing:
            raise PreconditionError(
                f"Application '{app_name}' does not report {', '.join(missing)} sizing."
            )

        env_vars = self.get_environment_variables(app_name, context, deadline=deadline)
        return AppConfig(
            memory_limit_mb=int(detail.memory_limit_mb),
            disk_quota_mb=int(detail.disk_quota_mb),
            instances=int(detail.instances),
            environment_variables=env_vars,
        )

    def capture_runtime_identity(
        self,
        app_name: str,
        context: Optional[TargetContext] = None,
        deadline=None,
    ) -> RuntimeIdentity:
        session = self.operations.resolve(context)
        detail = self._call(
            f"Reading buildpacks of '{app_name}'",
            lambda: session.get_application(app_name, timeout=self._timeout(deadline)),
            deadline,
        )

        if detail.lifecycle_type != "buildpack":
            raise PreconditionError(
                f"Application '{app_name}' uses the '{detail.lifecycle_type}' lifecycle; "
                "only buildpack applications can be cloned."
            )
        if detail.runtime_identity is None or not detail.runtime_identity.buildpacks:
            raise PreconditionError(actionable_error("missing_runtime", app=app_name))

        return detail.runtime_identity

    def get_environment_variables(
        self,
        app_name: str,
        context: Optional[TargetContext] = None,
        deadline=None,
    ) -> Dict[str, str]:
        """Returns user-provided variables only; a failed read yields an empty set."""
        session = self.operations.resolve(context)
        try:
            raw = self._call(
                f"Reading environment of '{app_name}'",
                lambda: session.get_environment(app_name, timeout=self._timeout(deadline)),
                deadline,
            )
        except CancellationError:
            raise
        except Exception as exc:
            self.logger.warning(
                "Could not read environment variables of %s, continuing without them: %s",
                app_name,
                exc,
            )
            return {}

        return {str(key): "" if value is None else _as_text(value) for key, value in raw.items()}

    def apply_environment_variables(
        self,
        app_name: str,
        env_vars: Mapping[str, str],
        context: Optional[TargetContext] = None,
        deadline=None,
    ):
        if not env_vars:
            return

        session = self.operations.resolve(context)
        for key, value in env_vars.items():
            self._call(
                f"Setting environment variable {key} on '{app_name}'",
                lambda key=key, value=value: session.set_environment_variable(
                    app_name, key, value, timeout=self._timeout(deadline)
                ),
                deadline,
            )
            self.logger.debug("Set environment variable %s on %s", key, app_name)


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)
