"""Application deployment operations used while cloning."""

from typing import Optional

from cfpulse.constants import COMMAND_OVERHEAD_SECONDS
from cfpulse.errors import RuntimeMismatchError
from cfpulse.models import AppConfig, PlaceholderArtifact, RuntimeIdentity, TargetContext
from cfpulse.services.retry import execute_with_retry


class ApplicationDeploymentService:
    """Pushes placeholders and drives copy/scale/start on the target app."""

    def __init__(self, operations, config_service, settings, logger):
        self.operations = operations
        self.config_service = config_service
        self.settings = settings
        self.logger = logger

    def _call(self, description: str, operation, deadline=None):
        return execute_with_retry(
            operation,
            max_attempts=self.settings.retry_attempts,
            delay=self.settings.retry_delay_seconds,
            deadline=deadline,
            logger=self.logger,
            description=description,
        )

    @staticmethod
    def _bound(deadline, timeout: Optional[float]) -> Optional[float]:
        return deadline.bound(timeout) if deadline is not None else timeout

    def _platform_budget(self, *waits: float) -> float:
        return sum(waits) + COMMAND_OVERHEAD_SECONDS

    def deploy_placeholder(
        self,
        app_name: str,
        artifact: PlaceholderArtifact,
        runtime: RuntimeIdentity,
        config: AppConfig,
        context: Optional[TargetContext] = None,
        deadline=None,
    ):
        """Pushes the placeholder stopped, pinned to `runtime` and sized like `config`."""
        session = self.operations.resolve(context)
        staging_timeout = self.settings.push_staging_timeout_seconds

        self._call(
            f"Pushing placeholder '{app_name}'",
            lambda: session.push(
                app_name,
                str(artifact.path),
                no_start=True,
                memory_mb=config.memory_limit_mb,
                disk_mb=config.disk_quota_mb,
                instances=config.instances,
                runtime=runtime,
                staging_timeout=staging_timeout,
                timeout=self._bound(deadline, self._platform_budget(staging_timeout)),
            ),
            deadline,
        )
        self.logger.debug("Placeholder deployed with matching buildpack: %s", runtime.label)

        self.config_service.apply_environment_variables(
            app_name,
            config.environment_variables,
            context,
            deadline=deadline,
        )

    def copy_source(
        self,
        source_app: str,
        target_app: str,
        context: Optional[TargetContext] = None,
        deadline=None,
    ):
        session = self.operations.resolve(context)
        staging = self.settings.staging_timeout_seconds
        startup = self.settings.startup_timeout_seconds

        self._call(
            f"Copying source {source_app} -> {target_app}",
            lambda: session.copy_source(
                source_app,
                target_app,
                restart=False,
                staging_timeout=staging,
                startup_timeout=startup,
                timeout=self._bound(deadline, self._platform_budget(staging, startup)),
            ),
            deadline,
        )
        self.logger.debug("Copied source from %s to %s", source_app, target_app)

    def rescale(
        self,
        app_name: str,
        config: AppConfig,
        context: Optional[TargetContext] = None,
        deadline=None,
    ):
        session = self.operations.resolve(context)
        self._call(
            f"Scaling '{app_name}'",
            lambda: session.scale(
                app_name,
                memory_mb=config.memory_limit_mb,
                disk_mb=config.disk_quota_mb,
                instances=config.instances,
                timeout=self._bound(deadline, self.settings.command_timeout_seconds),
            ),
            deadline,
        )
        self.logger.debug("Scaled %s to match source configuration", app_name)

    def start(self, app_name: str, context: Optional[TargetContext] = None, deadline=None):
        session = self.operations.resolve(context)
        staging = self.settings.staging_timeout_seconds
        startup = self.settings.startup_timeout_seconds

        self._call(
            f"Starting '{app_name}'",
            lambda: session.start(
                app_name,
                staging_timeout=staging,
                startup_timeout=startup,
                timeout=self._bound(deadline, self._platform_budget(staging, startup)),
            ),
            deadline,
        )
        self.logger.debug("Started %s with pre-configured buildpack", app_name)

    def verify_runtime(
        self,
        app_name: str,
        expected: RuntimeIdentity,
        context: Optional[TargetContext] = None,
        deadline=None,
    ) -> RuntimeIdentity:
        actual = self.config_service.capture_runtime_identity(app_name, context, deadline=deadline)
        if actual != expected:
            raise RuntimeMismatchError(app_name, expected.label, actual.label)

        self.logger.info("Buildpack preserved during source copy: %s", actual.label)
        return actual
