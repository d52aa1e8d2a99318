import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import List, Optional, Tuple

from rich.console import Console

from .errors import CancellationError, CfPulseError, CloneError, CloneTimeoutError
from .models import (
    AppConfig,
    CloneResult,
    ClonePlan,
    CloneState,
    PlaceholderArtifact,
    RuntimeIdentity,
    TargetContext,
)
from .services.app_config import ApplicationConfigService
from .services.cf_client import CfSession
from .services.command_runner import CommandRunner
from .services.config_loader import CfSettings
from .services.deadline import Deadline
from .services.deployment import ApplicationDeploymentService
from .services.filesystem import FileSystemService
from .services.operations import OperationsCache
from .services.placeholder import BuildpackPlaceholderGenerator

console = Console(stderr=True)
logger = logging.getLogger("cfpulse")

# Failures from this state onwards may leave the target app on the platform.
PLATFORM_SIDE_EFFECT_STATES = (
    CloneState.PLACEHOLDER_DEPLOYED,
    CloneState.SOURCE_COPIED,
    CloneState.SCALED,
    CloneState.STARTED,
    CloneState.VERIFIED,
)


def build_operations(settings: CfSettings) -> OperationsCache:
    """Wires the session cache to real `cf` CLI sessions."""
    runner = CommandRunner(logger=logger, default_timeout=settings.command_timeout_seconds)
    return OperationsCache(
        session_factory=lambda context: CfSession.connect(settings, context, runner, logger),
        default_organization=settings.organization,
        default_space=settings.space,
        logger=logger,
    )


class CfApplicationCloner:
    """Clones an application by deploying a runtime-matched placeholder and copying source into it."""

    def __init__(
        self,
        settings: CfSettings,
        operations: Optional[OperationsCache] = None,
        config_service: Optional[ApplicationConfigService] = None,
        placeholder_generator: Optional[BuildpackPlaceholderGenerator] = None,
        deployment_service: Optional[ApplicationDeploymentService] = None,
        filesystem_service: Optional[FileSystemService] = None,
    ):
        self.settings = settings
        self.operations = operations or build_operations(settings)
        self.filesystem_service = filesystem_service or FileSystemService(logger=logger, console=console)
        self.config_service = config_service or ApplicationConfigService(
            operations=self.operations,
            logger=logger,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay_seconds,
            command_timeout=settings.command_timeout_seconds,
        )
        self.placeholder_generator = placeholder_generator or BuildpackPlaceholderGenerator(
            filesystem_service=self.filesystem_service,
            logger=logger,
        )
        self.deployment_service = deployment_service or ApplicationDeploymentService(
            operations=self.operations,
            config_service=self.config_service,
            settings=settings,
            logger=logger,
        )

    def _run_step(
        self,
        state: CloneState,
        states: List[CloneState],
        names: Tuple[str, str],
        deadline: Deadline,
        callback,
        /,
        *args,
        **kwargs,
    ):
        source_app, target_app = names
        logger.debug("Running clone step: %s", state.value)
        try:
            result = callback(*args, **kwargs)
        except Exception as exc:
            cause = exc
            if deadline.expired and not isinstance(exc, CancellationError):
                cause = CloneTimeoutError(
                    f"Clone exceeded its {self.settings.clone_timeout_seconds:.0f}s time budget: {exc}"
                )
                cause.__cause__ = exc
            raise CloneError(source_app, target_app, state, cause) from exc

        states.append(state)
        logger.debug("Clone step completed: %s", state.value)
        return result

    def capture_snapshot(
        self,
        app_name: str,
        context: Optional[TargetContext],
        deadline: Deadline,
    ) -> Tuple[AppConfig, RuntimeIdentity]:
        """Reads sizing/environment and runtime identity of the source app concurrently."""
        console.print(f"[blue]Capturing configuration of '{app_name}'...[/blue]")
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="cfpulse-snapshot") as executor:
            config_future = executor.submit(
                self.config_service.capture_config, app_name, context, deadline
            )
            runtime_future = executor.submit(
                self.config_service.capture_runtime_identity, app_name, context, deadline
            )
            try:
                config = config_future.result(timeout=deadline.remaining())
                runtime = runtime_future.result(timeout=deadline.remaining())
            except FutureTimeoutError as exc:
                deadline.cancel()
                raise CloneTimeoutError(
                    f"Snapshot of '{app_name}' did not finish within the clone time budget."
                ) from exc
            except BaseException:
                # Stops the sibling read at its next retry boundary.
                deadline.cancel()
                raise

        logger.info(
            "Source app %s: memory=%sM, disk=%sM, instances=%s, buildpack=%s, env vars=%s",
            app_name,
            config.memory_limit_mb,
            config.disk_quota_mb,
            config.instances,
            runtime.label,
            len(config.environment_variables),
        )
        return config, runtime

    def cleanup(self, artifact: Optional[PlaceholderArtifact]):
        if artifact is None:
            return
        logger.debug("Cleaning up placeholder directory: %s", artifact.path)
        self.filesystem_service.cleanup_dir(str(artifact.path))

    def clone(
        self,
        source_app: str,
        target_app: str,
        organization: Optional[str] = None,
        space: Optional[str] = None,
    ) -> CloneResult:
        if not source_app or not target_app:
            raise CfPulseError("Both source and target application names are required.")
        if source_app == target_app:
            raise CfPulseError("Source and target application names must differ.")

        context = self.operations.context_for(organization, space)
        deadline = Deadline(self.settings.clone_timeout_seconds)
        states: List[CloneState] = [CloneState.START]
        names = (source_app, target_app)
        artifact: Optional[PlaceholderArtifact] = None
        started = time.monotonic()

        logger.info("Starting clone operation: %s -> %s", source_app, target_app)
        try:
            config, runtime = self._run_step(
                CloneState.SNAPSHOT_CAPTURED,
                states,
                names,
                deadline,
                self.capture_snapshot,
                source_app,
                context,
                deadline,
            )
            plan = ClonePlan(
                source_app=source_app,
                target_app=target_app,
                context=context,
                config=config,
                runtime=runtime,
            )

            console.print(f"[blue]Generating {runtime.family.value} placeholder...[/blue]")
            artifact = self._run_step(
                CloneState.PLACEHOLDER_GENERATED,
                states,
                names,
                deadline,
                self.placeholder_generator.generate,
                plan.target_app,
                plan.runtime,
            )

            console.print(f"[blue]Deploying placeholder '{target_app}' ({runtime.label})...[/blue]")
            self._run_step(
                CloneState.PLACEHOLDER_DEPLOYED,
                states,
                names,
                deadline,
                self.deployment_service.deploy_placeholder,
                plan.target_app,
                artifact,
                plan.runtime,
                plan.config,
                plan.context,
                deadline=deadline,
            )

            console.print(f"[blue]Copying source {source_app} -> {target_app}...[/blue]")
            self._run_step(
                CloneState.SOURCE_COPIED,
                states,
                names,
                deadline,
                self.deployment_service.copy_source,
                plan.source_app,
                plan.target_app,
                plan.context,
                deadline=deadline,
            )

            self._run_step(
                CloneState.SCALED,
                states,
                names,
                deadline,
                self.deployment_service.rescale,
                plan.target_app,
                plan.config,
                plan.context,
                deadline=deadline,
            )

            console.print(f"[blue]Starting '{target_app}'...[/blue]")
            self._run_step(
                CloneState.STARTED,
                states,
                names,
                deadline,
                self.deployment_service.start,
                plan.target_app,
                plan.context,
                deadline=deadline,
            )

            self._run_step(
                CloneState.VERIFIED,
                states,
                names,
                deadline,
                self.deployment_service.verify_runtime,
                plan.target_app,
                plan.runtime,
                plan.context,
                deadline=deadline,
            )
            states.append(CloneState.DONE)
        except CloneError as exc:
            states.append(CloneState.FAILED)
            logger.error("%s", exc)
            if exc.state in PLATFORM_SIDE_EFFECT_STATES:
                logger.warning(
                    "Target app '%s' may be left partially cloned; it is not rolled back.",
                    target_app,
                )
            console.print(f"[bold red]Clone failed at step '{exc.step}'.[/bold red]")
            raise
        finally:
            deadline.cancel()
            self.cleanup(artifact)

        result = CloneResult(
            source_app=source_app,
            target_app=target_app,
            context=context,
            runtime=runtime,
            config=config,
            states=tuple(states),
            duration_seconds=time.monotonic() - started,
        )
        logger.info("Successfully cloned %s to %s", source_app, target_app)
        console.print(f"[bold green]{result.summary()}[/bold green]")
        return result
