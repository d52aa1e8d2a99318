"""Domain errors for cfpulse."""

from typing import Optional


class CfPulseError(RuntimeError):
    """Raised when a platform operation cannot continue safely."""


class ConfigError(CfPulseError):
    """Raised when the Cloud Foundry connection settings are unusable."""


class PlatformCommandError(CfPulseError):
    """Raised when a `cf` command exits with a failure status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class TransientPlatformError(PlatformCommandError):
    """A platform failure that is expected to succeed when retried."""

    retryable = True


class CommandTimeoutError(TransientPlatformError):
    """Raised when a `cf` command exceeds its time budget and is killed."""


class AppNotFoundError(CfPulseError):
    """Raised when an application does not exist in the targeted space."""


class PreconditionError(CfPulseError):
    """Raised when an application lacks the metadata needed to clone it."""


class PlaceholderError(CfPulseError):
    """Raised when a placeholder source tree cannot be written."""


class RuntimeMismatchError(CfPulseError):
    """Raised when a cloned app does not run with the source app's buildpacks."""

    def __init__(self, app_name: str, expected, actual):
        super().__init__(
            f"Runtime mismatch on '{app_name}': expected buildpack(s) '{expected}', "
            f"but the started app reports '{actual}'."
        )
        self.app_name = app_name
        self.expected = expected
        self.actual = actual


class TargetError(CfPulseError):
    """Raised when an organization/space pair cannot be targeted."""


class CancellationError(CfPulseError):
    """Base class for an invocation that was stopped before completing."""


class CloneTimeoutError(CancellationError):
    """Raised when the end-to-end clone budget is exhausted."""


class CloneCancelledError(CancellationError):
    """Raised when a clone invocation is cancelled explicitly."""


class CloneError(CfPulseError):
    """Raised when a clone pipeline step fails; wraps the underlying cause."""

    def __init__(self, source_app: str, target_app: str, state, cause: BaseException):
        self.step = getattr(state, "value", str(state))
        super().__init__(
            f"Failed to clone application {source_app} -> {target_app} "
            f"at step '{self.step}': {cause}"
        )
        self.source_app = source_app
        self.target_app = target_app
        self.state = state
        self.cause = cause
