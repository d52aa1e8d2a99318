"""Subprocess execution service for cfpulse."""

import os
import subprocess
from typing import Dict, Iterable, List, Optional

from cfpulse.errors import (
    CfPulseError,
    CommandTimeoutError,
    PlatformCommandError,
    TransientPlatformError,
)
from cfpulse.errors_catalog import actionable_error
from cfpulse.services.retry import is_transient

MASK = "****"


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None, subprocess_module=subprocess):
        self.logger = logger
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    @staticmethod
    def mask(cmd: List[str], sensitive: Iterable[str] = ()) -> str:
        hidden = {value for value in sensitive if value}
        return " ".join(MASK if part in hidden else part for part in cmd)

    def run(
        self,
        cmd: List[str],
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
        timeout: Optional[float] = None,
        sensitive: Iterable[str] = (),
    ) -> subprocess.CompletedProcess:
        sensitive = tuple(sensitive)
        cmd_str = self.mask(cmd, sensitive)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        try:
            result = self.subprocess.run(
                cmd,
                text=True,
                capture_output=True,
                timeout=effective_timeout,
                env=child_env,
            )
        except FileNotFoundError as exc:
            raise CfPulseError(actionable_error("cf_not_found", binary=cmd[0])) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"Command timed out after {effective_timeout:.0f}s: {cmd_str}"
            ) from exc
        except Exception as exc:
            raise CfPulseError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if result.stdout:
            self.logger.debug("Command output: %s", self._hide(result.stdout.strip(), sensitive))

        if result.returncode == 0 or not check:
            return result

        details = "\n".join(
            part.strip() for part in (result.stderr or "", result.stdout or "") if part.strip()
        )
        details = self._hide(details, sensitive)
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if details:
            message = f"{message}\n{details}"

        error = PlatformCommandError(message, returncode=result.returncode, stderr=details)
        if is_transient(error):
            raise TransientPlatformError(message, returncode=result.returncode, stderr=details)
        raise error

    @staticmethod
    def _hide(text: str, sensitive: Iterable[str]) -> str:
        # Very short values would mangle unrelated words.
        for value in sensitive:
            if value and len(value) >= 4:
                text = text.replace(value, MASK)
        return text
