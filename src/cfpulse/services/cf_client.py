"""Cloud Foundry CLI session bound to one organization/space target."""

import json
import math
import re
import shutil
import tempfile
from typing import Any, Dict, List, Optional

from packaging import version

from cfpulse import constants
from cfpulse.errors import AppNotFoundError, CfPulseError, PlatformCommandError, TransientPlatformError
from cfpulse.errors_catalog import actionable_error
from cfpulse.models import AppDetail, RuntimeIdentity, TargetContext
from cfpulse.services.retry import is_transient


class CfSession:
    """Authenticated `cf` CLI state for a single target.

    Every session owns a private CF_HOME directory, so sessions for different
    targets never overwrite each other's CLI configuration. Instances are
    built with `connect()`, which performs the login and targeting.
    """

    NOT_FOUND_MARKERS = ("not found", "cf-resourcenotfound", "cf-appnotfound")

    def __init__(self, settings, context: TargetContext, runner, logger, cf_home: str):
        self.settings = settings
        self.context = context
        self.runner = runner
        self.logger = logger
        self.cf_home = cf_home

    @classmethod
    def connect(cls, settings, context: TargetContext, runner, logger) -> "CfSession":
        cf_home = tempfile.mkdtemp(prefix="cfpulse-home-")
        session = cls(settings, context, runner, logger, cf_home)
        try:
            session._login()
        except BaseException:
            session.close()
            raise
        logger.info("Connected to %s as %s (%s)", settings.api_host, settings.username, context)
        return session

    def _login(self):
        self.check_cli_version()

        api_cmd = ["api", self.settings.api_host]
        if self.settings.skip_ssl_validation:
            api_cmd.append("--skip-ssl-validation")
        self._cf(api_cmd)

        self._cf(
            ["auth"],
            env={"CF_USERNAME": self.settings.username, "CF_PASSWORD": self.settings.password},
            sensitive=(self.settings.password,),
        )
        target_cmd = ["target"]
        if self.context.organization:
            target_cmd += ["-o", self.context.organization]
        if self.context.space:
            target_cmd += ["-s", self.context.space]
        if len(target_cmd) > 1:
            self._cf(target_cmd)

    def check_cli_version(self) -> str:
        output = self._cf(["version"]).stdout or ""
        match = re.search(r"version\s+(\d+(?:\.\d+)*)", output)
        if not match:
            raise CfPulseError(f"Could not determine cf CLI version from output: {output.strip()}")

        found = match.group(1)
        if version.parse(found) < version.parse(constants.MIN_CF_CLI_VERSION):
            raise CfPulseError(
                actionable_error("cf_too_old", found=found, required=constants.MIN_CF_CLI_VERSION)
            )
        return found

    def close(self):
        shutil.rmtree(self.cf_home, ignore_errors=True)

    def _cf(
        self,
        args: List[str],
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
        sensitive=(),
    ):
        child_env = {"CF_HOME": self.cf_home, "CF_COLOR": "false"}
        if env:
            child_env.update(env)
        return self.runner.run(
            [self.settings.cf_binary] + args,
            env=child_env,
            timeout=timeout if timeout is not None else self.settings.command_timeout_seconds,
            sensitive=sensitive,
        )

    def curl_json(self, path: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        result = self._cf(["curl", path], timeout=timeout)
        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise CfPulseError(f"Unexpected non-JSON response from {path}: {exc}") from exc

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            detail = "; ".join(
                f"{item.get('title', 'error')}: {item.get('detail', '')}" for item in errors
            )
            message = f"Cloud Controller request {path} failed: {detail}"
            if any(marker in detail.lower() for marker in self.NOT_FOUND_MARKERS):
                raise AppNotFoundError(message)
            error = PlatformCommandError(message, stderr=detail)
            if is_transient(error):
                raise TransientPlatformError(message, stderr=detail)
            raise error

        return payload

    def app_guid(self, name: str, timeout: Optional[float] = None) -> str:
        try:
            result = self._cf(["app", name, "--guid"], timeout=timeout)
        except PlatformCommandError as exc:
            if any(marker in str(exc).lower() for marker in self.NOT_FOUND_MARKERS):
                raise AppNotFoundError(
                    actionable_error("app_not_found", app=name, target=str(self.context))
                ) from exc
            raise
        return (result.stdout or "").strip()

    def get_application(self, name: str, timeout: Optional[float] = None) -> AppDetail:
        guid = self.app_guid(name, timeout=timeout)
        app = self.curl_json(f"/v3/apps/{guid}", timeout=timeout)
        process = self.curl_json(f"/v3/apps/{guid}/processes/web", timeout=timeout)

        lifecycle = app.get("lifecycle") or {}
        lifecycle_type = lifecycle.get("type") or "buildpack"
        buildpacks = list((lifecycle.get("data") or {}).get("buildpacks") or [])
        if not buildpacks and lifecycle_type == "buildpack":
            buildpacks = self._droplet_buildpacks(guid, timeout=timeout)

        return AppDetail(
            guid=guid,
            name=app.get("name", name),
            state=app.get("state"),
            memory_limit_mb=process.get("memory_in_mb"),
            disk_quota_mb=process.get("disk_in_mb"),
            instances=process.get("instances"),
            runtime_identity=RuntimeIdentity(tuple(buildpacks)) if buildpacks else None,
            lifecycle_type=lifecycle_type,
        )

    def _droplet_buildpacks(self, guid: str, timeout: Optional[float] = None) -> List[str]:
        try:
            droplet = self.curl_json(f"/v3/apps/{guid}/droplets/current", timeout=timeout)
        except AppNotFoundError:
            return []
        names = []
        for item in droplet.get("buildpacks") or []:
            name = item.get("name") or item.get("buildpack_name")
            if name:
                names.append(name)
        return names

    def get_environment(self, name: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        guid = self.app_guid(name, timeout=timeout)
        payload = self.curl_json(f"/v3/apps/{guid}/environment_variables", timeout=timeout)
        return dict(payload.get("var") or {})

    def set_environment_variable(self, name: str, key: str, value: str, timeout: Optional[float] = None):
        self._cf(["set-env", name, key, value], timeout=timeout, sensitive=(value,))

    def push(
        self,
        name: str,
        path: str,
        no_start: bool,
        memory_mb: int,
        disk_mb: int,
        instances: int,
        runtime: RuntimeIdentity,
        staging_timeout: float,
        timeout: Optional[float] = None,
    ):
        cmd = self.build_push_command(name, path, no_start, memory_mb, disk_mb, instances, runtime)
        self._cf(
            cmd,
            timeout=timeout if timeout is not None else staging_timeout + constants.COMMAND_OVERHEAD_SECONDS,
            env={"CF_STAGING_TIMEOUT": _minutes(staging_timeout)},
        )

    @staticmethod
    def build_push_command(
        name: str,
        path: str,
        no_start: bool,
        memory_mb: int,
        disk_mb: int,
        instances: int,
        runtime: RuntimeIdentity,
    ) -> List[str]:
        # An explicit -b disables buildpack auto-detection.
        cmd = [
            "push",
            name,
            "-p",
            str(path),
            "--no-manifest",
            "-m",
            f"{memory_mb}M",
            "-k",
            f"{disk_mb}M",
            "-i",
            str(instances),
        ]
        for buildpack in runtime.buildpacks:
            cmd.extend(["-b", buildpack])
        if no_start:
            cmd.append("--no-start")
        return cmd

    def copy_source(
        self,
        source_name: str,
        target_name: str,
        restart: bool,
        staging_timeout: float,
        startup_timeout: float,
        timeout: Optional[float] = None,
    ):
        cmd = ["copy-source", source_name, target_name]
        if not restart:
            cmd.append("--no-restart")
        self._cf(
            cmd,
            timeout=timeout if timeout is not None else _command_budget(staging_timeout, startup_timeout),
            env={
                "CF_STAGING_TIMEOUT": _minutes(staging_timeout),
                "CF_STARTUP_TIMEOUT": _minutes(startup_timeout),
            },
        )

    def scale(self, name: str, memory_mb: int, disk_mb: int, instances: int, timeout: Optional[float] = None):
        self._cf(
            ["scale", name, "-m", f"{memory_mb}M", "-k", f"{disk_mb}M", "-i", str(instances), "-f"],
            timeout=timeout,
        )

    def start(
        self,
        name: str,
        staging_timeout: float,
        startup_timeout: float,
        timeout: Optional[float] = None,
    ):
        self._cf(
            ["start", name],
            timeout=timeout if timeout is not None else _command_budget(staging_timeout, startup_timeout),
            env={
                "CF_STAGING_TIMEOUT": _minutes(staging_timeout),
                "CF_STARTUP_TIMEOUT": _minutes(startup_timeout),
            },
        )


def _minutes(seconds: float) -> str:
    return str(max(1, math.ceil(seconds / 60)))


def _command_budget(staging_timeout: float, startup_timeout: float) -> float:
    return staging_timeout + startup_timeout + constants.COMMAND_OVERHEAD_SECONDS
