"""Shared domain models for cfpulse."""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class TargetContext:
    """An organization/space pair; equality is exact and case-sensitive."""

    organization: str
    space: str

    def __str__(self) -> str:
        return f"org '{self.organization}' / space '{self.space}'"


@dataclass(frozen=True)
class TargetInfo:
    organization: Optional[str]
    space: Optional[str]

    @property
    def is_configured(self) -> bool:
        return bool(
            self.organization
            and self.space
            and self.organization.strip()
            and self.space.strip()
        )

    def __str__(self) -> str:
        if self.is_configured:
            return f"Organization: {self.organization}, Space: {self.space}"
        return "No target set (using configuration defaults)"


class RuntimeFamily(Enum):
    """Closed set of runtimes a placeholder can be generated for."""

    JAVA = "java"
    NODEJS = "nodejs"
    PYTHON = "python"
    GO = "go"
    PHP = "php"
    RUBY = "ruby"
    STATIC = "static"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "RuntimeFamily":
        """Maps a buildpack label to its family, falling back to STATIC.

        Accepts bare names (``java``), system buildpack names
        (``java_buildpack_offline``), git URLs and comma-joined multi-buildpack
        labels, where the final buildpack decides.
        """
        text = (label or "").strip().lower()
        if not text:
            return cls.STATIC

        name = text.split(",")[-1].strip()
        name = name.split("#", 1)[0].rstrip("/")
        name = name.rsplit("/", 1)[-1]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        name = name.replace("-", "_")
        name = _BUILDPACK_SUFFIX.sub("", name)

        return _FAMILY_ALIASES.get(name, cls.STATIC)


_BUILDPACK_SUFFIX = re.compile(r"(?:_(?:buildpack|offline|cflinuxfs\d+))+$")

_FAMILY_ALIASES = {
    "java": RuntimeFamily.JAVA,
    "nodejs": RuntimeFamily.NODEJS,
    "node": RuntimeFamily.NODEJS,
    "python": RuntimeFamily.PYTHON,
    "go": RuntimeFamily.GO,
    "golang": RuntimeFamily.GO,
    "php": RuntimeFamily.PHP,
    "ruby": RuntimeFamily.RUBY,
    "static": RuntimeFamily.STATIC,
    "staticfile": RuntimeFamily.STATIC,
}


@dataclass(frozen=True)
class RuntimeIdentity:
    """Ordered buildpack names of an application, as the platform reports them."""

    buildpacks: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "buildpacks", tuple(self.buildpacks))

    @classmethod
    def from_label(cls, label: str) -> "RuntimeIdentity":
        names = [part.strip() for part in label.split(",")]
        return cls(tuple(name for name in names if name))

    @property
    def label(self) -> str:
        return ", ".join(self.buildpacks)

    @property
    def family(self) -> RuntimeFamily:
        return RuntimeFamily.from_label(self.label)

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class AppConfig:
    """Sizing and user-provided environment captured from a source app."""

    memory_limit_mb: int
    disk_quota_mb: int
    instances: int
    environment_variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        env = {str(key): str(value) for key, value in dict(self.environment_variables).items()}
        object.__setattr__(self, "environment_variables", MappingProxyType(env))


@dataclass(frozen=True)
class AppDetail:
    guid: str
    name: str
    state: Optional[str]
    memory_limit_mb: Optional[int]
    disk_quota_mb: Optional[int]
    instances: Optional[int]
    runtime_identity: Optional[RuntimeIdentity]
    lifecycle_type: str = "buildpack"


@dataclass(frozen=True)
class ClonePlan:
    source_app: str
    target_app: str
    context: Optional[TargetContext]
    config: AppConfig
    runtime: RuntimeIdentity


@dataclass(frozen=True)
class PlaceholderArtifact:
    """Local staging directory holding a minimal buildable tree for one runtime."""

    path: Path
    app_name: str
    runtime: RuntimeIdentity

    def files(self) -> Iterable[Path]:
        return sorted(item for item in self.path.rglob("*") if item.is_file())


class CloneState(Enum):
    START = "start"
    SNAPSHOT_CAPTURED = "snapshot_captured"
    PLACEHOLDER_GENERATED = "placeholder_generated"
    PLACEHOLDER_DEPLOYED = "placeholder_deployed"
    SOURCE_COPIED = "source_copied"
    SCALED = "scaled"
    STARTED = "started"
    VERIFIED = "verified"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CloneResult:
    source_app: str
    target_app: str
    context: Optional[TargetContext]
    runtime: RuntimeIdentity
    config: AppConfig
    states: Tuple[CloneState, ...]
    duration_seconds: float

    def summary(self) -> str:
        return (
            f"Cloned '{self.source_app}' to '{self.target_app}' "
            f"(buildpack: {self.runtime.label}, memory: {self.config.memory_limit_mb}M, "
            f"disk: {self.config.disk_quota_mb}M, instances: {self.config.instances}, "
            f"env vars: {len(self.config.environment_variables)}) "
            f"in {self.duration_seconds:.1f}s."
        )
