"""Value types passed into and out of the reconciliation engine.

All models are frozen: a request, a plan or a result is built once and never
mutated. Narrowing a request during conflict recovery produces a new request
via :meth:`UpdateRequest.with_updated_deps`.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from relock._compat import Self, StrEnum
from relock._utils.pydantic_utils import empty_list_factory_of, empty_str_dict_factory_of
from relock.artifacts.semver import is_valid_semver
from relock.constants import CRATE_DATASOURCE, DEFAULT_SANDBOX_IMAGE, DEFAULT_TIMEOUT_SECONDS

# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class Upgrade(BaseModel):
    """A single requested dependency change."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dep_name: str
    package_name: str | None = None
    locked_version: str | None = None
    new_version: str
    datasource: str = CRATE_DATASOURCE

    @model_validator(mode="after")
    def validate_crate_versions(self) -> Self:
        if self.datasource != CRATE_DATASOURCE:
            return self
        for label, version in (("new_version", self.new_version), ("locked_version", self.locked_version)):
            if version is not None and not is_valid_semver(version):
                msg = f"Invalid {label} '{version}' for crate '{self.dep_name}'. Must be valid semver."
                raise ValueError(msg)
        return self

    @property
    def crate_name(self) -> str:
        """Name of the package as recorded in the lock file."""
        return self.package_name or self.dep_name

    @property
    def coordinate(self) -> str:
        """Package ID specification of the currently locked version, e.g. ``serde@1.0.100``."""
        return f"{self.crate_name}@{self.locked_version}"


class UpdateConfig(BaseModel):
    """Per-request settings for how the resolver is invoked."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_lock_file_maintenance: bool = False
    constraints: dict[str, str] = Field(default_factory=empty_str_dict_factory_of(str))
    sandbox: bool = False
    sandbox_image: str = DEFAULT_SANDBOX_IMAGE
    timeout: int | None = DEFAULT_TIMEOUT_SECONDS


class UpdateRequest(BaseModel):
    """One reconciliation request: a rewritten manifest plus the upgrades it carries."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    package_file_name: Path
    new_package_file_content: str
    updated_deps: list[Upgrade] = Field(default_factory=empty_list_factory_of(Upgrade))
    config: UpdateConfig = Field(default_factory=UpdateConfig)

    @field_validator("updated_deps")
    @classmethod
    def validate_unique_coordinates(cls, updated_deps: list[Upgrade]) -> list[Upgrade]:
        # Two majors of one crate can be locked side by side, so only the
        # (name, locked version) pair has to be unique.
        seen: set[str] = set()
        for dep in updated_deps:
            if dep.coordinate in seen:
                msg = f"Package '{dep.coordinate}' is requested more than once. Each locked package may only be upgraded once per request."
                raise ValueError(msg)
            seen.add(dep.coordinate)
        return updated_deps

    def with_updated_deps(self, updated_deps: list[Upgrade]) -> Self:
        """Return a copy of this request targeting only ``updated_deps``."""
        return self.model_copy(update={"updated_deps": list(updated_deps)})


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class PlanStrategy(StrEnum):
    MAINTENANCE = "maintenance"
    WORKSPACE = "workspace"
    PRECISE = "precise"


class ToolConstraint(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    tool_name: str
    constraint: str | None = None


class ExecOptions(BaseModel):
    """Options shared by every command of a plan."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    extra_env: dict[str, str] = Field(default_factory=empty_str_dict_factory_of(str))
    sandbox: bool = False
    sandbox_image: str = DEFAULT_SANDBOX_IMAGE
    tool_constraints: list[ToolConstraint] = Field(default_factory=empty_list_factory_of(ToolConstraint))
    cwd: Path | None = None
    timeout: int | None = DEFAULT_TIMEOUT_SECONDS

    def constraint_for(self, tool_name: str) -> str | None:
        for tool in self.tool_constraints:
            if tool.tool_name == tool_name:
                return tool.constraint
        return None


class ExecutionPlan(BaseModel):
    """An ordered list of shell commands and the options to run them with."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    strategy: PlanStrategy
    commands: tuple[str, ...]
    options: ExecOptions = Field(default_factory=ExecOptions)

    @field_validator("commands")
    @classmethod
    def validate_commands(cls, commands: tuple[str, ...]) -> tuple[str, ...]:
        if not commands:
            msg = "An execution plan needs at least one command."
            raise ValueError(msg)
        return commands


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["addition"] = "addition"
    path: str
    contents: str


class ArtifactError(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    lock_file: str
    stderr: str


class ReconciliationResult(BaseModel):
    """Either an updated lock file or an artifact error, never both."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file: FileChange | None = None
    artifact_error: ArtifactError | None = None

    @model_validator(mode="after")
    def validate_exactly_one(self) -> Self:
        if (self.file is None) == (self.artifact_error is None):
            msg = "A reconciliation result carries exactly one of 'file' or 'artifact_error'."
            raise ValueError(msg)
        return self

    @classmethod
    def addition(cls, path: str, contents: str) -> Self:
        return cls(file=FileChange(path=path, contents=contents))

    @classmethod
    def error(cls, lock_file: str, stderr: str) -> Self:
        return cls(artifact_error=ArtifactError(lock_file=lock_file, stderr=stderr))
