from pathlib import Path

import pytest
from pydantic import ValidationError

from relock.artifacts.models import (
    ExecOptions,
    ExecutionPlan,
    PlanStrategy,
    ReconciliationResult,
    ToolConstraint,
    UpdateConfig,
    UpdateRequest,
    Upgrade,
)


class TestUpgrade:
    """Tests for the Upgrade model."""

    def test_defaults(self):
        upgrade = Upgrade(dep_name="serde", locked_version="1.0.100", new_version="1.0.200")
        assert upgrade.datasource == "crate"
        assert upgrade.crate_name == "serde"
        assert upgrade.coordinate == "serde@1.0.100"

    def test_package_name_overrides_dep_name(self):
        upgrade = Upgrade(dep_name="serde1", package_name="serde", locked_version="1.0.0", new_version="1.0.1")
        assert upgrade.crate_name == "serde"
        assert upgrade.coordinate == "serde@1.0.0"

    def test_missing_locked_version_is_allowed(self):
        upgrade = Upgrade(dep_name="serde", new_version="1.0.200")
        assert upgrade.locked_version is None

    @pytest.mark.parametrize(
        ("locked_version", "new_version"),
        [("1.0.0", "^1.1"), ("1.0", "1.1.0")],
    )
    def test_crate_versions_must_be_semver(self, locked_version: str, new_version: str):
        with pytest.raises(ValidationError, match="Must be valid semver"):
            Upgrade(dep_name="serde", locked_version=locked_version, new_version=new_version)

    def test_git_upgrade_skips_semver_validation(self):
        upgrade = Upgrade(dep_name="tokio", new_version="a1b2c3d", datasource="git")
        assert upgrade.new_version == "a1b2c3d"

    def test_frozen(self):
        upgrade = Upgrade(dep_name="serde", new_version="1.0.0")
        with pytest.raises(ValidationError):
            upgrade.new_version = "2.0.0"  # type: ignore[misc]


class TestUpdateRequest:
    """Tests for the UpdateRequest model."""

    def test_coerces_path_and_defaults(self):
        request = UpdateRequest(package_file_name="crates/a/Cargo.toml", new_package_file_content="")  # type: ignore[arg-type]
        assert request.package_file_name == Path("crates/a/Cargo.toml")
        assert request.updated_deps == []
        assert request.config == UpdateConfig()

    def test_duplicate_packages_rejected(self):
        with pytest.raises(ValidationError, match="requested more than once"):
            UpdateRequest(
                package_file_name=Path("Cargo.toml"),
                new_package_file_content="",
                updated_deps=[
                    Upgrade(dep_name="foo", locked_version="1.0.0", new_version="1.1.0"),
                    Upgrade(dep_name="foo2", package_name="foo", locked_version="1.0.0", new_version="1.2.0"),
                ],
            )

    def test_two_majors_of_one_crate_allowed(self):
        request = UpdateRequest(
            package_file_name=Path("Cargo.toml"),
            new_package_file_content="",
            updated_deps=[
                Upgrade(dep_name="rand", locked_version="0.7.3", new_version="0.7.4"),
                Upgrade(dep_name="rand", locked_version="0.8.4", new_version="0.8.5"),
            ],
        )
        assert [dep.coordinate for dep in request.updated_deps] == ["rand@0.7.3", "rand@0.8.4"]

    def test_with_updated_deps_returns_narrowed_copy(self):
        foo = Upgrade(dep_name="foo", locked_version="1.0.0", new_version="1.1.0")
        bar = Upgrade(dep_name="bar", locked_version="2.0.0", new_version="2.1.0")
        request = UpdateRequest(package_file_name=Path("Cargo.toml"), new_package_file_content="x", updated_deps=[foo, bar])

        narrowed = request.with_updated_deps([bar])

        assert narrowed.updated_deps == [bar]
        assert narrowed.new_package_file_content == "x"
        assert request.updated_deps == [foo, bar]


class TestExecutionPlan:
    """Tests for ExecutionPlan and ExecOptions."""

    def test_plan_requires_a_command(self):
        with pytest.raises(ValidationError, match="at least one command"):
            ExecutionPlan(strategy=PlanStrategy.WORKSPACE, commands=())

    def test_constraint_for(self):
        options = ExecOptions(tool_constraints=[ToolConstraint(tool_name="rust", constraint="1.80.0")])
        assert options.constraint_for("rust") == "1.80.0"
        assert options.constraint_for("node") is None


class TestReconciliationResult:
    """Tests for ReconciliationResult."""

    def test_addition(self):
        result = ReconciliationResult.addition("Cargo.lock", "content")
        assert result.file is not None
        assert result.file.type == "addition"
        assert result.file.contents == "content"
        assert result.artifact_error is None

    def test_error(self):
        result = ReconciliationResult.error("Cargo.lock", "boom")
        assert result.artifact_error is not None
        assert result.artifact_error.stderr == "boom"
        assert result.file is None

    def test_requires_exactly_one_form(self):
        with pytest.raises(ValidationError, match="exactly one"):
            ReconciliationResult()
