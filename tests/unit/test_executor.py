import subprocess  # noqa: S404
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from relock.artifacts.exceptions import ExecutionError
from relock.artifacts.executor import ExecutorProtocol, SubprocessExecutor, build_sandbox_argv
from relock.artifacts.models import ExecOptions, ExecutionPlan, PlanStrategy, ToolConstraint
from relock.constants import TEMPORARY_ERROR

CMD_1 = "cargo update --manifest-path Cargo.toml --workspace"
CMD_2 = "cargo update --manifest-path Cargo.toml --package foo@1.0.0 --precise 1.1.0"


def _completed(returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


def _plan(tmp_path: Path, *commands: str, **options: object) -> ExecutionPlan:
    return ExecutionPlan(
        strategy=PlanStrategy.PRECISE,
        commands=commands,
        options=ExecOptions(cwd=tmp_path, **options),  # type: ignore[arg-type]
    )


class TestSubprocessExecutor:
    """Tests for SubprocessExecutor; all subprocess calls are mocked."""

    def test_is_an_executor(self):
        assert isinstance(SubprocessExecutor(), ExecutorProtocol)

    def test_runs_commands_in_order(self, mocker: MockerFixture, tmp_path: Path):
        run = mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed())

        SubprocessExecutor().execute(_plan(tmp_path, CMD_1, CMD_2))

        argvs = [call.args[0] for call in run.call_args_list]
        assert argvs == [CMD_1.split(), CMD_2.split()]
        assert run.call_args.kwargs["cwd"] == tmp_path

    def test_failure_stops_remaining_commands(self, mocker: MockerFixture, tmp_path: Path):
        stderr = "error: package ID specification `foo@1.0.0` did not match any packages"
        run = mocker.patch(
            "relock.artifacts.executor.subprocess.run",
            side_effect=[_completed(returncode=101, stderr=stderr), _completed()],
        )

        with pytest.raises(ExecutionError) as exc_info:
            SubprocessExecutor().execute(_plan(tmp_path, CMD_2, CMD_1))

        assert run.call_count == 1
        assert exc_info.value.message == f"Command failed: {CMD_2}\n{stderr}"
        assert exc_info.value.stderr == stderr
        assert exc_info.value.exit_code == 101
        assert exc_info.value.command == CMD_2

    def test_missing_binary_is_temporary(self, mocker: MockerFixture, tmp_path: Path):
        mocker.patch("relock.artifacts.executor.subprocess.run", side_effect=FileNotFoundError("cargo"))
        with pytest.raises(ExecutionError) as exc_info:
            SubprocessExecutor().execute(_plan(tmp_path, CMD_1))
        assert exc_info.value.message == TEMPORARY_ERROR

    @pytest.mark.parametrize(
        "error",
        [PermissionError(13, "Permission denied", "cargo"), NotADirectoryError(20, "Not a directory", "Cargo.toml")],
    )
    def test_os_error_is_temporary(self, mocker: MockerFixture, tmp_path: Path, error: OSError):
        mocker.patch("relock.artifacts.executor.subprocess.run", side_effect=error)
        with pytest.raises(ExecutionError) as exc_info:
            SubprocessExecutor().execute(_plan(tmp_path, CMD_1, CMD_2))
        assert exc_info.value.message == TEMPORARY_ERROR
        assert exc_info.value.stderr == str(error)
        assert exc_info.value.command == CMD_1

    def test_timeout_is_temporary(self, mocker: MockerFixture, tmp_path: Path):
        mocker.patch("relock.artifacts.executor.subprocess.run", side_effect=subprocess.TimeoutExpired("cargo", 5))
        with pytest.raises(ExecutionError) as exc_info:
            SubprocessExecutor().execute(_plan(tmp_path, CMD_1, timeout=5))
        assert exc_info.value.message == TEMPORARY_ERROR
        assert "Timed out" in exc_info.value.stderr

    def test_killed_by_signal_is_temporary(self, mocker: MockerFixture, tmp_path: Path):
        mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed(returncode=-9))
        with pytest.raises(ExecutionError) as exc_info:
            SubprocessExecutor().execute(_plan(tmp_path, CMD_1))
        assert exc_info.value.message == TEMPORARY_ERROR
        assert exc_info.value.exit_code == -9

    def test_extra_env_and_toolchain(self, mocker: MockerFixture, tmp_path: Path):
        run = mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed())
        mocker.patch.dict("os.environ", {"PATH": "/usr/bin"}, clear=True)

        SubprocessExecutor().execute(
            _plan(
                tmp_path,
                CMD_1,
                extra_env={"GIT_CONFIG_COUNT": "1"},
                tool_constraints=[ToolConstraint(tool_name="rust", constraint="1.80.0")],
            )
        )

        env = run.call_args.kwargs["env"]
        assert env["PATH"] == "/usr/bin"
        assert env["GIT_CONFIG_COUNT"] == "1"
        assert env["RUSTUP_TOOLCHAIN"] == "1.80.0"

    def test_range_constraint_does_not_pin_toolchain(self, mocker: MockerFixture, tmp_path: Path):
        run = mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed())
        mocker.patch.dict("os.environ", {}, clear=True)

        SubprocessExecutor().execute(
            _plan(tmp_path, CMD_1, tool_constraints=[ToolConstraint(tool_name="rust", constraint=">=1.70")])
        )

        assert "RUSTUP_TOOLCHAIN" not in run.call_args.kwargs["env"]

    def test_sandbox_wraps_in_docker(self, mocker: MockerFixture, tmp_path: Path):
        run = mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed())

        SubprocessExecutor().execute(_plan(tmp_path, CMD_1, sandbox=True))

        argv = run.call_args.args[0]
        assert argv[:3] == ["docker", "run", "--rm"]
        assert argv[-3:] == ["bash", "-lc", CMD_1]

    def test_sandbox_mounts_plan_directory_not_process_cwd(
        self, mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ):
        run = mocker.patch("relock.artifacts.executor.subprocess.run", return_value=_completed())
        project = tmp_path / "proj"
        elsewhere = tmp_path / "elsewhere"
        project.mkdir()
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)

        SubprocessExecutor().execute(_plan(project, CMD_1, sandbox=True))

        argv = run.call_args.args[0]
        mount = f"{project}:{project}"
        assert argv[argv.index("-v") + 1] == mount
        assert argv[argv.index("-w") + 1] == str(project)
        assert run.call_args.kwargs["cwd"] == project


class TestSandboxArgv:
    """Tests for build_sandbox_argv."""

    def test_forwards_env_names_only(self, tmp_path: Path):
        options = ExecOptions(sandbox=True, extra_env={"GIT_CONFIG_VALUE_0": "secret", "GIT_CONFIG_COUNT": "1"})
        argv = build_sandbox_argv(CMD_1, options, tmp_path)
        assert argv == [
            "docker",
            "run",
            "--rm",
            "-v",
            f"{tmp_path}:{tmp_path}",
            "-w",
            str(tmp_path),
            "-e",
            "GIT_CONFIG_COUNT",
            "-e",
            "GIT_CONFIG_VALUE_0",
            "rust",
            "bash",
            "-lc",
            CMD_1,
        ]
        assert "secret" not in argv

    def test_rust_constraint_selects_image_tag(self, tmp_path: Path):
        options = ExecOptions(sandbox=True, tool_constraints=[ToolConstraint(tool_name="rust", constraint="1.80")])
        assert "rust:1.80" in build_sandbox_argv(CMD_1, options, tmp_path)

    def test_tagged_image_is_kept(self, tmp_path: Path):
        options = ExecOptions(
            sandbox=True,
            sandbox_image="ghcr.io/acme/rust:stable",
            tool_constraints=[ToolConstraint(tool_name="rust", constraint="1.80")],
        )
        assert "ghcr.io/acme/rust:stable" in build_sandbox_argv(CMD_1, options, tmp_path)
