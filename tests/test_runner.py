"""Tests for process execution and local file access."""

import subprocess
from pathlib import Path

import pytest

from lockgraph_cli.errors import RestoreCancelled, TransientInfrastructureError
from lockgraph_cli.fs import LocalFileSystem, get_sibling_file_name
from lockgraph_cli.models import ExecOptions
from lockgraph_cli.runner import SubprocessRunner, build_script, docker_wrap


class _Recorder:
    """Stand-in for subprocess.run that records argv."""

    def __init__(self, returncode=0, stdout="", stderr="", raises=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.raises = raises
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append((argv, kwargs))
        if self.raises is not None:
            raise self.raises
        return subprocess.CompletedProcess(argv, self.returncode, self.stdout, self.stderr)


class TestScripts:

    def test_build_script_chains_commands(self):
        assert build_script(["a", "b c"]) == "a && b c"

    def test_docker_wrap_mounts_cwd_and_cache(self):
        options = ExecOptions(cwd="/repo", docker_image="sdk:8", mounts=("/cache/nuget", "/repo"))
        assert docker_wrap("dotnet --info", options) == [
            "docker", "run", "--rm",
            "-v", "/repo:/repo",
            "-v", "/cache/nuget:/cache/nuget",
            "-w", "/repo",
            "sdk:8", "sh", "-c", "dotnet --info",
        ]


class TestSubprocessRunner:
    """Tests for SubprocessRunner with subprocess.run patched out."""

    def test_runs_single_shell(self, monkeypatch):
        recorder = _Recorder(stdout="ok")
        monkeypatch.setattr(subprocess, "run", recorder)

        result = SubprocessRunner().execute(["echo one", "echo two"], ExecOptions(cwd="/repo", timeout=30))

        argv, kwargs = recorder.calls[0]
        assert argv == ["sh", "-c", "echo one && echo two"]
        assert kwargs["cwd"] == "/repo"
        assert kwargs["timeout"] == 30
        assert result.ok and result.stdout == "ok"

    def test_empty_batch_is_not_run(self, monkeypatch):
        recorder = _Recorder()
        monkeypatch.setattr(subprocess, "run", recorder)

        assert SubprocessRunner().execute([], ExecOptions()).ok
        assert recorder.calls == []

    def test_nonzero_exit_is_returned(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", _Recorder(returncode=1, stderr="NU1101"))

        result = SubprocessRunner().execute(["dotnet restore x"], ExecOptions())

        assert result.exit_code == 1
        assert result.stderr == "NU1101"

    def test_timeout_raises_cancelled(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", _Recorder(raises=subprocess.TimeoutExpired("sh", 5)))

        with pytest.raises(RestoreCancelled) as exc_info:
            SubprocessRunner().execute(["dotnet restore x"], ExecOptions(timeout=5))
        assert exc_info.value.timeout == 5

    def test_docker_daemon_down_is_transient(self, monkeypatch):
        stderr = "Cannot connect to the Docker daemon at unix:///var/run/docker.sock."
        monkeypatch.setattr(subprocess, "run", _Recorder(returncode=1, stderr=stderr))

        with pytest.raises(TransientInfrastructureError):
            SubprocessRunner().execute(["dotnet restore x"], ExecOptions(docker_image="sdk:8"))

    def test_same_message_without_docker_is_plain_failure(self, monkeypatch):
        stderr = "Cannot connect to the Docker daemon"
        monkeypatch.setattr(subprocess, "run", _Recorder(returncode=1, stderr=stderr))

        assert SubprocessRunner().execute(["x"], ExecOptions()).exit_code == 1


class TestLocalFileSystem:
    """Tests for LocalFileSystem."""

    def test_sibling_file_name(self):
        assert get_sibling_file_name("/r/A/A.csproj", "packages.lock.json") == "/r/A/packages.lock.json"

    def test_read_missing_and_directory(self, temp_dir: Path):
        fs = LocalFileSystem(temp_dir)
        assert fs.read_file("missing.txt") is None
        assert fs.read_file(temp_dir.as_posix()) is None

    def test_write_relative_creates_parents(self, temp_dir: Path):
        fs = LocalFileSystem(temp_dir)
        fs.write_file("a/b/c.txt", "hi")
        assert (temp_dir / "a" / "b" / "c.txt").read_text() == "hi"
        assert fs.exists("a/b/c.txt")

    def test_remove_file_and_directory(self, temp_dir: Path):
        fs = LocalFileSystem(temp_dir)
        fs.write_file("d/x.txt", "1")
        fs.remove_file("d/x.txt")
        assert not fs.exists("d/x.txt")
        fs.remove_file("d")
        assert not fs.exists("d")
        fs.remove_file("never-existed")

    def test_list_skips_build_output(self, temp_dir: Path, project_writer):
        project_writer(temp_dir / "src" / "A" / "A.csproj")
        project_writer(temp_dir / "src" / "A" / "obj" / "Copy.csproj")
        project_writer(temp_dir / "src" / "B" / "B.FSPROJ")
        (temp_dir / "src" / "B" / "readme.md").write_text("x")

        found = LocalFileSystem(temp_dir).list_files_recursively(temp_dir.as_posix(), {".csproj", ".fsproj"})

        assert found == [
            (temp_dir / "src" / "A" / "A.csproj").as_posix(),
            (temp_dir / "src" / "B" / "B.FSPROJ").as_posix(),
        ]

    def test_ensure_cache_dir(self, temp_dir: Path):
        fs = LocalFileSystem(temp_dir, temp_dir / "cache")
        path = fs.ensure_cache_dir("nuget")
        assert Path(path).is_dir()
        assert path == (temp_dir / "cache" / "nuget").as_posix()
