"""Pytest configuration and fixtures for LockGraph CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence

import pytest

from lockgraph_cli.artifacts import UpdateContext
from lockgraph_cli.fs import LocalFileSystem
from lockgraph_cli.models import ExecOptions, ExecResult
from lockgraph_cli.registries import HostRules
from lockgraph_cli.runner import ProcessRunner


class FakeRunner(ProcessRunner):
    """Records command batches and simulates what ``dotnet restore`` writes.

    ``rewrites`` maps lock file paths to the content the "restore" leaves
    behind (None deletes the file). ``error`` is raised instead of running.
    """

    def __init__(
        self,
        exit_code: int = 0,
        stderr: str = "",
        rewrites: Optional[Dict[str, Optional[str]]] = None,
        error: Optional[BaseException] = None,
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        self.rewrites = rewrites or {}
        self.error = error
        self.calls: List[List[str]] = []
        self.options: List[ExecOptions] = []
        self.config_files_seen: List[bool] = []

    @property
    def commands(self) -> List[str]:
        return self.calls[-1] if self.calls else []

    def execute(self, commands: Sequence[str], options: ExecOptions) -> ExecResult:
        self.calls.append(list(commands))
        self.options.append(options)
        config_files = [c.split("--configfile ")[1].split(" ")[0] for c in commands if "--configfile " in c]
        self.config_files_seen.append(all(Path(f).exists() for f in config_files))
        if self.error is not None:
            raise self.error
        for path, content in self.rewrites.items():
            target = Path(path)
            if content is None:
                target.unlink(missing_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
        return ExecResult(exit_code=self.exit_code, stderr=self.stderr)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp()).resolve()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_solution_path() -> Path:
    """Get path to sample test solution (read-only)."""
    return Path(__file__).parent / "fixtures" / "sample_solution"


@pytest.fixture
def solution_dir(temp_dir: Path, sample_solution_path: Path) -> Path:
    """Writable copy of the sample solution."""
    target = temp_dir / "solution"
    shutil.copytree(sample_solution_path, target)
    return target


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    path = temp_dir / "cache"
    path.mkdir()
    return path


@pytest.fixture
def solution_fs(solution_dir: Path, cache_dir: Path) -> LocalFileSystem:
    return LocalFileSystem(solution_dir, cache_dir)


@pytest.fixture
def make_context(solution_dir: Path, solution_fs: LocalFileSystem):
    """Factory for an UpdateContext over the sample solution with a fake runner."""

    def _make(runner: ProcessRunner, host_rules: Optional[HostRules] = None) -> UpdateContext:
        return UpdateContext(
            local_dir=solution_dir,
            fs=solution_fs,
            runner=runner,
            host_rules=host_rules or HostRules(),
            token_factory=lambda: "token123",
            max_workers=2,
        )

    return _make


@pytest.fixture
def temp_config_file(temp_dir: Path, monkeypatch) -> Path:
    """Point the TOML config at a temporary file."""
    config_file = temp_dir / "config.toml"
    monkeypatch.setattr("lockgraph_cli.config_manager.CONFIG_FILE", config_file)
    return config_file


def write_project(path: Path, *references: str) -> Path:
    """Write a minimal SDK-style project file referencing *references*."""
    items = "\n".join(f'    <ProjectReference Include="{ref}" />' for ref in references)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        '<Project Sdk="Microsoft.NET.Sdk">\n'
        "  <ItemGroup>\n"
        f"{items}\n"
        "  </ItemGroup>\n"
        "</Project>\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def project_writer():
    return write_project
