import shutil
import subprocess
from pathlib import Path

import pytest

from gitman.core import RepositoryRecord
from gitman.github import TOKEN_ENV_VARS

GIT_IDENTITY = [
    "-c",
    "user.name=Test User",
    "-c",
    "user.email=test@example.com",
    "-c",
    "commit.gpgsign=false",
]

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch) -> Path:
    """Point the global config at a fresh directory and hide real tokens."""
    config_dir = tmp_path_factory.mktemp("gitman-config")
    monkeypatch.setenv("GITMAN_CONFIG_DIR", str(config_dir))
    for var in TOKEN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return config_dir


@pytest.fixture
def make_local():
    def _make(name: str, branch: str | None = "main", dirty: bool = False) -> RepositoryRecord:
        return RepositoryRecord.local(name, branch=branch, has_uncommitted_changes=dirty)

    return _make


@pytest.fixture
def make_remote():
    def _make(name: str, address: str | None = None) -> RepositoryRecord:
        return RepositoryRecord.remote(name, address or f"git@github.com:octo/{name}.git")

    return _make


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def make_origin(tmp_path):
    """Create a bare repository with one commit on main, usable as a clone address."""
    origins = tmp_path / "origins"
    origins.mkdir()

    def _make(name: str) -> Path:
        work = origins / f"{name}-work"
        work.mkdir()
        git(work, "init", "-q")
        git(work, "symbolic-ref", "HEAD", "refs/heads/main")
        (work / "README.md").write_text(f"# {name}\n")
        git(work, "add", "README.md")
        git(work, "commit", "-q", "-m", "Initial commit")
        bare = origins / f"{name}.git"
        git(origins, "clone", "-q", "--bare", str(work), str(bare))
        return bare

    return _make


@pytest.fixture
def clone_into():
    def _clone(origin: Path, root: Path, name: str) -> Path:
        git(root, "clone", "-q", str(origin), name)
        return root / name

    return _clone
