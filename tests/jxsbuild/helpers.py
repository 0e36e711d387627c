# ruff: noqa: E402

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import jxsbuild.exec as exec_util
from jxsbuild import config, profiles

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


def git_args(request: exec_util.CommandRequest) -> tuple[str, ...]:
    """Strip ``git -C <dir>`` from a recorded request."""
    argv = request.argv
    if argv[:2] == ("git", "-C"):
        return argv[3:]
    if argv[:1] == ("git",):
        return argv[1:]
    return argv


@dataclass
class FakeRunner:
    """Command runner that records requests and answers from a callback."""

    respond: Callable[[exec_util.CommandRequest], int | None] = lambda request: 0
    requests: list[exec_util.CommandRequest] = field(default_factory=list)

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        returncode = self.respond(request)
        if returncode is None:
            return None
        return exec_util.CommandResult(
            argv=request.argv,
            returncode=returncode,
            stdout="",
            stderr="" if returncode == 0 else "boom",
        )

    def git_calls(self) -> list[tuple[str, ...]]:
        return [git_args(request) for request in self.requests if request.argv[0] == "git"]

    def argvs(self) -> list[tuple[str, ...]]:
        return [request.argv for request in self.requests]


def make_settings(root: Path, profile: str = "linux", **overrides: object) -> config.BuildSettings:
    data: dict[str, object] = {
        "root": root,
        "profile": profiles.load_profile(profile),
        "install_dir": root / "install-dir",
        "patches_dir": root / "patches",
        "jobs": 4,
        "provision": False,
    }
    data.update(overrides)
    return config.BuildSettings(**data)


def run_git(repo: Path, *args: str) -> str:
    env = {**os.environ, **GIT_IDENTITY}
    completed = subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        text=True,
        env=env,
    )
    return completed.stdout.strip()


def init_origin_repo(root: Path, name: str = "origin") -> Path:
    repo = root / name
    repo.mkdir()
    run_git(repo, "init")
    (repo / "codec.c").write_text("int level = 1;\n", encoding="utf-8")
    run_git(repo, "add", "codec.c")
    run_git(repo, "commit", "-m", "initial")
    run_git(repo, "branch", "-M", "main")
    return repo


def commit_file(repo: Path, name: str, content: str, message: str) -> None:
    (repo / name).write_text(content, encoding="utf-8")
    run_git(repo, "add", name)
    run_git(repo, "commit", "-m", message)


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755)
    return path
