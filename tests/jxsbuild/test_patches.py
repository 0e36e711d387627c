import os
import shutil
from pathlib import Path

import pytest

from jxsbuild.errors import PatchApplyError
from jxsbuild.exec import CommandRequest
from jxsbuild.patches import PatchApplier, PatchSet, official_patch_set, user_patch_set
from tests.jxsbuild.helpers import (
    GIT_IDENTITY,
    FakeRunner,
    commit_file,
    git_args,
    init_origin_repo,
    run_git,
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("patch\n", encoding="utf-8")
    return path


def _applied(runner: FakeRunner) -> list[str]:
    return [Path(call[-1]).name for call in runner.git_calls() if call[:1] == ("am",)]


def test_patch_set_lists_only_patch_files_in_order(tmp_path: Path) -> None:
    _touch(tmp_path / "0002-b.patch")
    _touch(tmp_path / "0001-a.patch")
    _touch(tmp_path / "README")

    names = [path.name for path in PatchSet("user", tmp_path, 10).patches()]

    assert names == ["0001-a.patch", "0002-b.patch"]


def test_missing_patch_directory_is_empty(tmp_path: Path) -> None:
    assert PatchSet("user", tmp_path / "absent", 10).patches() == []


def test_official_patches_apply_before_user_patches(tmp_path: Path) -> None:
    _touch(tmp_path / "official" / "0001-plugin.patch")
    _touch(tmp_path / "user" / "0001-local.patch")
    runner = FakeRunner()

    outcome = PatchApplier(tmp_path / "ffmpeg", runner=runner).apply(
        [user_patch_set(tmp_path / "user"), official_patch_set(tmp_path / "official")]
    )

    assert _applied(runner) == ["0001-plugin.patch", "0001-local.patch"]
    assert [path.name for path in outcome.value] == ["0001-plugin.patch", "0001-local.patch"]


def test_empty_sets_are_skipped(tmp_path: Path) -> None:
    (tmp_path / "user").mkdir()
    runner = FakeRunner()

    outcome = PatchApplier(tmp_path, runner=runner).apply(
        [official_patch_set(tmp_path / "missing"), user_patch_set(tmp_path / "user")]
    )

    assert outcome.value == []
    assert runner.requests == []


def test_first_failure_stops_and_names_patch(tmp_path: Path) -> None:
    _touch(tmp_path / "official" / "0001-ok.patch")
    _touch(tmp_path / "official" / "0002-bad.patch")
    _touch(tmp_path / "official" / "0003-never.patch")
    _touch(tmp_path / "user" / "0001-local.patch")

    def respond(request: CommandRequest) -> int:
        return 1 if git_args(request)[-1].endswith("0002-bad.patch") else 0

    runner = FakeRunner(respond=respond)

    with pytest.raises(PatchApplyError) as excinfo:
        PatchApplier(tmp_path, runner=runner).apply(
            [official_patch_set(tmp_path / "official"), user_patch_set(tmp_path / "user")]
        )

    assert excinfo.value.patch_set == "plugin-integration"
    assert excinfo.value.patch.endswith("0002-bad.patch")
    assert excinfo.value.stage == "apply-patches"
    assert _applied(runner) == ["0001-ok.patch", "0002-bad.patch"]


@requires_git
def test_patches_apply_in_rank_order_against_real_repository(tmp_path: Path) -> None:
    repo = init_origin_repo(tmp_path, "ffmpeg")
    commit_file(repo, "codec.c", "int level = 2;\n", "set level 2")
    commit_file(repo, "codec.c", "int level = 3;\n", "set level 3")
    _export(repo, "HEAD~1", tmp_path / "official" / "0001-a.patch")
    # Only applies on top of the official patch.
    _export(repo, "HEAD", tmp_path / "user" / "0001-b.patch")
    run_git(repo, "reset", "--hard", "HEAD~2")

    outcome = PatchApplier(repo, env={**os.environ, **GIT_IDENTITY}).apply(
        [user_patch_set(tmp_path / "user"), official_patch_set(tmp_path / "official")]
    )

    assert [path.name for path in outcome.value] == ["0001-a.patch", "0001-b.patch"]
    assert (repo / "codec.c").read_text(encoding="utf-8") == "int level = 3;\n"


def _export(repo: Path, rev: str, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(run_git(repo, "format-patch", "-1", rev, "--stdout") + "\n", encoding="utf-8")
