from pathlib import Path

import jxsbuild.git as git
from tests.jxsbuild.helpers import FakeRunner


def test_git_command_scopes_to_repository() -> None:
    assert git.git_command(["fetch", "--all"], repo_dir=Path("/src/ffmpeg")) == [
        "git",
        "-C",
        "/src/ffmpeg",
        "fetch",
        "--all",
    ]
    assert git.git_command(["--version"]) == ["git", "--version"]


def test_missing_git_is_reported_as_failed_result(tmp_path: Path) -> None:
    runner = FakeRunner(respond=lambda request: None)

    result = git.git_fetch_all(tmp_path, runner=runner)

    assert result.ok is False
    assert result.returncode == git.MISSING_GIT_RETURNCODE


def test_in_progress_markers_detected(tmp_path: Path) -> None:
    metadata = tmp_path / ".git"
    (metadata / "rebase-merge").mkdir(parents=True)
    (metadata / "MERGE_HEAD").write_text("abc\n", encoding="utf-8")

    markers = git.git_in_progress_markers(tmp_path, runner=FakeRunner())

    assert markers == ["rebase-merge", "MERGE_HEAD"]


def test_in_progress_markers_empty_for_clean_repository(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()

    assert git.git_in_progress_markers(tmp_path, runner=FakeRunner()) == []


def test_git_dir_resolves_worktree_gitfile(tmp_path: Path) -> None:
    class Runner(FakeRunner):
        def run(self, request):  # type: ignore[override]
            result = super().run(request)
            return type(result)(
                argv=result.argv, returncode=0, stdout=f"{tmp_path}/meta\n", stderr=""
            )

    (tmp_path / ".git").write_text("gitdir: elsewhere\n", encoding="utf-8")

    assert git.git_dir(tmp_path, runner=Runner()) == tmp_path / "meta"
