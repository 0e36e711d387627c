"""Git helper functions used by the jxsbuild pipeline."""

from pathlib import Path
from typing import Mapping

from . import exec as exec_util

MISSING_GIT_RETURNCODE = 127

IN_PROGRESS_MARKERS = ("rebase-apply", "rebase-merge", "MERGE_HEAD", "CHERRY_PICK_HEAD")
ABORT_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("am", "--abort"),
    ("rebase", "--abort"),
    ("merge", "--abort"),
    ("cherry-pick", "--abort"),
)


def git_command(args: list[str], *, repo_dir: Path | None = None) -> list[str]:
    """Build a git command, optionally scoped to a repository.

    Example:
        >>> git_command(["status"], repo_dir=Path("/src/ffmpeg"))
        ['git', '-C', '/src/ffmpeg', 'status']
    """
    if repo_dir is None:
        return ["git", *args]
    return ["git", "-C", str(repo_dir), *args]


def _run_git(
    args: list[str],
    *,
    repo_dir: Path | None = None,
    runner: exec_util.CommandRunner | None = None,
    env: Mapping[str, str] | None = None,
    capture_output: bool = True,
) -> exec_util.CommandResult:
    request = exec_util.CommandRequest(
        argv=tuple(git_command(args, repo_dir=repo_dir)),
        env=env,
        capture_output=capture_output,
    )
    result = exec_util.run_with_runner(request, runner=runner)
    if result is None:
        return exec_util.CommandResult(
            argv=request.argv,
            returncode=MISSING_GIT_RETURNCODE,
            stdout="",
            stderr="missing required command: git",
        )
    return result


def git_clone(
    url: str, dest: Path, *, runner: exec_util.CommandRunner | None = None
) -> exec_util.CommandResult:
    """Clone ``url`` into ``dest``."""
    return _run_git(["clone", url, str(dest)], runner=runner, capture_output=False)


def git_dir(repo_dir: Path, *, runner: exec_util.CommandRunner | None = None) -> Path | None:
    """Return the repository metadata directory.

    Args:
        repo_dir: Git working tree.

    Returns:
        Absolute git dir, or ``None`` when ``repo_dir`` is not a repository.
    """
    candidate = repo_dir / ".git"
    if candidate.is_dir():
        return candidate
    result = _run_git(["rev-parse", "--absolute-git-dir"], repo_dir=repo_dir, runner=runner)
    if not result.ok:
        return None
    resolved = result.stdout.strip()
    return Path(resolved) if resolved else None


def git_in_progress_markers(
    repo_dir: Path, *, runner: exec_util.CommandRunner | None = None
) -> list[str]:
    """Return the in-progress operation markers present in the git dir."""
    metadata = git_dir(repo_dir, runner=runner)
    if metadata is None:
        return []
    return [marker for marker in IN_PROGRESS_MARKERS if (metadata / marker).exists()]


def git_run(
    repo_dir: Path,
    args: list[str] | tuple[str, ...],
    *,
    runner: exec_util.CommandRunner | None = None,
    env: Mapping[str, str] | None = None,
) -> exec_util.CommandResult:
    """Run an arbitrary git subcommand inside ``repo_dir``."""
    return _run_git(list(args), repo_dir=repo_dir, runner=runner, env=env)


def git_fetch_all(
    repo_dir: Path, *, runner: exec_util.CommandRunner | None = None
) -> exec_util.CommandResult:
    """Fetch every configured remote."""
    return _run_git(["fetch", "--all", "--tags"], repo_dir=repo_dir, runner=runner)


def git_reset_hard(
    repo_dir: Path, ref: str, *, runner: exec_util.CommandRunner | None = None
) -> exec_util.CommandResult:
    """Hard-reset the current branch and working tree to ``ref``."""
    return _run_git(["reset", "--hard", ref], repo_dir=repo_dir, runner=runner)


def git_checkout(
    repo_dir: Path, ref: str, *, runner: exec_util.CommandRunner | None = None
) -> exec_util.CommandResult:
    """Force-switch to ``ref``, discarding local modifications."""
    return _run_git(["checkout", "--force", ref], repo_dir=repo_dir, runner=runner)


def git_clean(
    repo_dir: Path, *, runner: exec_util.CommandRunner | None = None
) -> exec_util.CommandResult:
    """Remove untracked files and directories."""
    return _run_git(["clean", "-fd"], repo_dir=repo_dir, runner=runner)


def git_am(
    repo_dir: Path,
    patch: Path,
    *,
    runner: exec_util.CommandRunner | None = None,
    env: Mapping[str, str] | None = None,
) -> exec_util.CommandResult:
    """Apply one mailbox patch as a commit, fixing whitespace errors."""
    return _run_git(
        ["am", "--whitespace=fix", str(patch)], repo_dir=repo_dir, runner=runner, env=env
    )


def git_current_branch(
    repo_dir: Path, *, runner: exec_util.CommandRunner | None = None
) -> str | None:
    """Return the current branch name, or ``None`` when detached or on error."""
    result = _run_git(
        ["symbolic-ref", "--quiet", "--short", "HEAD"], repo_dir=repo_dir, runner=runner
    )
    if not result.ok:
        return None
    return result.stdout.strip() or None


def git_rev_parse(
    repo_dir: Path, ref: str, *, runner: exec_util.CommandRunner | None = None
) -> str | None:
    """Resolve a ref to its commit hash."""
    result = _run_git(["rev-parse", "--verify", "--quiet", ref], repo_dir=repo_dir, runner=runner)
    if not result.ok:
        return None
    return result.stdout.strip() or None
