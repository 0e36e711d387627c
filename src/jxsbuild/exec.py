"""Subprocess helpers for running external commands."""

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from . import log


@dataclass(frozen=True)
class CommandRequest:
    """Typed command invocation request."""

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    capture_output: bool = True
    text: bool = True
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class CommandResult:
    """Typed command execution result."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandRunner(Protocol):
    """Runtime command-execution interface."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


class SubprocessCommandRunner:
    """Default command-runner adapter backed by subprocess."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        run_kwargs: dict[str, object] = {
            "cwd": request.cwd,
            "env": dict(request.env) if request.env is not None else None,
            "check": False,
        }
        if request.capture_output:
            run_kwargs["capture_output"] = True
            run_kwargs["text"] = request.text
        if request.timeout_seconds is not None:
            run_kwargs["timeout"] = request.timeout_seconds
        try:
            completed = subprocess.run(list(request.argv), **run_kwargs)
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired as exc:
            stdout = (exc.stdout or "") if isinstance(exc.stdout, str) else ""
            stderr = (exc.stderr or "") if isinstance(exc.stderr, str) else ""
            return CommandResult(
                argv=request.argv,
                returncode=124,
                stdout=stdout,
                stderr=stderr,
                timed_out=True,
            )

        stdout = completed.stdout if isinstance(completed.stdout, str) else ""
        stderr = completed.stderr if isinstance(completed.stderr, str) else ""
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


@dataclass(frozen=True)
class CommandExecutionError(RuntimeError):
    """Raised when a command is missing or exits non-zero."""

    request: CommandRequest
    detail: str
    result: CommandResult | None = None

    def __str__(self) -> str:
        return self.detail


def format_argv(argv: tuple[str, ...] | list[str]) -> str:
    """Render an argv sequence as a copy-pasteable shell string.

    Example:
        >>> format_argv(("git", "commit", "-m", "two words"))
        "git commit -m 'two words'"
    """
    return " ".join(shlex.quote(part) for part in argv)


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    """Execute a typed command request with the given runner."""
    active_runner = runner or _DEFAULT_COMMAND_RUNNER
    if request.cwd is not None:
        log.debug(f"$ {format_argv(request.argv)}  (in {request.cwd})")
    else:
        log.debug(f"$ {format_argv(request.argv)}")
    return active_runner.run(request)


def _missing_command_detail(request: CommandRequest) -> str:
    argv = request.argv
    if not argv:
        return "missing required command"
    return f"missing required command: {argv[0]}"


def _command_failure_detail(request: CommandRequest, result: CommandResult) -> str:
    output = (result.stderr or result.stdout or "").strip()
    command_text = format_argv(request.argv)
    if result.timed_out:
        return f"command timed out: {command_text}"
    if output:
        lines = output.splitlines()
        return f"command failed: {command_text}\n" + "\n".join(lines[-20:])
    return f"command failed (exit {result.returncode}): {command_text}"


def run_checked(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult:
    """Execute a command and raise ``CommandExecutionError`` unless it succeeds."""
    result = run_with_runner(request, runner=runner)
    if result is None:
        raise CommandExecutionError(
            request=request,
            detail=_missing_command_detail(request),
        )
    if not result.ok:
        raise CommandExecutionError(
            request=request,
            result=result,
            detail=_command_failure_detail(request, result),
        )
    return result
