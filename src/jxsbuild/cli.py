"""jxsbuild command-line interface.

``jxsbuild`` bundles every command. ``jxsbuild-swap-libs`` and
``jxsbuild-restore-libs`` are standalone single-purpose utilities that take
only positional directories.
"""

from argparse import Namespace

import typer

from . import __version__
from . import log as jxsbuild_log
from .commands.build import build as build_cmd
from .commands.restore import restore as restore_cmd
from .commands.run import run as run_cmd
from .commands.swap import swap as swap_cmd
from .models import PROFILE_NAMES

app = typer.Typer(
    help="Reproducible FFmpeg + SVT-JPEG-XS builds.",
    no_args_is_help=True,
    add_completion=False,
)


def _validate_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in jxsbuild_log.LEVEL_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(jxsbuild_log.LEVEL_NAMES)}")
    return normalized


def _validate_profile(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in PROFILE_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(PROFILE_NAMES)}")
    return normalized


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jxsbuild {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level: trace, debug, info, success, warning, error.",
        callback=_validate_log_level,
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Global options."""
    if log_level is not None:
        jxsbuild_log.set_level(log_level)
    if no_color:
        jxsbuild_log.set_no_color(True)


@app.command("build")
def build(
    root: str | None = typer.Option(None, "--root", help="Build root (default: cwd)."),
    profile: str | None = typer.Option(
        None, "--profile", help="Host profile: linux or msys2.", callback=_validate_profile
    ),
    config: str | None = typer.Option(None, "--config", help="Config file path."),
    install_dir: str | None = typer.Option(None, "--install-dir", help="Install prefix."),
    patches_dir: str | None = typer.Option(None, "--patches-dir", help="User patch directory."),
    jobs: int | None = typer.Option(None, "--jobs", "-j", min=1, help="Compile parallelism."),
    skip_provision: bool = typer.Option(
        False, "--skip-provision", help="Skip host dependency checks and installation."
    ),
) -> None:
    """Clone, reset, patch, configure, compile and install."""
    build_cmd(
        Namespace(
            root=root,
            profile=profile,
            config=config,
            install_dir=install_dir,
            patches_dir=patches_dir,
            jobs=jobs,
            skip_provision=skip_provision,
        )
    )


@app.command("swap")
def swap(
    source_dir: str = typer.Argument(..., help="Directory with the new *.so* files."),
    target_dir: str = typer.Argument(..., help="Library directory to update."),
    force: bool = typer.Option(False, "--force", help="Overwrite an unrestored backup."),
) -> None:
    """Swap shared libraries into TARGET_DIR, backing up what they replace."""
    swap_cmd(Namespace(source_dir=source_dir, target_dir=target_dir, force=force))


@app.command("restore")
def restore(
    target_dir: str = typer.Argument(..., help="Library directory holding backup/."),
) -> None:
    """Undo the last swap in TARGET_DIR."""
    restore_cmd(Namespace(target_dir=target_dir))


@app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    root: str | None = typer.Option(None, "--root", help="Build root (default: cwd)."),
    profile: str | None = typer.Option(
        None, "--profile", help="Host profile: linux or msys2.", callback=_validate_profile
    ),
    config: str | None = typer.Option(None, "--config", help="Config file path."),
    install_dir: str | None = typer.Option(None, "--install-dir", help="Install prefix."),
) -> None:
    """Run the installed ffmpeg with the built libraries; pass its args after --."""
    run_cmd(
        Namespace(
            root=root,
            profile=profile,
            config=config,
            install_dir=install_dir,
            patches_dir=None,
            jobs=None,
            skip_provision=True,
            program_args=list(ctx.args),
        )
    )


swap_app = typer.Typer(add_completion=False)


@swap_app.command()
def swap_libs(
    source_dir: str = typer.Argument(...),
    target_dir: str = typer.Argument(...),
) -> None:
    """Usage: jxsbuild-swap-libs SOURCE_DIR TARGET_DIR"""
    swap_cmd(Namespace(source_dir=source_dir, target_dir=target_dir, force=False))


restore_app = typer.Typer(add_completion=False)


@restore_app.command()
def restore_libs(target_dir: str = typer.Argument(...)) -> None:
    """Usage: jxsbuild-restore-libs TARGET_DIR"""
    restore_cmd(Namespace(target_dir=target_dir))


if __name__ == "__main__":
    app()
