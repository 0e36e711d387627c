"""Implementation for the ``jxsbuild build`` command."""

from argparse import Namespace
from pathlib import Path

from .. import config
from ..errors import BuildFailure
from ..io import die
from ..pipeline import Pipeline


def settings_from_args(args: Namespace) -> config.BuildSettings:
    """Resolve build settings from parsed CLI arguments."""
    root = Path(args.root) if args.root else Path.cwd()
    explicit = Path(args.config) if args.config else None
    loaded = config.load_build_config(root, explicit)
    return config.resolve_settings(
        loaded,
        root=root,
        profile=args.profile,
        install_dir=Path(args.install_dir) if args.install_dir else None,
        patches_dir=Path(args.patches_dir) if args.patches_dir else None,
        jobs=args.jobs,
        provision=False if args.skip_provision else None,
    )


def build(args: Namespace) -> None:
    """Run the full build pipeline.

    Args:
        args: Parsed CLI arguments for ``jxsbuild build``.

    Returns:
        None. Exits non-zero on a fatal failure.
    """
    try:
        settings = settings_from_args(args)
        Pipeline(settings).run()
    except BuildFailure as failure:
        stage = f"[{failure.stage}] " if failure.stage else ""
        die(f"{stage}{failure.message}")
