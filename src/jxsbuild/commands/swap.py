"""Implementation for the ``jxsbuild swap`` command."""

from argparse import Namespace
from pathlib import Path

from .. import libswap, log, paths
from ..errors import BuildFailure
from ..io import die, say


def swap(args: Namespace) -> None:
    """Swap shared libraries from a build output into a live directory."""
    source_dir = Path(args.source_dir)
    target_dir = Path(args.target_dir)
    try:
        report = libswap.swap(source_dir, target_dir, force=args.force)
    except BuildFailure as failure:
        if failure.recovery_hint:
            log.info(f"hint: {failure.recovery_hint}")
        die(failure.message)
    for name in report.displaced:
        log.info(f"backed up {name}")
    say(
        f"Swap completed: installed {len(report.installed)} file(s) into {target_dir}, "
        f"backed up {len(report.displaced)} to {paths.backup_dir(target_dir)}"
    )
