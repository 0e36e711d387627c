"""Implementation for the ``jxsbuild restore`` command."""

from argparse import Namespace
from pathlib import Path

from .. import libswap
from ..errors import BuildFailure
from ..io import die, say


def restore(args: Namespace) -> None:
    """Move backed-up libraries back into the target directory."""
    target_dir = Path(args.target_dir)
    try:
        libswap.restore(target_dir)
    except BuildFailure as failure:
        die(failure.message)
    say(f"Restore completed: moved backups back to {target_dir}")
