"""Implementation for the ``jxsbuild run`` command."""

from argparse import Namespace

from .. import launcher
from ..errors import BuildFailure
from ..io import die
from .build import settings_from_args


def run(args: Namespace) -> None:
    """Execute the installed program with the build's libraries."""
    try:
        settings = settings_from_args(args)
        launcher.launch(
            settings.install_dir,
            settings.profile.program,
            list(args.program_args),
            expected_os_id=settings.profile.provision.expected_os_id,
        )
    except BuildFailure as failure:
        die(failure.message)
