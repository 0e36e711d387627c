"""Path helpers for locating jxsbuild config files and build directories."""

from pathlib import Path

from platformdirs import user_config_dir

JXSBUILD_APP_NAME = "jxsbuild"
PROJECT_CONFIG_FILENAME = "jxsbuild.json"
USER_CONFIG_FILENAME = "config.json"
INSTALL_DIRNAME = "install-dir"
PATCHES_DIRNAME = "patches"
BACKUP_DIRNAME = "backup"


def user_config_path() -> Path:
    """Return the per-user defaults config file.

    Example:
        >>> user_config_path().name == USER_CONFIG_FILENAME
        True
    """
    return Path(user_config_dir(JXSBUILD_APP_NAME)) / USER_CONFIG_FILENAME


def project_config_path(root: Path) -> Path:
    """Return the build-root config file path."""
    return root / PROJECT_CONFIG_FILENAME


def resolve_under(root: Path, value: str | Path) -> Path:
    """Resolve ``value`` against ``root`` unless it is already absolute.

    Example:
        >>> resolve_under(Path("/build"), "ffmpeg").as_posix()
        '/build/ffmpeg'
        >>> resolve_under(Path("/build"), "/opt/ffmpeg").as_posix()
        '/opt/ffmpeg'
    """
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return root / path


def install_lib_dir(install_dir: Path) -> Path:
    return install_dir / "lib"


def install_pkgconfig_dir(install_dir: Path) -> Path:
    return install_dir / "lib" / "pkgconfig"


def install_bin_dir(install_dir: Path) -> Path:
    return install_dir / "bin"


def backup_dir(target_dir: Path) -> Path:
    """Return the backup area used by library swaps in ``target_dir``."""
    return target_dir / BACKUP_DIRNAME
