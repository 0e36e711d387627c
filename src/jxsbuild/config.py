"""Configuration helpers for jxsbuild.

This module reads ``jxsbuild.json`` files, validates them with Pydantic
models, merges them over a built-in host profile, and builds the explicit
environment mapping handed to every external command.

Example:
    >>> prepend_search_path("/opt/lib", "/usr/lib")
    '/opt/lib:/usr/lib'
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pydantic import ValidationError

from . import paths, profiles
from .errors import ConfigError
from .models import BuildConfig, BuildProfile, ProfileName, RepositoryOverride, RepositorySpec


def load_json(path: Path) -> dict | None:
    """Load a JSON file if it exists.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload as a dict, or ``None`` if the file does not exist.

    Example:
        >>> load_json(Path("missing.json")) is None
        True
    """
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def find_config_path(root: Path, explicit: Path | None = None) -> Path | None:
    """Locate the config file to use, in precedence order."""
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"config file not found: {explicit}")
        return explicit
    for candidate in (paths.project_config_path(root), paths.user_config_path()):
        if candidate.exists():
            return candidate
    return None


def load_build_config(root: Path, explicit: Path | None = None) -> BuildConfig:
    """Load and validate the build config, falling back to defaults."""
    path = find_config_path(root, explicit)
    if path is None:
        return BuildConfig()
    try:
        payload = load_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    try:
        return BuildConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"invalid config {path}:\n{exc}") from exc


def _apply_override(spec: RepositorySpec, override: RepositoryOverride) -> RepositorySpec:
    updates = override.model_dump(exclude_none=True)
    if not updates:
        return spec
    return spec.model_copy(update=updates)


@dataclass(frozen=True)
class BuildSettings:
    """Fully resolved inputs for one pipeline run."""

    root: Path
    profile: BuildProfile
    install_dir: Path
    patches_dir: Path
    jobs: int
    provision: bool
    extra_configure_flags: tuple[str, ...] = ()

    @property
    def framework_dir(self) -> Path:
        return paths.resolve_under(self.root, self.profile.framework.path)

    @property
    def dependency_dir(self) -> Path:
        return paths.resolve_under(self.root, self.profile.dependency.path)

    @property
    def repositories(self) -> tuple[RepositorySpec, ...]:
        return (self.profile.dependency, self.profile.framework)

    def repository_dir(self, spec: RepositorySpec) -> Path:
        return paths.resolve_under(self.root, spec.path)

    def render(self, template: str) -> str:
        """Expand ``{install_dir}``, ``{jobs}`` and ``{root}`` placeholders.

        Example:
            >>> settings = BuildSettings(
            ...     root=Path("/b"),
            ...     profile=profiles.load_profile("linux"),
            ...     install_dir=Path("/b/install-dir"),
            ...     patches_dir=Path("/b/patches"),
            ...     jobs=8,
            ...     provision=False,
            ... )
            >>> settings.render("--prefix={install_dir} -j{jobs}")
            '--prefix=/b/install-dir -j8'
        """
        return template.format_map(
            {
                "install_dir": self.install_dir.as_posix(),
                "jobs": str(self.jobs),
                "root": self.root.as_posix(),
            }
        )


def resolve_settings(
    config: BuildConfig,
    *,
    root: Path,
    profile: ProfileName | None = None,
    install_dir: Path | None = None,
    patches_dir: Path | None = None,
    jobs: int | None = None,
    provision: bool | None = None,
) -> BuildSettings:
    """Merge CLI overrides, config values, and profile defaults."""
    root = root.expanduser().resolve()
    selected = profiles.load_profile(profile or config.profile)
    selected = selected.model_copy(
        update={
            "framework": _apply_override(selected.framework, config.framework),
            "dependency": _apply_override(selected.dependency, config.dependency),
        }
    )
    resolved_install = install_dir or paths.resolve_under(
        root, config.install_dir or paths.INSTALL_DIRNAME
    )
    resolved_patches = patches_dir or paths.resolve_under(
        root, config.patches_dir or paths.PATCHES_DIRNAME
    )
    return BuildSettings(
        root=root,
        profile=selected,
        install_dir=resolved_install.expanduser().resolve(),
        patches_dir=resolved_patches.expanduser().resolve(),
        jobs=jobs or config.jobs or os.cpu_count() or 1,
        provision=config.provision if provision is None else provision,
        extra_configure_flags=tuple(config.extra_configure_flags),
    )


def prepend_search_path(entry: str, existing: str | None, *, sep: str = os.pathsep) -> str:
    """Prepend ``entry`` to a search-path value, keeping what was there."""
    if not existing:
        return entry
    parts = [part for part in existing.split(sep) if part and part != entry]
    return sep.join([entry, *parts])


def _prepend_flags(flags: list[str], existing: str | None) -> str:
    joined = " ".join(flags)
    if not existing:
        return joined
    return f"{joined} {existing}"


@dataclass(frozen=True)
class BuildEnvironment:
    """Explicit environment passed to external build commands."""

    variables: Mapping[str, str]

    def get(self, name: str) -> str | None:
        return self.variables.get(name)

    def as_dict(self) -> dict[str, str]:
        return dict(self.variables)


def build_environment(
    settings: BuildSettings, base: Mapping[str, str] | None = None
) -> BuildEnvironment:
    """Derive the build environment from ``base`` without mutating it."""
    env = dict(os.environ if base is None else base)
    spec = settings.profile.environment
    for entry in reversed(spec.path):
        env["PATH"] = prepend_search_path(entry, env.get("PATH"))
    for entry in reversed(spec.pkg_config_path):
        env["PKG_CONFIG_PATH"] = prepend_search_path(entry, env.get("PKG_CONFIG_PATH"))
    if spec.ldflags:
        env["LDFLAGS"] = _prepend_flags(spec.ldflags, env.get("LDFLAGS"))
    if spec.cppflags:
        env["CPPFLAGS"] = _prepend_flags(spec.cppflags, env.get("CPPFLAGS"))
    env["LD_LIBRARY_PATH"] = prepend_search_path(
        paths.install_lib_dir(settings.install_dir).as_posix(), env.get("LD_LIBRARY_PATH")
    )
    env["PKG_CONFIG_PATH"] = prepend_search_path(
        paths.install_pkgconfig_dir(settings.install_dir).as_posix(),
        env.get("PKG_CONFIG_PATH"),
    )
    return BuildEnvironment(variables=env)
