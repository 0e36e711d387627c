"""Pydantic models for jxsbuild configuration data."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROFILE_NAMES = ("linux", "msys2")
ProfileName = Literal["linux", "msys2"]

PROVISIONER_VALUES = ("apt", "pacman", "none")
ProvisionerName = Literal["apt", "pacman", "none"]

DEFAULT_TOOLS = ("gcc", "g++", "ar", "ranlib", "strip", "nm", "objdump", "windres")


class RepositorySpec(BaseModel):
    """An external source repository tracked against a remote ref.

    Attributes:
        name: Short identifier used in logs and config overrides.
        url: Clone URL.
        path: Checkout location, relative to the build root unless absolute.
        ref: Target branch or tag.
        remote: Remote name the ref is qualified with during reset.
        checkout: Switch the working tree to ``ref`` after resetting.
        fallback_depth: Commits to step back when the remote ref is unreachable.

    Example:
        >>> RepositorySpec(name="ffmpeg", url="https://git.ffmpeg.org/ffmpeg.git",
        ...                path="ffmpeg", ref="release/7.1").remote_ref
        'origin/release/7.1'
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    url: str
    path: str
    ref: str = "main"
    remote: str = "origin"
    checkout: bool = False
    fallback_depth: int = Field(default=10, ge=0)

    @field_validator("ref", "remote", mode="before")
    @classmethod
    def normalize_ref(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def remote_ref(self) -> str:
        return f"{self.remote}/{self.ref}"


class RepositoryOverride(BaseModel):
    """User overrides for a built-in repository definition."""

    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    path: str | None = None
    ref: str | None = None
    remote: str | None = None


class DependencyBuildSpec(BaseModel):
    """Commands that build and install the codec library into the prefix.

    Arguments may contain ``{install_dir}``, ``{jobs}`` and ``{root}``
    placeholders.
    """

    model_config = ConfigDict(extra="forbid")

    cwd: str = "."
    commands: list[list[str]]


class PluginSpec(BaseModel):
    """Plugin files shipped by the codec repository for the framework.

    Attributes:
        source_dir: Plugin directory inside the dependency repository.
        pattern: Glob selecting the files to copy.
        destination: Directory inside the framework repository.
        patches_subdir: Official patch directory inside ``source_dir``.
    """

    model_config = ConfigDict(extra="forbid")

    source_dir: str = "ffmpeg-plugin"
    pattern: str = "libsvtjpegxs*"
    destination: str = "libavcodec"
    patches_subdir: str = "7.1"


class ToolchainSpec(BaseModel):
    """Compiler toolchain expectations for a host profile."""

    model_config = ConfigDict(extra="forbid")

    cross_prefix: str = ""
    bin_dir: str | None = None
    tools: list[str] = Field(default_factory=lambda: list(DEFAULT_TOOLS))
    required_cross_tools: list[str] = Field(default_factory=lambda: ["gcc", "nm"])
    native_cc: str = "gcc"
    native_cxx: str = "g++"
    create_aliases: bool = True


class ConfigureSpec(BaseModel):
    """Framework configure invocation.

    ``flags`` are always passed. ``arch_flags`` are dropped, together with
    every toolchain-selection flag, when configure is retried.
    """

    model_config = ConfigDict(extra="forbid")

    script: str = "./configure"
    flags: list[str]
    arch_flags: list[str] = Field(default_factory=list)


class ProvisionSpec(BaseModel):
    """Host package provisioning for a profile."""

    model_config = ConfigDict(extra="forbid")

    manager: ProvisionerName = "none"
    packages: list[str] = Field(default_factory=list)
    expected_os_id: str | None = None


class EnvironmentSpec(BaseModel):
    """Extra search paths and flags prepended to the build environment."""

    model_config = ConfigDict(extra="forbid")

    path: list[str] = Field(default_factory=list)
    pkg_config_path: list[str] = Field(default_factory=list)
    ldflags: list[str] = Field(default_factory=list)
    cppflags: list[str] = Field(default_factory=list)


class BuildProfile(BaseModel):
    """Everything host-specific about one build flavor."""

    model_config = ConfigDict(extra="forbid")

    name: ProfileName
    framework: RepositorySpec
    dependency: RepositorySpec
    dependency_build: DependencyBuildSpec
    plugin: PluginSpec = Field(default_factory=PluginSpec)
    toolchain: ToolchainSpec = Field(default_factory=ToolchainSpec)
    configure: ConfigureSpec
    provision: ProvisionSpec = Field(default_factory=ProvisionSpec)
    environment: EnvironmentSpec = Field(default_factory=EnvironmentSpec)
    program: str = "ffmpeg"


class BuildConfig(BaseModel):
    """User configuration loaded from ``jxsbuild.json``.

    Example:
        >>> BuildConfig(profile="msys2", jobs=4).jobs
        4
    """

    model_config = ConfigDict(extra="forbid")

    profile: ProfileName = "linux"
    install_dir: str | None = None
    patches_dir: str | None = None
    jobs: int | None = Field(default=None, ge=1)
    provision: bool = True
    extra_configure_flags: list[str] = Field(default_factory=list)
    framework: RepositoryOverride = Field(default_factory=RepositoryOverride)
    dependency: RepositoryOverride = Field(default_factory=RepositoryOverride)


class SwapManifest(BaseModel):
    """Record of one library swap, stored inside the backup directory."""

    model_config = ConfigDict(extra="allow")

    source_dir: str
    installed: list[str] = Field(default_factory=list)
    displaced: list[str] = Field(default_factory=list)
    created_at: str
