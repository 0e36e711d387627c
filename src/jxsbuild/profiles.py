"""Built-in host profiles.

``linux`` targets an Ubuntu host producing shared libraries; ``msys2``
targets Windows through the MSYS2 MinGW-w64 shell producing a static build.
"""

from __future__ import annotations

from .models import (
    BuildProfile,
    ConfigureSpec,
    DependencyBuildSpec,
    EnvironmentSpec,
    PluginSpec,
    ProfileName,
    ProvisionSpec,
    RepositorySpec,
    ToolchainSpec,
)

FFMPEG_URL = "https://git.ffmpeg.org/ffmpeg.git"
SVT_JPEG_XS_URL = "https://github.com/OpenVisualCloud/SVT-JPEG-XS.git"
FFMPEG_REF = "release/7.1"
MINGW_ROOT = "/mingw64"
MINGW_CROSS_PREFIX = "x86_64-w64-mingw32-"

MSYS2_PACKAGES = (
    "make",
    "mingw-w64-x86_64-gcc",
    "mingw-w64-x86_64-cmake",
    "mingw-w64-x86_64-yasm",
    "mingw-w64-x86_64-diffutils",
    "mingw-w64-x86_64-SDL2",
    "mingw-w64-x86_64-binutils",
    "mingw-w64-x86_64-pkg-config",
    "git",
    "patch",
)

UBUNTU_PACKAGES = (
    "build-essential",
    "cmake",
    "nasm",
    "yasm",
    "pkg-config",
    "git",
    "libx265-dev",
)


def _framework(**overrides: object) -> RepositorySpec:
    data: dict[str, object] = {
        "name": "ffmpeg",
        "url": FFMPEG_URL,
        "path": "ffmpeg",
        "ref": FFMPEG_REF,
        "checkout": True,
    }
    data.update(overrides)
    return RepositorySpec.model_validate(data)


def linux_profile() -> BuildProfile:
    return BuildProfile(
        name="linux",
        framework=_framework(),
        dependency=RepositorySpec(
            name="svtjpegxs", url=SVT_JPEG_XS_URL, path="svtjpegxs", ref="main"
        ),
        dependency_build=DependencyBuildSpec(
            cwd="Build/linux",
            commands=[["./build.sh", "install", "--prefix", "{install_dir}"]],
        ),
        plugin=PluginSpec(),
        toolchain=ToolchainSpec(create_aliases=False),
        configure=ConfigureSpec(
            flags=[
                "--enable-libsvtjpegxs",
                "--prefix={install_dir}",
                "--enable-shared",
                "--enable-gpl",
                "--enable-libx265",
            ],
        ),
        provision=ProvisionSpec(
            manager="apt", packages=list(UBUNTU_PACKAGES), expected_os_id="ubuntu"
        ),
    )


def msys2_profile() -> BuildProfile:
    return BuildProfile(
        name="msys2",
        framework=_framework(),
        dependency=RepositorySpec(
            name="SVT-JPEG-XS", url=SVT_JPEG_XS_URL, path="SVT-JPEG-XS", ref="main"
        ),
        dependency_build=DependencyBuildSpec(
            cwd=".",
            commands=[
                [
                    "cmake",
                    "-S",
                    ".",
                    "-B",
                    "svtjpegxs-build",
                    "-DBUILD_APPS=off",
                    "-DCMAKE_BUILD_TYPE=Release",
                    "-DBUILD_SHARED_LIBS=OFF",
                    "-DCMAKE_INSTALL_PREFIX={install_dir}",
                ],
                [
                    "cmake",
                    "--build",
                    "svtjpegxs-build",
                    "-j{jobs}",
                    "--config",
                    "Release",
                    "--target",
                    "install",
                ],
            ],
        ),
        plugin=PluginSpec(),
        toolchain=ToolchainSpec(
            cross_prefix=MINGW_CROSS_PREFIX, bin_dir=f"{MINGW_ROOT}/bin"
        ),
        configure=ConfigureSpec(
            flags=[
                "--enable-libsvtjpegxs",
                "--prefix={install_dir}",
                "--enable-static",
                "--disable-shared",
                "--enable-gpl",
                "--enable-version3",
                "--pkg-config=pkg-config",
                "--extra-cflags=-I{install_dir}/include",
                "--extra-ldflags=-L{install_dir}/lib",
            ],
            arch_flags=["--arch=x86_64", "--target-os=mingw32"],
        ),
        provision=ProvisionSpec(manager="pacman", packages=list(MSYS2_PACKAGES)),
        environment=EnvironmentSpec(
            path=[f"{MINGW_ROOT}/bin"],
            pkg_config_path=[f"{MINGW_ROOT}/lib/pkgconfig"],
            ldflags=[f"-L{MINGW_ROOT}/lib"],
            cppflags=[f"-I{MINGW_ROOT}/include"],
        ),
    )


_PROFILES = {
    "linux": linux_profile,
    "msys2": msys2_profile,
}


def load_profile(name: ProfileName) -> BuildProfile:
    """Return a fresh copy of a built-in profile.

    Example:
        >>> load_profile("msys2").toolchain.cross_prefix
        'x86_64-w64-mingw32-'
    """
    return _PROFILES[name]()
