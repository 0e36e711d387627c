import json
from pathlib import Path

import pytest

from jxsbuild import config, paths
from jxsbuild.errors import ConfigError
from jxsbuild.models import BuildConfig
from tests.jxsbuild.helpers import make_settings


@pytest.fixture
def no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    user_config = tmp_path / "user" / "config.json"
    monkeypatch.setattr(paths, "user_config_path", lambda: user_config)
    return user_config


def _write_json(path: Path, payload: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults_when_no_config_exists(tmp_path: Path, no_user_config: Path) -> None:
    loaded = config.load_build_config(tmp_path)

    assert loaded == BuildConfig()


def test_project_config_wins_over_user_config(tmp_path: Path, no_user_config: Path) -> None:
    _write_json(no_user_config, {"jobs": 2})
    _write_json(tmp_path / "jxsbuild.json", {"jobs": 6, "profile": "msys2"})

    loaded = config.load_build_config(tmp_path)

    assert (loaded.jobs, loaded.profile) == (6, "msys2")


def test_user_config_used_as_fallback(tmp_path: Path, no_user_config: Path) -> None:
    _write_json(no_user_config, {"jobs": 2})

    assert config.load_build_config(tmp_path).jobs == 2


def test_explicit_config_must_exist(tmp_path: Path, no_user_config: Path) -> None:
    with pytest.raises(ConfigError):
        config.load_build_config(tmp_path, tmp_path / "missing.json")


def test_invalid_json_is_a_config_error(tmp_path: Path, no_user_config: Path) -> None:
    path = tmp_path / "jxsbuild.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        config.load_build_config(tmp_path)


def test_unknown_keys_are_rejected(tmp_path: Path, no_user_config: Path) -> None:
    _write_json(tmp_path / "jxsbuild.json", {"profile": "linux", "colour": "blue"})

    with pytest.raises(ConfigError) as excinfo:
        config.load_build_config(tmp_path)

    assert "colour" in excinfo.value.message


def test_resolve_settings_defaults(tmp_path: Path) -> None:
    settings = config.resolve_settings(BuildConfig(jobs=3), root=tmp_path)

    root = tmp_path.resolve()
    assert settings.profile.name == "linux"
    assert settings.install_dir == root / "install-dir"
    assert settings.patches_dir == root / "patches"
    assert settings.framework_dir == root / "ffmpeg"
    assert settings.dependency_dir == root / "svtjpegxs"
    assert settings.jobs == 3
    assert settings.provision is True


def test_resolve_settings_cli_values_override_config(tmp_path: Path) -> None:
    loaded = BuildConfig(
        profile="linux",
        jobs=3,
        install_dir="/opt/jxs",
        framework={"ref": "release/7.0"},
        extra_configure_flags=["--enable-debug"],
    )

    settings = config.resolve_settings(
        loaded, root=tmp_path, profile="msys2", jobs=12, provision=False
    )

    assert settings.profile.name == "msys2"
    assert settings.profile.framework.ref == "release/7.0"
    assert settings.profile.framework.url.startswith("https://git.ffmpeg.org/")
    assert settings.install_dir == Path("/opt/jxs")
    assert settings.jobs == 12
    assert settings.provision is False
    assert settings.extra_configure_flags == ("--enable-debug",)


def test_prepend_search_path_deduplicates() -> None:
    assert config.prepend_search_path("/a", "/b:/a:/c", sep=":") == "/a:/b:/c"
    assert config.prepend_search_path("/a", None) == "/a"


def test_build_environment_extends_without_mutating_base(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    base = {"PATH": "/usr/bin", "LD_LIBRARY_PATH": "/usr/lib", "HOME": "/home/builder"}

    env = config.build_environment(settings, base)

    install = (tmp_path / "install-dir").as_posix()
    assert env.get("LD_LIBRARY_PATH").split(":")[0] == f"{install}/lib"
    assert env.get("LD_LIBRARY_PATH").endswith("/usr/lib")
    assert env.get("PKG_CONFIG_PATH") == f"{install}/lib/pkgconfig"
    assert env.get("PATH") == "/usr/bin"
    assert env.get("HOME") == "/home/builder"
    assert base["LD_LIBRARY_PATH"] == "/usr/lib"


def test_build_environment_for_msys2_profile(tmp_path: Path) -> None:
    settings = make_settings(tmp_path, "msys2")

    env = config.build_environment(settings, {"PATH": "/usr/bin", "LDFLAGS": "-s"}).as_dict()

    assert env["PATH"].split(":")[0] == "/mingw64/bin"
    assert env["PKG_CONFIG_PATH"].split(":")[1] == "/mingw64/lib/pkgconfig"
    assert env["LDFLAGS"] == "-L/mingw64/lib -s"
    assert env["CPPFLAGS"] == "-I/mingw64/include"
