"""Unit tests for configuration loading."""

from pathlib import Path

import pydantic
import pytest

from crane.config import (
    DEFAULT_MAX_SIZE,
    DEFAULT_MIRROR,
    HttpConfig,
    MirrorConfig,
    load_settings,
)


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults_without_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        settings = load_settings(tmp_path / "missing.toml")

        assert settings.paths.root == tmp_path / "papers"
        assert settings.paths.root.is_dir()
        assert settings.mirror.url == DEFAULT_MIRROR
        assert settings.http.max_size == DEFAULT_MAX_SIZE

    def test_reads_toml(self, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text(
            f'[paths]\nroot = "{tmp_path / "library"}"\n\n'
            '[mirror]\nurl = "https://mirror.test/"\n\n'
            "[http]\ntimeout = 5\nmax_size = 1000\n"
        )

        settings = load_settings(config)

        assert settings.paths.root == tmp_path / "library"
        assert settings.paths.root.is_dir()
        assert settings.paths.tmp is None
        assert settings.mirror.url == "https://mirror.test/"
        assert settings.http.timeout == 5.0
        assert settings.http.max_size == 1000

    def test_expands_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        config = tmp_path / "config.toml"
        config.write_text('[paths]\nroot = "~/papers"\ntmp = "~/tmp"\n')

        settings = load_settings(config)

        assert settings.paths.root == tmp_path / "papers"
        assert settings.paths.tmp == tmp_path / "tmp"
        assert settings.paths.tmp.is_dir()


class TestValidation:
    """Tests for config validators."""

    def test_mirror_must_be_http(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            MirrorConfig(url="ftp://mirror.test/")

    def test_http_defaults(self) -> None:
        config = HttpConfig()
        assert (config.timeout, config.connect_timeout) == (30.0, 10.0)
        assert "iPhone" in config.mirror_user_agent
