"""Tests for the configuration file and duration parsing."""

import os

import pytest

from tfmodver.config import Config, default_cache_dir, default_config_path, load_config, parse_duration
from tfmodver.errors import ConfigError


class TestParseDuration:
    """Test duration strings."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("24h", 86400.0),
            ("1h30m", 5400.0),
            ("90s", 90.0),
            ("500ms", 0.5),
            ("1.5h", 5400.0),
            ("90", 90.0),
            ("0", 0.0),
            (60, 60.0),
            (2.5, 2.5),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "   ", "-5", -1, "abc", "10d", "1h-5m", "h", True])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_duration(value)


@pytest.fixture
def xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    return tmp_path


def _write_config(xdg_root, text):
    path = xdg_root / "config" / "terraform-module-versions" / "config.toml"
    path.parent.mkdir(parents=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    """Test XDG paths."""

    def test_xdg_paths(self, xdg):
        assert default_config_path() == os.path.join(
            str(xdg / "config"), "terraform-module-versions", "config.toml"
        )
        assert default_cache_dir() == os.path.join(str(xdg / "cache"), "terraform-module-versions")

    def test_home_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_config_path() == os.path.join(
            str(tmp_path), ".config", "terraform-module-versions", "config.toml"
        )
        assert default_cache_dir() == os.path.join(str(tmp_path), ".cache", "terraform-module-versions")


class TestLoadConfig:
    """Test reading config.toml."""

    def test_missing_file(self, xdg):
        assert load_config() == Config()

    def test_full_file(self, xdg):
        _write_config(
            xdg,
            '[diff]\ntool = "delta --side-by-side"\n\n[cache]\ndir = "/tmp/tfmv"\nttl = "12h"\n',
        )
        cfg = load_config()
        assert cfg.diff_tool == "delta --side-by-side"
        assert cfg.cache_dir == "/tmp/tfmv"
        assert cfg.cache_ttl == 43200.0

    def test_numeric_ttl(self, xdg):
        _write_config(xdg, "[cache]\nttl = 300\n")
        assert load_config().cache_ttl == 300.0

    def test_partial_file(self, xdg):
        _write_config(xdg, '[diff]\ntool = "colordiff"\n')
        cfg = load_config()
        assert cfg.diff_tool == "colordiff"
        assert cfg.cache_dir is None
        assert cfg.cache_ttl is None

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('[cache]\nttl = "1m"\n', encoding="utf-8")
        assert load_config(str(path)).cache_ttl == 60.0

    def test_directory_path(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path))

    def test_malformed_toml(self, xdg):
        _write_config(xdg, "[diff\ntool = \n")
        with pytest.raises(ConfigError):
            load_config()

    def test_invalid_ttl(self, xdg):
        _write_config(xdg, '[cache]\nttl = "soon"\n')
        with pytest.raises(ConfigError, match="cache.ttl"):
            load_config()

    def test_section_must_be_table(self, xdg):
        _write_config(xdg, 'diff = "delta"\n')
        with pytest.raises(ConfigError):
            load_config()
