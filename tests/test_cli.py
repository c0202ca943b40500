"""End-to-end tests for the command-line interface with a mocked registry."""

from unittest.mock import patch

import pytest

from tfmodver.args import parse_args
from tfmodver.constants import ExitCodes
from tfmodver.errors import RegistryError, TfModVerError, UsageError
from tfmodver.registry.models import Module
from tfmodver.tfmodver import build_module_filter, load_constraints, main

MAIN_TF = """module "consul" {
  source  = "hashicorp/consul/aws"
  version = "1.0.0"
}

module "vault" {
  source  = "hashicorp/vault/aws"
  version = "0.1.0"
}

module "from_git" {
  source  = "github.com/example/module"
  version = "1.0.0"
}
"""

VERSIONS = {
    "consul": ["1.0.0", "1.5.0", "2.0.0"],
    "vault": ["0.1.0", "0.2.0"],
}


def _module(versions):
    return Module.from_dict({"source": "x", "versions": [{"version": v} for v in versions]})


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    (root / "main.tf").write_text(MAIN_TF, encoding="utf-8")
    return root


@pytest.fixture
def registry():
    with patch("tfmodver.tfmodver.RegistryClient") as client_cls:
        yield _configure(client_cls)


def _configure(client_cls):
    client = client_cls.return_value

    def fetch(host, namespace, name, provider, cancel_event=None):
        versions = VERSIONS.get(name)
        return _module(versions) if versions else None

    client.fetch_module_versions.side_effect = fetch
    client.fetch_module_info.return_value = {}
    client.cls = client_cls
    return client


def _read(root):
    return (root / "main.tf").read_text(encoding="utf-8")


class TestParseArgs:
    """Test argument parsing."""

    def test_defaults(self):
        args = parse_args(["show", "."])
        assert args.COMMAND == "show"
        assert args.PATH == "."
        assert args.WORKERS == 4
        assert args.LOG_LEVEL == "INFO"
        assert not args.NO_CACHE

    def test_update_options(self):
        args = parse_args(
            ["--workers", "8", "--loglevel", "debug", "update", ".", "--module", "a/b/c=minor", "--diff"]
        )
        assert args.WORKERS == 8
        assert args.LOG_LEVEL == "DEBUG"
        assert args.MODULES == ["a/b/c=minor"]
        assert args.DIFF

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_module_and_strategy_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["update", ".", "--module", "a/b/c=minor", "--version-strategy", "latest"])

    def test_constraint_options_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["show", ".", "--constraint", ">1", "--constraint-file", "f"])

    def test_workers_must_be_positive(self):
        with pytest.raises(SystemExit):
            parse_args(["--workers", "0", "show", "."])


class TestShow:
    """Test the ``show`` command."""

    def test_summary(self, project, registry, capsys):
        assert main(["--no-cache", "show", str(project)]) == ExitCodes.SUCCESS.value

        out = capsys.readouterr().out
        assert "UPDATE AVAILABLE" in out
        assert "Latest Version:    2.0.0" in out
        assert "github.com/example/module" in out
        assert "NOT SUPPORTED" in out
        assert _read(project) == MAIN_TF

    def test_unsupported_source_is_never_fetched(self, project, registry):
        main(["--no-cache", "show", str(project)])
        names = [c.args[2] for c in registry.fetch_module_versions.call_args_list]
        assert sorted(names) == ["consul", "vault"]

    def test_constraint_limits_latest(self, project, registry, capsys):
        assert main(["--no-cache", "show", str(project), "--constraint", "< 2.0.0"]) == 0
        assert "Latest Version:    1.5.0" in capsys.readouterr().out

    def test_no_modules(self, tmp_path, registry, capsys):
        assert main(["--no-cache", "show", str(tmp_path)]) == 0
        assert "No modules with version constraints found." in capsys.readouterr().out

    def test_missing_path(self, tmp_path, registry):
        assert main(["--no-cache", "show", str(tmp_path / "missing")]) == ExitCodes.USAGE_ERROR.value

    def test_invalid_constraint(self, project, registry):
        assert main(["--no-cache", "show", str(project), "--constraint", "~~ 1"]) == ExitCodes.USAGE_ERROR.value

    def test_constraint_file(self, project, registry, tmp_path, capsys):
        constraint_file = tmp_path / "constraints.txt"
        constraint_file.write_text(">= 1.0.0\n< 1.5.0\n", encoding="utf-8")
        assert main(["--no-cache", "show", str(project), "--constraint-file", str(constraint_file)]) == 0
        assert "Latest Version:    1.0.0" in capsys.readouterr().out

    def test_missing_constraint_file(self, project, registry, tmp_path):
        code = main(["--no-cache", "show", str(project), "--constraint-file", str(tmp_path / "nope")])
        assert code == ExitCodes.USAGE_ERROR.value


class TestUpdate:
    """Test the ``update`` command."""

    def test_updates_to_latest(self, project, registry, capsys):
        assert main(["--no-cache", "update", str(project)]) == 0

        content = _read(project)
        assert 'version = "2.0.0"' in content
        assert 'version = "0.2.0"' in content
        assert content.count('version = "1.0.0"') == 1  # the git module is left alone
        out = capsys.readouterr().out
        assert f"{project / 'main.tf'}: hashicorp/consul/aws 1.0.0 -> 2.0.0 (1 changes)" in out
        assert "Files Updated: 1" in out
        assert "Total Changes: 2" in out

    def test_minor_strategy(self, project, registry):
        assert main(["--no-cache", "update", str(project), "--version-strategy", "minor"]) == 0
        content = _read(project)
        assert 'version = "1.5.0"' in content
        assert 'version = "0.2.0"' in content

    def test_module_filter(self, project, registry):
        assert main(["--no-cache", "update", str(project), "--module", "hashicorp/vault/aws=latest"]) == 0
        content = _read(project)
        assert 'version = "0.2.0"' in content
        assert 'source  = "hashicorp/consul/aws"\n  version = "1.0.0"' in content

    def test_unmatched_module_pattern_is_a_warning(self, project, registry, caplog):
        code = main(
            [
                "--no-cache",
                "update",
                str(project),
                "--module",
                "hashicorp/vault/aws=latest",
                "--module",
                "nobody/uses/this=minor",
            ]
        )
        assert code == ExitCodes.SUCCESS.value
        assert 'version = "0.2.0"' in _read(project)
        assert "nobody/uses/this" in caplog.text

    def test_unmatched_module_pattern_with_error_on_warnings(self, project, registry):
        code = main(
            [
                "--no-cache",
                "--error-on-warnings",
                "update",
                str(project),
                "--module",
                "hashicorp/vault/aws=latest",
                "--module",
                "nobody/uses/this=minor",
            ]
        )
        assert code == ExitCodes.EXIT_WARNINGS.value

    def test_regex_module_filter_with_strategy(self, project, registry):
        assert main(["--no-cache", "update", str(project), "--module", "^hashicorp/.*=minor"]) == 0
        assert 'version = "1.5.0"' in _read(project)

    def test_invalid_module_filter(self, project, registry):
        code = main(["--no-cache", "update", str(project), "--module", "hashicorp/vault/aws=major"])
        assert code == ExitCodes.USAGE_ERROR.value
        assert _read(project) == MAIN_TF

    def test_constraint(self, project, registry):
        assert main(["--no-cache", "update", str(project), "--constraint", "< 2.0.0"]) == 0
        assert 'version = "1.5.0"' in _read(project)

    def test_diff_does_not_write(self, project, registry, capsys):
        assert main(["--no-cache", "update", str(project), "--diff"]) == 0

        out = capsys.readouterr().out
        assert '-  version = "1.0.0"' in out
        assert '+  version = "2.0.0"' in out
        assert _read(project) == MAIN_TF

    def test_diff_tool_failure(self, project, registry):
        code = main(["--no-cache", "update", str(project), "--diff", "--diff-tool", "definitely-not-a-diff-tool-xyz"])
        assert code == ExitCodes.FILE_ERROR.value
        assert _read(project) == MAIN_TF

    def test_second_run_changes_nothing(self, project, registry, capsys):
        main(["--no-cache", "update", str(project)])
        once = _read(project)
        capsys.readouterr()

        assert main(["--no-cache", "update", str(project)]) == 0
        assert _read(project) == once
        assert "Total Changes: 0" in capsys.readouterr().out


class TestExitCodes:
    """Test failure reporting."""

    def test_help(self):
        assert main(["--help"]) == ExitCodes.SUCCESS.value

    def test_bad_arguments(self):
        assert main(["frobnicate"]) == ExitCodes.USAGE_ERROR.value

    def test_all_registries_unreachable(self, project, registry):
        registry.fetch_module_versions.side_effect = RegistryError("connection refused")
        assert main(["--no-cache", "update", str(project)]) == ExitCodes.CONNECTION_ERROR.value
        assert _read(project) == MAIN_TF

    def test_partial_failure_is_a_warning(self, project, registry):
        def fetch(host, namespace, name, provider, cancel_event=None):
            if name == "vault":
                raise RegistryError("down", 503)
            return _module(VERSIONS[name])

        registry.fetch_module_versions.side_effect = fetch

        assert main(["--no-cache", "update", str(project)]) == ExitCodes.SUCCESS.value
        assert 'version = "2.0.0"' in _read(project)

    def test_error_on_warnings(self, project, registry):
        def fetch(host, namespace, name, provider, cancel_event=None):
            if name == "vault":
                raise RegistryError("down", 503)
            return _module(VERSIONS[name])

        registry.fetch_module_versions.side_effect = fetch

        code = main(["--no-cache", "--error-on-warnings", "show", str(project)])
        assert code == ExitCodes.EXIT_WARNINGS.value

    def test_invalid_cache_ttl(self, project, registry):
        assert main(["--cache-ttl", "soon", "show", str(project)]) == ExitCodes.USAGE_ERROR.value

    def test_invalid_config_file(self, project, registry, tmp_path):
        cfg = tmp_path / "xdg-config" / "terraform-module-versions" / "config.toml"
        cfg.parent.mkdir(parents=True)
        cfg.write_text("[cache\n", encoding="utf-8")
        assert main(["--no-cache", "show", str(project)]) == ExitCodes.USAGE_ERROR.value


class TestCacheOptions:
    """Test cache wiring."""

    def test_no_cache(self, project, registry):
        main(["--no-cache", "show", str(project)])
        assert registry.cls.call_args.kwargs["store"] is None

    def test_cache_dir_and_ttl(self, project, registry, tmp_path):
        cache_dir = tmp_path / "my-cache"
        main(["--cache-dir", str(cache_dir), "--cache-ttl", "1h", "show", str(project)])

        kwargs = registry.cls.call_args.kwargs
        assert kwargs["store"].path == str(cache_dir)
        assert kwargs["cache_ttl"] == 3600.0
        assert cache_dir.is_dir()

    def test_config_file_ttl(self, project, registry, tmp_path):
        cfg = tmp_path / "xdg-config" / "terraform-module-versions" / "config.toml"
        cfg.parent.mkdir(parents=True)
        cfg.write_text('[cache]\nttl = "30m"\n', encoding="utf-8")

        main(["show", str(project)])
        assert registry.cls.call_args.kwargs["cache_ttl"] == 1800.0

    def test_cache_clear(self, project, registry, tmp_path):
        cache_dir = tmp_path / "xdg-cache" / "terraform-module-versions"
        cache_dir.mkdir(parents=True)
        (cache_dir / "stale.json").write_text("{}", encoding="utf-8")

        main(["--no-cache", "--cache-clear", "show", str(project)])
        assert not (cache_dir / "stale.json").exists()


class TestUsageErrors:
    """Test command-line input validation."""

    def test_invalid_module_pattern(self):
        args = parse_args(["update", ".", "--module", "a/(b=latest"])
        with pytest.raises(UsageError):
            build_module_filter(args)

    def test_invalid_constraint(self):
        args = parse_args(["show", ".", "--constraint", ">= not-a-version"])
        with pytest.raises(UsageError) as exc:
            load_constraints(args)
        assert isinstance(exc.value, TfModVerError)
