"""
Tests for CLI commands — run, steps, config check, and global options.
"""

import json
import textwrap
from pathlib import Path
from types import SimpleNamespace

import pytest
from click.testing import CliRunner

from upsweep.main import cli


@pytest.fixture(autouse=True)
def _isolated_config_home(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("UPSWEEP_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def _write_config(tmp_path: Path, content: str) -> Path:
    config = tmp_path / "upsweep.yml"
    config.write_text(textwrap.dedent(content))
    return config


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "upsweep" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestRunCommand:
    def test_dry_run_custom_command(self, tmp_path: Path):
        config = _write_config(tmp_path, """\
            commands:
              hello: echo hi
        """)
        result = CliRunner().invoke(
            cli, ["-c", str(config), "run", "--dry-run", "--only", "custom_commands"]
        )
        assert result.exit_code == 0
        assert "Dry running:" in result.output
        assert "echo hi" in result.output
        assert "✓ hello" in result.output
        assert "[dry-run] Summary" in result.output

    def test_failing_command_exit_code(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(
            "upsweep.adapters.shell.command.subprocess.run",
            lambda argv, **kwargs: SimpleNamespace(returncode=1),
        )
        config = _write_config(tmp_path, """\
            commands:
              broken: "false"
              fine: "true"
        """)
        result = CliRunner().invoke(cli, ["-c", str(config), "run", "--only", "custom_commands"])
        assert result.exit_code == 1
        assert "✗ broken" in result.output
        assert "✗ fine" in result.output
        assert "exit status 1" in result.output

    def test_passing_commands_exit_zero(self, tmp_path: Path, monkeypatch):
        calls = []

        def fake_run(argv, **kwargs):
            calls.append(argv)
            return SimpleNamespace(returncode=0)

        monkeypatch.setattr("upsweep.adapters.shell.command.subprocess.run", fake_run)
        config = _write_config(tmp_path, """\
            pre_commands:
              first: echo 1
            post_commands:
              last: echo 2
        """)
        result = CliRunner().invoke(cli, ["-c", str(config), "run", "--only", "custom_commands"])
        assert result.exit_code == 0
        assert [argv[-1] for argv in calls] == ["echo 1", "echo 2"]

    def test_unknown_only_is_usage_error(self):
        result = CliRunner().invoke(cli, ["run", "--only", "nope"])
        assert result.exit_code == 2
        assert "unknown step(s) nope" in result.output

    def test_comma_separated_names(self, tmp_path: Path):
        config = _write_config(tmp_path, "commands:\n  hello: echo hi\n")
        result = CliRunner().invoke(
            cli, ["-c", str(config), "run", "-n", "--only", "custom_commands,remotes"]
        )
        assert result.exit_code == 0
        assert "echo hi" in result.output

    def test_unknown_config_step_is_fatal(self, tmp_path: Path):
        config = _write_config(tmp_path, """\
            misc:
              disable: [nope]
        """)
        result = CliRunner().invoke(cli, ["-c", str(config), "run", "--dry-run"])
        assert result.exit_code == 2
        assert "unknown step(s) nope" in result.output

    def test_misspelled_config_key_is_fatal(self, tmp_path: Path):
        config = _write_config(tmp_path, """\
            misc:
              disabel: [snap]
        """)
        result = CliRunner().invoke(cli, ["-c", str(config), "run", "--dry-run"])
        assert result.exit_code == 2
        assert "disabel" in result.output

    def test_cleanup_flag(self, tmp_path: Path):
        config = _write_config(tmp_path, "misc: {}\n")
        result = CliRunner().invoke(
            cli, ["-c", str(config), "run", "--dry-run", "--cleanup", "--only", "custom_commands"]
        )
        assert result.exit_code == 0

    def test_fatal_json(self, tmp_path: Path):
        result = CliRunner().invoke(
            cli, ["-c", str(tmp_path / "missing.yml"), "run", "--dry-run", "--json"]
        )
        assert result.exit_code == 2
        data = json.loads(result.output)
        assert data["exit_code"] == 2
        assert "Config file not found" in data["error"]

    def test_invalid_env(self, tmp_path: Path):
        config = _write_config(tmp_path, "misc: {}\n")
        result = CliRunner().invoke(cli, ["-c", str(config), "run", "-n", "--env", "NOVALUE"])
        assert result.exit_code == 2
        assert "Invalid --env" in result.output


class TestStepsCommand:
    def test_lists_catalog(self):
        result = CliRunner().invoke(cli, ["steps"])
        assert result.exit_code == 0
        assert "system" in result.output
        assert "custom_commands" in result.output
        assert "remotes" in result.output

    def test_marks_disabled(self, tmp_path: Path):
        config = _write_config(tmp_path, "misc:\n  disable: [pipx]\n")
        result = CliRunner().invoke(cli, ["-c", str(config), "steps"])
        assert result.exit_code == 0
        assert "pipx" in result.output
        assert "(disabled)" in result.output


class TestConfigCheck:
    def test_valid(self, tmp_path: Path):
        config = _write_config(tmp_path, """\
            misc:
              disable: [snap]
              remote_hosts: [box1]
            post_commands:
              done: echo done
        """)
        result = CliRunner().invoke(cli, ["-c", str(config), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Remote hosts: 1" in result.output

    def test_invalid(self, tmp_path: Path):
        config = _write_config(tmp_path, "misc:\n  disable: [nope]\n")
        result = CliRunner().invoke(cli, ["-c", str(config), "config", "check"])
        assert result.exit_code == 2
        assert "Configuration errors" in result.output
        assert "nope" in result.output

    def test_missing_explicit(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["-c", str(tmp_path / "nope.yml"), "config", "check"])
        assert result.exit_code == 2
        assert "Config file not found" in result.output

    def test_json(self, tmp_path: Path):
        config = _write_config(tmp_path, "commands:\n  a: echo a\n  b: echo b\n")
        result = CliRunner().invoke(cli, ["-c", str(config), "config", "check", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["custom_commands"] == {"pre": 0, "main": 2, "post": 0}

    def test_no_config_file(self):
        result = CliRunner().invoke(cli, ["config", "check"])
        assert result.exit_code == 0
        assert "No config file" in result.output
