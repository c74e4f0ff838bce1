"""Tests for the hostguard command line: check, rules and --version."""

import json
import logging

import pytest
from typer.testing import CliRunner

from hostguard import __version__
from hostguard.cli import app
from hostguard.logging_config import setup_logging


@pytest.fixture
def runner():
    return CliRunner()


class TestVersion:
    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRulesCommand:
    def test_lists_rules(self, runner):
        result = runner.invoke(app, ["rules"])
        assert result.exit_code == 0
        assert "hostguard rules" in result.output

    def test_category_filter(self, runner):
        result = runner.invoke(app, ["rules", "-r", "theming"])
        assert result.exit_code == 0
        assert "hardcoded-visual-resource" in result.output
        assert "Threading" not in result.output

    def test_unknown_category(self, runner):
        result = runner.invoke(app, ["rules", "-r", "Styling"])
        assert result.exit_code == 3


class TestCheckCommand:
    def test_clean_directory(self, runner, write_cs, clean_source):
        write_cs("Calc.cs", clean_source)
        result = runner.invoke(app, ["check"])
        assert result.exit_code == 0
        assert "No issues found" in result.output

    def test_diagnostics_fail_the_run(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path])
        assert result.exit_code == 1
        assert "blocking-call-on-affinity-thread" in result.output

    def test_json_output(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path, "-f", "json", "-q"])
        assert result.exit_code == 1
        (record,) = json.loads(result.stdout)
        assert record["ruleId"] == "blocking-call-on-affinity-thread"
        assert record["startLine"] == 10

    def test_github_output(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path, "-f", "github", "-q"])
        assert result.stdout.startswith("::error file=")

    def test_ruleset_filter(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path, "-r", "Theming"])
        assert result.exit_code == 0

    def test_dry_run_does_not_write(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path, "--dry-run"])
        assert result.exit_code == 1
        assert "+            await task;" in result.output
        with open(path, encoding="utf-8", newline="") as f:
            assert f.read() == blocking_package

    def test_fix_writes(self, runner, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        result = runner.invoke(app, ["check", path, "--fix"])
        assert result.exit_code == 0
        with open(path, encoding="utf-8") as f:
            assert "await task;" in f.read()

    def test_fail_on_warning(self, runner, write_cs):
        path = write_cs("Legacy.cs", "using Microsoft.VisualStudio.Shell;\npublic class P : Package { }\n")
        assert runner.invoke(app, ["check", path]).exit_code == 0
        assert runner.invoke(app, ["check", path, "--fail-on", "warning"]).exit_code == 1

    def test_missing_file_is_an_internal_failure(self, runner, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "Missing.cs")])
        assert result.exit_code == 2

    def test_bad_config_file(self, runner, tmp_path, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        config = tmp_path / "bad.toml"
        config.write_text('rulesets = ["Styling"]\n')
        result = runner.invoke(app, ["check", path, "--config", str(config)])
        assert result.exit_code == 3

    def test_unknown_disabled_rule(self, runner, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        result = runner.invoke(app, ["check", path, "--disable", "no-such-rule"])
        assert result.exit_code == 3

    def test_project_config_is_picked_up(self, runner, tmp_path, write_cs, blocking_package):
        path = write_cs("Pkg.cs", blocking_package)
        (tmp_path / "hostguard.toml").write_text('disabled_rules = ["blocking-call-on-affinity-thread"]\n')
        assert runner.invoke(app, ["check", path]).exit_code == 0


class TestCheckLogging:
    """The resolved verbosity setting drives logging."""

    def test_verbosity_from_project_config(self, runner, tmp_path, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        (tmp_path / "hostguard.toml").write_text('verbosity = "verbose"\n')
        assert runner.invoke(app, ["check", path]).exit_code == 0
        assert logging.getLogger("hostguard").level == logging.DEBUG

    def test_verbosity_from_environment(self, runner, monkeypatch, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        monkeypatch.setenv("HOSTGUARD_VERBOSITY", "quiet")
        assert runner.invoke(app, ["check", path]).exit_code == 0
        assert logging.getLogger("hostguard").level == logging.ERROR

    def test_flag_overrides_config(self, runner, tmp_path, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        (tmp_path / "hostguard.toml").write_text('verbosity = "verbose"\n')
        assert runner.invoke(app, ["check", path, "-q"]).exit_code == 0
        assert logging.getLogger("hostguard").level == logging.ERROR

    def test_log_file_follows_config_verbosity(self, runner, tmp_path, write_cs, clean_source):
        path = write_cs("Calc.cs", clean_source)
        log_file = tmp_path / "run.log"
        (tmp_path / "hostguard.toml").write_text('verbosity = "verbose"\n')
        assert runner.invoke(app, ["check", path, "--log-file", str(log_file)]).exit_code == 0
        setup_logging()
        assert "DEBUG" in log_file.read_text(encoding="utf-8")
