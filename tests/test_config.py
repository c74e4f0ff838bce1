"""Tests for config.py - AnalysisConfig validation and load_config merging."""

from pathlib import Path

import pytest

from hostguard.config import AnalysisConfig, load_config
from hostguard.exceptions import InvalidConfigError
from hostguard.models import Category, Severity
from hostguard.symbols import SymbolTag


class TestAnalysisConfig:
    """Test AnalysisConfig defaults and validation."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.categories == frozenset(Category)
        assert config.mode == "report"
        assert not config.fix
        assert config.fail_on_severity is Severity.ERROR
        assert config.workers >= 1
        assert config.extensions == (".cs",)

    def test_frozen(self):
        config = AnalysisConfig()
        with pytest.raises(Exception):
            config.mode = "fix"

    def test_comma_separated_strings(self):
        config = AnalysisConfig(rulesets="Threading, theming")
        assert config.categories == frozenset({Category.THREADING, Category.THEMING})

    @pytest.mark.parametrize(
        "kwargs, key",
        [
            ({"rulesets": ["Styling"]}, "rulesets"),
            ({"mode": "rewrite"}, "mode"),
            ({"fail_on": "fatal"}, "fail_on"),
            ({"max_workers": 0}, "max_workers"),
            ({"extensions": ["cs"]}, "extensions"),
            ({"max_file_size_mb": 0}, "max_file_size_mb"),
            ({"output_format": "xml"}, "output_format"),
            ({"verbosity": "loud"}, "verbosity"),
            ({"extra_symbols": {"Acme.Wait": ["NotATag"]}}, "extra_symbols.Acme.Wait"),
        ],
    )
    def test_invalid_values(self, kwargs, key):
        with pytest.raises(InvalidConfigError) as exc:
            AnalysisConfig(**kwargs)
        assert exc.value.key == key

    def test_symbol_entries(self):
        config = AnalysisConfig(extra_symbols={"*.BlockOn": ["BlockingWait"], "Acme.Ui.Assert": "UiThreadSwitch"})
        entries = {e.qualified_name: e for e in config.symbol_entries()}
        assert entries["BlockOn"].member_suffix
        assert entries["BlockOn"].tags == frozenset({SymbolTag.BLOCKING_WAIT})
        assert not entries["Acme.Ui.Assert"].member_suffix

    def test_file_size_in_bytes(self):
        assert AnalysisConfig(max_file_size_mb=1).max_file_size_bytes == 1024 * 1024


class TestLoadConfig:
    """Test load_config() source merging."""

    def test_overrides(self):
        config = load_config(mode="fix", fail_on="warning", rulesets=["Threading"])
        assert config.fix
        assert config.fail_on_severity is Severity.WARNING
        assert config.categories == frozenset({Category.THREADING})

    def test_none_overrides_are_ignored(self):
        assert load_config(mode=None).mode == "report"

    def test_verbose_and_quiet_flags(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"

    def test_project_file(self, tmp_path):
        (tmp_path / "hostguard.toml").write_text('[hostguard]\nrulesets = ["Theming"]\nfail_on = "info"\n')
        config = load_config()
        assert config.categories == frozenset({Category.THEMING})
        assert config.fail_on == "info"

    def test_global_file_is_overridden_by_project_file(self, tmp_path):
        (Path.home() / ".hostguard.toml").write_text('mode = "fix"\nfail_on = "warning"\n')
        (tmp_path / "hostguard.toml").write_text('fail_on = "info"\n')
        config = load_config()
        assert config.mode == "fix"
        assert config.fail_on == "info"

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('disabled_rules = ["async-method-naming"]\n\n[symbols]\n"*.BlockOn" = ["BlockingWait"]\n')
        config = load_config(config_file=path)
        assert config.disabled_rules == ("async-method-naming",)
        assert config.extra_symbols == {"*.BlockOn": ["BlockingWait"]}

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(InvalidConfigError, match="config_file"):
            load_config(config_file=tmp_path / "nope.toml")

    def test_malformed_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("rulesets = [\n")
        with pytest.raises(InvalidConfigError):
            load_config(config_file=path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "typo.toml"
        path.write_text('rule_sets = ["Threading"]\n')
        with pytest.raises(InvalidConfigError) as exc:
            load_config(config_file=path)
        assert exc.value.key == "rule_sets"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("HOSTGUARD_RULESETS", "Threading,Design")
        monkeypatch.setenv("HOSTGUARD_DRY_RUN", "yes")
        monkeypatch.setenv("HOSTGUARD_MAX_WORKERS", "3")
        config = load_config()
        assert config.categories == frozenset({Category.THREADING, Category.DESIGN})
        assert config.dry_run
        assert config.workers == 3

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("HOSTGUARD_FAIL_ON", "info")
        assert load_config(fail_on="warning").fail_on == "warning"

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv("HOSTGUARD_DRY_RUN", "maybe")
        with pytest.raises(InvalidConfigError) as exc:
            load_config()
        assert exc.value.key == "HOSTGUARD_DRY_RUN"
