"""
Tests for debdoctor.config — TOML loading and CLI/file merging.
"""

from pathlib import Path
from unittest.mock import patch

from debdoctor.config import (
    FALLBACK_LOG_DIR,
    Config,
    build_config,
    default_log_dir,
    load_config,
)
from debdoctor.fixer.models import RiskLevel


class TestLoadConfig:
    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(path=tmp_path / "nonexistent" / "config.toml") == {}

    def test_valid_toml(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "/var/tmp/dd-logs"\nmax_auto_risk = "Medium"\n')
        assert load_config(path=cfg) == {
            "log_dir": Path("/var/tmp/dd-logs"),
            "max_auto_risk": RiskLevel.MEDIUM,
        }

    def test_malformed_toml_returns_empty(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text("log_dir = [not valid toml\n")
        assert load_config(path=cfg) == {}

    def test_unknown_risk_dropped(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "/srv/logs"\nmax_auto_risk = "extreme"\n')
        assert load_config(path=cfg) == {"log_dir": Path("/srv/logs")}

    def test_wrong_types_dropped(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text("log_dir = 42\nmax_auto_risk = 1\n")
        assert load_config(path=cfg) == {}

    def test_blank_log_dir_dropped(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "   "\n')
        assert load_config(path=cfg) == {}

    def test_tilde_expanded(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "~/dd"\n')
        assert load_config(path=cfg)["log_dir"] == Path("~/dd").expanduser()

    def test_unknown_keys_ignored(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('title = "my config"\n')
        assert load_config(path=cfg) == {}

    def test_directory_instead_of_file(self, tmp_path):
        assert load_config(path=tmp_path) == {}


class TestBuildConfig:
    def test_defaults(self, tmp_path):
        config = build_config(config_path=tmp_path / "missing.toml")
        assert isinstance(config, Config)
        assert config.verbose is False
        assert config.non_interactive is False
        assert config.max_auto_risk == RiskLevel.LOW
        assert config.log_dir == default_log_dir()

    def test_file_values_used(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "/srv/logs"\nmax_auto_risk = "high"\n')
        config = build_config(config_path=cfg)
        assert config.log_dir == Path("/srv/logs")
        assert config.max_auto_risk == RiskLevel.HIGH

    def test_flags_win_over_file(self, tmp_path):
        cfg = tmp_path / "config.toml"
        cfg.write_text('log_dir = "/srv/logs"\nmax_auto_risk = "high"\n')
        config = build_config(
            verbose=True,
            non_interactive=True,
            log_dir=tmp_path / "flag-logs",
            max_auto_risk=RiskLevel.LOW,
            config_path=cfg,
        )
        assert config.log_dir == tmp_path / "flag-logs"
        assert config.max_auto_risk == RiskLevel.LOW
        assert config.verbose and config.non_interactive


class TestDefaultLogDir:
    def test_under_home(self, tmp_path):
        with patch("debdoctor.config.Path.home", return_value=tmp_path):
            assert default_log_dir() == tmp_path / ".debian-doctor" / "logs"

    def test_fallback_without_home(self):
        with patch("debdoctor.config.Path.home", side_effect=RuntimeError("no home")):
            assert default_log_dir() == FALLBACK_LOG_DIR
