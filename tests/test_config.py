"""Tests for configuration loading and merging."""

from pathlib import Path

import pytest

from solsift.config import (
    CONFIG_FILENAME,
    AnalysisConfig,
    ProtocolConfig,
    init_config_file,
    load_config,
)
from solsift.exceptions import InvalidConfigError, InvalidPathError
from solsift.models import Severity


class TestAnalysisConfig:
    """Defaults and validation."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.scope == []
        assert config.exclude == ["lib", "test"]
        assert config.min_severity is Severity.NC
        assert config.workers is None
        assert config.protocol == ProtocolConfig()

    def test_min_severity_string_is_coerced(self):
        assert AnalysisConfig(min_severity="medium").min_severity is Severity.MEDIUM

    def test_zero_workers_rejected(self):
        with pytest.raises(ValueError, match="workers"):
            AnalysisConfig(workers=0)

    def test_remapping_without_equals_rejected(self):
        with pytest.raises(ValueError, match="prefix=target"):
            AnalysisConfig(remappings=["@oz/lib/oz/"])

    def test_scope_must_be_list(self):
        with pytest.raises(ValueError, match="scope"):
            AnalysisConfig(scope="src")

    def test_is_frozen(self):
        config = AnalysisConfig()
        with pytest.raises(AttributeError):
            config.workers = 4


class TestProtocolConfig:
    def test_all_features_enabled_by_default(self):
        assert ProtocolConfig().enabled_features() == frozenset(ProtocolConfig.feature_names())

    def test_disabled_flag_removed(self):
        assert "uses_l2" not in ProtocolConfig(uses_l2=False).enabled_features()

    def test_non_bool_rejected(self):
        with pytest.raises(ValueError):
            ProtocolConfig(uses_nft="yes")


class TestLoadConfig:
    """Merging file, environment and overrides."""

    def test_no_sources_gives_defaults(self, tmp_path):
        config = load_config(root=tmp_path)
        assert config.min_severity is Severity.NC
        assert config.root == str(tmp_path)

    def test_project_file_is_read(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            'min_severity = "Low"\nexclude_detectors = ["floating-pragma"]\n'
        )
        config = load_config(root=tmp_path)
        assert config.min_severity is Severity.LOW
        assert config.exclude_detectors == ["floating-pragma"]

    def test_file_remappings_rank_as_config(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('remappings = ["@oz/=lib/oz/"]\n')
        config = load_config(root=tmp_path, remappings=["@oz/=vendor/oz/"])
        assert config.config_remappings == ["@oz/=lib/oz/"]
        assert config.remappings == ["@oz/=vendor/oz/"]

    def test_protocol_table_merges_with_overrides(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[protocol]\nuses_l2 = false\n")
        config = load_config(root=tmp_path, protocol={"uses_nft": False})
        assert config.protocol.uses_l2 is False
        assert config.protocol.uses_nft is False
        assert config.protocol.uses_fot_tokens is True

    def test_explicit_file_overrides_project_file(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('min_severity = "Low"\n')
        explicit = tmp_path / "ci.toml"
        explicit.write_text('min_severity = "High"\n')
        assert load_config(config_file=explicit, root=tmp_path).min_severity is Severity.HIGH

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(InvalidPathError):
            load_config(config_file=tmp_path / "missing.toml", root=tmp_path)

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / CONFIG_FILENAME).write_text('min_severity = "Low"\n')
        monkeypatch.setenv("SOLSIFT_MIN_SEVERITY", "medium")
        monkeypatch.setenv("SOLSIFT_EXCLUDE_DETECTORS", "a, b")
        monkeypatch.setenv("SOLSIFT_WORKERS", "3")
        config = load_config(root=tmp_path)
        assert config.min_severity is Severity.MEDIUM
        assert config.exclude_detectors == ["a", "b"]
        assert config.workers == 3

    def test_overrides_beat_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SOLSIFT_WORKERS", "3")
        assert load_config(root=tmp_path, workers=1).workers == 1

    def test_none_overrides_ignored(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("workers = 2\n")
        assert load_config(root=tmp_path, workers=None).workers == 2

    def test_bad_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SOLSIFT_WORKERS", "many")
        with pytest.raises(InvalidConfigError):
            load_config(root=tmp_path)

    def test_invalid_value_wrapped(self, tmp_path):
        with pytest.raises(InvalidConfigError):
            load_config(root=tmp_path, min_severity="critical")

    def test_malformed_toml(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("min_severity = \n")
        with pytest.raises(InvalidConfigError):
            load_config(root=tmp_path)


class TestInitConfigFile:
    def test_writes_loadable_file(self, tmp_path):
        target = init_config_file(tmp_path)
        assert target == tmp_path / CONFIG_FILENAME
        config = load_config(root=tmp_path)
        assert config.exclude == ["lib", "test"]
        assert config.protocol == ProtocolConfig()

    def test_refuses_to_overwrite(self, tmp_path):
        init_config_file(tmp_path)
        with pytest.raises(InvalidPathError):
            init_config_file(tmp_path)

    def test_overwrite(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("garbage")
        init_config_file(Path(tmp_path), overwrite=True)
        assert "min_severity" in (tmp_path / CONFIG_FILENAME).read_text()
