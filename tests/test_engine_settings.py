"""
Tests for engine settings loading and provenance signature.
"""

import logging

import pytest

from branchflow.runner.engine_settings import (
    SETTINGS_ENV_VAR,
    EngineSettings,
    compute_settings_signature,
    load_settings,
    settings_from_dict,
)


class TestSettingsFromDict:

    def test_defaults(self):
        settings = settings_from_dict(None)
        assert settings == EngineSettings()
        assert settings.max_auto_advance_hops == 100
        assert settings.cycle_guard_scope == "burst"
        assert settings.reuse_recorded_answers is True

    def test_overrides(self):
        settings = settings_from_dict({
            'max_auto_advance_hops': 5,
            'cycle_guard_scope': 'session',
            'reuse_recorded_answers': False,
        })
        assert settings == EngineSettings(5, 'session', False)

    @pytest.mark.parametrize("bad", [
        {'max_auto_advance_hops': 0},
        {'max_auto_advance_hops': True},
        {'max_auto_advance_hops': '10'},
        {'cycle_guard_scope': 'forever'},
        {'reuse_recorded_answers': 'yes'},
        {'unknown_key': 1},
    ])
    def test_invalid_values_fall_back_to_defaults(self, bad, caplog):
        with caplog.at_level(logging.DEBUG, logger="branchflow.runner.engine_settings"):
            assert settings_from_dict(bad) == EngineSettings()
        assert "Ignored settings" in caplog.text


class TestLoadSettings:

    def test_no_path_configured(self, monkeypatch):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        assert load_settings() == EngineSettings()

    def test_top_level_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("max_auto_advance_hops: 7\ncycle_guard_scope: session\n")
        assert load_settings(path) == EngineSettings(max_auto_advance_hops=7, cycle_guard_scope='session')

    def test_engine_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("engine:\n  reuse_recorded_answers: false\nother: 1\n")
        assert load_settings(str(path)) == EngineSettings(reuse_recorded_answers=False)

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("max_auto_advance_hops: 3\n")
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(path))
        assert load_settings().max_auto_advance_hops == 3

    def test_missing_file_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="branchflow.runner.engine_settings"):
            settings = load_settings(tmp_path / "nope.yaml")
        assert settings == EngineSettings()
        assert "not found" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert load_settings(path) == EngineSettings()

    def test_non_mapping_is_an_error(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(path)


class TestSignature:

    def test_stable(self):
        assert compute_settings_signature(EngineSettings()) == compute_settings_signature(EngineSettings())

    def test_changes_with_values(self):
        a = compute_settings_signature(EngineSettings())
        b = compute_settings_signature(EngineSettings(max_auto_advance_hops=10))
        assert a != b
        assert len(a) == 16
