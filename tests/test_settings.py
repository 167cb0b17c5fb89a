"""Tests for seisquery settings module."""

import json
import tomllib
from pathlib import Path

import pytest

from seisquery.settings import (
    ApplicationSettings,
    AttributeSettings,
    HorizonSettings,
    QuerySettings,
    SettingsManager,
    generate_toml_with_comments,
    get_settings,
    get_settings_manager,
    load_settings,
    reset_settings,
    save_settings,
)


class TestQuerySettings:
    def test_defaults(self):
        s = QuerySettings()
        assert s.default_interpolation == "nearest"
        assert s.strict_lineno is False


class TestHorizonSettings:
    def test_defaults(self):
        s = HorizonSettings()
        assert s.rows_per_chunk == 256
        assert s.max_workers == 4

    def test_custom_values(self):
        s = HorizonSettings(rows_per_chunk=16, max_workers=1)
        assert s.rows_per_chunk == 16
        assert s.max_workers == 1


class TestAttributeSettings:
    def test_defaults(self):
        assert AttributeSettings().interpolation_margin == 2


class TestApplicationSettings:
    def test_all_sections_present(self):
        s = ApplicationSettings()
        assert hasattr(s, 'query')
        assert hasattr(s, 'horizon')
        assert hasattr(s, 'attribute')
        assert hasattr(s, 'logging')

    def test_to_dict(self):
        d = ApplicationSettings().to_dict()
        assert isinstance(d, dict)
        assert d['horizon']['rows_per_chunk'] == 256
        assert d['logging']['level'] == "INFO"

    def test_from_dict(self):
        data = {
            'horizon': {'rows_per_chunk': 8},
            'query': {'strict_lineno': True},
        }
        s = ApplicationSettings.from_dict(data)

        assert s.horizon.rows_per_chunk == 8
        assert s.query.strict_lineno is True
        # Other values should be defaults
        assert s.horizon.max_workers == 4
        assert s.attribute.interpolation_margin == 2

    def test_from_dict_unknown_key(self):
        with pytest.raises(TypeError):
            ApplicationSettings.from_dict({'horizon': {'tile_size': 8}})


class TestSettingsManager:
    def test_singleton(self):
        m1 = SettingsManager()
        m2 = SettingsManager()
        assert m1 is m2
        assert get_settings_manager() is m1

    def test_reset(self):
        m = SettingsManager()
        m.settings.horizon.max_workers = 16
        m.reset()
        assert m.settings.horizon.max_workers == 4

    def test_update_nested(self):
        m = SettingsManager()
        m.update(**{'horizon.rows_per_chunk': 32, 'query.default_interpolation': 'cubic'})
        assert m.settings.horizon.rows_per_chunk == 32
        assert m.settings.query.default_interpolation == 'cubic'

    def test_update_unknown_key(self):
        with pytest.raises(AttributeError, match="Unknown setting"):
            SettingsManager().update(**{'horizon.tile_size': 1})

    def test_load_from_env(self):
        m = SettingsManager()
        applied = m.load_from_env({
            'SEISQUERY_HORIZON_ROWS_PER_CHUNK': '64',
            'SEISQUERY_QUERY_STRICT_LINENO': 'yes',
            'SEISQUERY_LOGGING_LEVEL': 'DEBUG',
            'SEISQUERY_UNKNOWN_SECTION': '1',
            'SEISQUERY_HORIZON_UNKNOWN': '1',
            'PATH': '/usr/bin',
        })
        assert applied == 3
        assert m.settings.horizon.rows_per_chunk == 64
        assert m.settings.query.strict_lineno is True
        assert m.settings.logging.level == 'DEBUG'

    def test_load_from_env_bad_boolean(self):
        with pytest.raises(ValueError):
            SettingsManager().load_from_env({'SEISQUERY_QUERY_STRICT_LINENO': 'maybe'})

    def test_auto_load_from_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        get_settings().horizon.max_workers = 2
        save_settings(path)
        reset_settings()

        monkeypatch.setenv('SEISQUERY_SETTINGS_PATH', str(path))
        m = SettingsManager()
        assert m.get_default_path() == path
        assert m.auto_load() is True
        assert m.settings.horizon.max_workers == 2
        assert m.path == path

    def test_auto_load_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv('SEISQUERY_SETTINGS_PATH', str(tmp_path / "missing.toml"))
        assert SettingsManager().auto_load() is False


class TestFileOperations:
    @pytest.mark.parametrize("suffix", [".json", ".toml"])
    def test_save_and_load(self, tmp_path, suffix):
        path = tmp_path / f"settings{suffix}"

        s = get_settings()
        s.horizon.rows_per_chunk = 123
        s.logging.log_file = "seisquery.log"
        assert save_settings(path) == path

        reset_settings()
        assert get_settings().horizon.rows_per_chunk == 256  # Default

        load_settings(path)
        assert get_settings().horizon.rows_per_chunk == 123
        assert get_settings().logging.log_file == "seisquery.log"

    def test_json_content(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        save_settings(path)
        data = json.loads(path.read_text())
        assert data['attribute']['interpolation_margin'] == 2

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported file format"):
            save_settings(tmp_path / "settings.yaml")

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nothing.toml")

    def test_commented_template_matches_defaults(self):
        content = generate_toml_with_comments()
        assert '[horizon]' in content
        assert 'rows_per_chunk' in content
        assert tomllib.loads(content) == ApplicationSettings().to_dict()


class TestModuleLevelAccess:
    def test_get_settings(self):
        assert isinstance(get_settings(), ApplicationSettings)

    def test_settings_singleton(self):
        s1 = get_settings()
        s2 = get_settings()

        # Both should reference same object
        s1.horizon.max_workers = 99
        assert s2.horizon.max_workers == 99

    def test_reset_returns_defaults(self):
        get_settings().attribute.interpolation_margin = 5
        assert reset_settings().attribute.interpolation_margin == 2


class TestIntegrationWithModules:
    """Settings are read by the query engine at call time."""

    def test_margin_changes_attribute_reads(self, samples10):
        from seisquery import query
        from tests.fixtures.synthetic import make_surface
        import numpy as np

        surface = make_surface(np.full((3, 2), 20.0, dtype=np.float32))
        get_settings().attribute.interpolation_margin = 0
        narrow = query.attribute_along_surface(samples10, surface, 4, 4, ["mean"])
        reset_settings()
        wide = query.attribute_along_surface(samples10, surface, 4, 4, ["mean"])
        # On-grid windows do not depend on the margin
        np.testing.assert_array_equal(narrow.buffer, wide.buffer)

    def test_rows_per_chunk_used(self, samples10):
        from seisquery import query
        from seisquery.utils.logging import LogCapture
        from tests.fixtures.synthetic import make_surface
        import logging
        import numpy as np

        get_settings().horizon.rows_per_chunk = 1
        surface = make_surface(np.full((3, 2), 20.0, dtype=np.float32))
        with LogCapture("seisquery.pipeline", level=logging.DEBUG) as capture:
            query.horizon(samples10, surface, above=4)
        assert any("3 chunk(s)" in m for m in capture.get_messages())


def test_settings_path_type():
    assert isinstance(SettingsManager().get_default_path(), Path)
