"""
tests/test_config.py — config.yaml Loader Tests
================================================
"""

from __future__ import annotations

import pytest

from arena.config import load_config

FULL_YAML = """\
site_name: "CCC Esports"
site_url: "https://esports.example.edu/"
api_port: 8000
session_hours: 12
games_cache_ttl_seconds: 120
analytics_default_days: 14
analytics_top_pages: 5
admin_mutations_per_minute: 10
roster:
  enforce_team_capacity: true
"""

MINIMAL_YAML = """\
site_name: "CCC Esports"
site_url: "https://esports.example.edu"
api_port: 8000
session_hours: 12
"""


class TestLoadConfig:
    def test_reads_every_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(FULL_YAML)
        cfg = load_config(path)

        assert cfg.site_name == "CCC Esports"
        assert cfg.site_url == "https://esports.example.edu"
        assert cfg.api_port == 8000
        assert cfg.session_hours == 12
        assert cfg.games_cache_ttl_seconds == 120
        assert cfg.analytics_default_days == 14
        assert cfg.analytics_top_pages == 5
        assert cfg.admin_mutations_per_minute == 10
        assert cfg.enforce_team_capacity is True

    def test_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL_YAML)
        cfg = load_config(path)

        assert cfg.games_cache_ttl_seconds == 300
        assert cfg.analytics_default_days == 30
        assert cfg.analytics_top_pages == 10
        assert cfg.admin_mutations_per_minute == 30
        assert cfg.enforce_team_capacity is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('site_name: "x"\n')
        with pytest.raises(KeyError):
            load_config(path)

    def test_config_is_frozen(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(MINIMAL_YAML)
        cfg = load_config(path)
        with pytest.raises(AttributeError):
            cfg.site_name = "other"

    def test_example_file_loads(self):
        from pathlib import Path

        example = Path(__file__).resolve().parent.parent / "config.yaml.example"
        cfg = load_config(example)
        assert cfg.api_port > 0
