# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for configuration loading.
"""

import pytest

from oplogstats.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REDIS_URL", "OPLOGSTATS_STREAM", "OPLOGSTATS_DB", "OPLOGSTATS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:

    def test_defaults_without_file(self, tmp_path):
        config = Config(config_path=tmp_path / "missing.yaml")
        assert config.redis_url == "redis://localhost:6379/0"
        assert config.stream_name == "oplog:rs"
        assert config.namespace == "metrics.raw"
        assert config.queue_size == 1
        assert config.skip_missing is False
        assert config.validate() == []


class TestConfigFile:

    def test_load_from_yaml(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("""
redis:
  url: redis://cache:6380/2
  stream: replication:log
database:
  path: "{tmpdir}/metrics.db"
pipeline:
  namespace: stats.raw
  queue_size: 16
  skip_missing: true
logging:
  level: DEBUG
""".format(tmpdir=tmp_path))

        config = Config(config_path=config_path)

        assert config.redis_url == "redis://cache:6380/2"
        assert config.stream_name == "replication:log"
        assert config.get_db_path() == tmp_path / "metrics.db"
        assert config.namespace == "stats.raw"
        assert config.queue_size == 16
        assert config.skip_missing is True
        assert config.log_level == "DEBUG"

    def test_invalid_section_falls_back_to_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text('pipeline: "invalid"  # Not a dict\n')

        config = Config(config_path=config_path)
        assert config.queue_size == 1
        assert config.namespace == "metrics.raw"

    def test_malformed_yaml_is_ignored(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("redis: [unclosed\n")

        config = Config(config_path=config_path)
        assert config.redis_url == "redis://localhost:6379/0"


class TestConfigEnv:

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("redis:\n  url: redis://from-file:6379/0\n")
        monkeypatch.setenv("REDIS_URL", "redis://from-env:6379/1")
        monkeypatch.setenv("OPLOGSTATS_DB", str(tmp_path / "env.db"))

        config = Config(config_path=config_path)
        assert config.redis_url == "redis://from-env:6379/1"
        assert config.get_db_path() == tmp_path / "env.db"


class TestConfigValidation:

    def test_invalid_values_are_reported(self, tmp_path):
        config = Config(config_path=tmp_path / "missing.yaml")
        config.redis_url = "http://localhost"
        config.queue_size = 0
        config.namespace = "raw"

        errors = config.validate()
        assert len(errors) == 3
        assert any("redis_url" in error for error in errors)
        assert any("queue_size" in error for error in errors)
        assert any("namespace" in error for error in errors)
