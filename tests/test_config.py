"""Tests for config loading."""

import pytest

from resume_studio.config import AgentConfig, AppConfig, StoreConfig, load_config


class TestConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.agent.provider == "http"
        assert config.agent.engine == "tim-large"
        assert config.pipeline.poll_interval == 2.0
        assert config.pipeline.tailor_timeout == 480
        assert config.rate_limit.streaming_per_minute == 5
        assert config.server.dev_mode is False

    def test_load_config_defaults(self, tmp_path):
        """Loading from non-existent path returns defaults."""
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config.agent.base_url == "https://api.subconscious.dev"

    def test_load_config_from_yaml(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text(
            "agent:\n  engine: tim-small\npipeline:\n  merge_timeout: 30\n"
            "server:\n  cors_origins:\n    - https://app.example.com\n"
        )
        config = load_config(yaml_path)
        assert config.agent.engine == "tim-small"
        assert config.pipeline.merge_timeout == 30
        assert config.server.cors_origins == ("https://app.example.com",)
        # Defaults for unspecified
        assert config.pipeline.fetch_timeout == 180

    def test_dev_mode_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RESUME_STUDIO_DEV_MODE", "true")
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config.server.dev_mode is True

    def test_store_resolved_path(self):
        store = StoreConfig(db_path="~/test.db")
        assert "~" not in str(store.resolved_db_path)

    def test_frozen_config(self):
        config = AgentConfig()
        with pytest.raises(AttributeError):
            config.engine = "changed"
