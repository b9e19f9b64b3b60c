"""Tests for config validation."""

import pytest

from resume_studio.config import load_config


class TestConfigValidation:
    def test_valid_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert config.agent.request_timeout == 60
        assert config.agent.max_retries == 3

    def test_invalid_provider(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("agent:\n  provider: openai\n")
        with pytest.raises(ValueError, match="provider"):
            load_config(yaml)

    def test_invalid_request_timeout(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("agent:\n  request_timeout: 0\n")
        with pytest.raises(ValueError, match="request_timeout"):
            load_config(yaml)

    def test_invalid_max_retries(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("agent:\n  max_retries: 99\n")
        with pytest.raises(ValueError, match="max_retries"):
            load_config(yaml)

    def test_invalid_poll_interval(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("pipeline:\n  poll_interval: 0\n")
        with pytest.raises(ValueError, match="poll_interval"):
            load_config(yaml)

    def test_invalid_tailor_timeout(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("pipeline:\n  tailor_timeout: 7200\n")
        with pytest.raises(ValueError, match="tailor_timeout"):
            load_config(yaml)

    def test_invalid_port(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("server:\n  port: 70000\n")
        with pytest.raises(ValueError, match="port"):
            load_config(yaml)

    def test_invalid_rate_limit(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("rate_limit:\n  ai_per_minute: 0\n")
        with pytest.raises(ValueError, match="ai_per_minute"):
            load_config(yaml)

    def test_unknown_key_rejected(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("agent:\n  colour: blue\n")
        with pytest.raises(TypeError):
            load_config(yaml)
