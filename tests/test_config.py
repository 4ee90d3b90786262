"""Tests for configuration loading and validation."""

import pytest
import yaml

from ssm_bastion.config import DEFAULT_TAGS, AppConfig, load_config, resolve_region
from ssm_bastion.exceptions import ConfigError


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data))
    return str(path)


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config()
        assert config == AppConfig()
        assert config.tags.default == DEFAULT_TAGS
        assert config.resolver.pool_size == 8
        assert config.session.ping_interval_seconds == 300
        assert config.session.aws_cli == "aws"

    def test_minimal_valid_config(self, tmp_path):
        config = load_config(_write_config(tmp_path, {"aws": {"region": "eu-west-1"}}))
        assert config.aws.region == "eu-west-1"
        assert config.aws.credential_profile == ""
        assert config.logging.format == "text"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(str(path)) == AppConfig()

    def test_missing_file_raises(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("/nonexistent/file.yaml")

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("just a string")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path))

    def test_section_must_be_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="'session'"):
            load_config(_write_config(tmp_path, {"session": "aws"}))

    def test_unknown_keys_ignored(self, tmp_path):
        data = {"aws": {"region": "us-east-2", "colour": "blue"}, "extra": 1}
        assert load_config(_write_config(tmp_path, data)).aws.region == "us-east-2"

    def test_full_config(self, tmp_path):
        data = {
            "aws": {"region": "eu-central-1", "credential_profile": "ops"},
            "tags": {"default": "Role=jump"},
            "resolver": {"pool_size": 4},
            "session": {
                "aws_cli": "/usr/local/bin/aws",
                "ping_interval_seconds": 60,
                "ping_timeout_seconds": 2,
                "ping_initial_delay_seconds": 0,
            },
            "logging": {"level": "DEBUG", "format": "json"},
        }
        config = load_config(_write_config(tmp_path, data))
        assert config.aws.credential_profile == "ops"
        assert config.tags.default == "Role=jump"
        assert config.resolver.pool_size == 4
        assert config.session.aws_cli == "/usr/local/bin/aws"
        assert config.session.ping_interval_seconds == 60
        assert config.logging.format == "json"

    def test_env_var_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_BASTION_PROFILE", "from-env")
        data = {"aws": {"credential_profile": "${TEST_BASTION_PROFILE}"}}
        config = load_config(_write_config(tmp_path, data))
        assert config.aws.credential_profile == "from-env"

    def test_env_var_missing_raises(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SURELY_MISSING_VAR", raising=False)
        data = {"aws": {"region": "${SURELY_MISSING_VAR}"}}
        with pytest.raises(ConfigError, match="SURELY_MISSING_VAR"):
            load_config(_write_config(tmp_path, data))

    @pytest.mark.parametrize("section, values, match", [
        ("resolver", {"pool_size": 0}, "pool_size"),
        ("session", {"ping_interval_seconds": 0}, "ping_interval_seconds"),
        ("session", {"ping_timeout_seconds": -1}, "ping_timeout_seconds"),
        ("session", {"ping_initial_delay_seconds": -1}, "ping_initial_delay_seconds"),
        ("session", {"aws_cli": ""}, "aws_cli"),
        ("logging", {"format": "xml"}, "format"),
        ("logging", {"level": "LOUD"}, "level"),
    ])
    def test_invalid_values(self, tmp_path, section, values, match):
        with pytest.raises(ConfigError, match=match):
            load_config(_write_config(tmp_path, {section: values}))


class TestResolveRegion:
    def test_override_wins(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
        assert resolve_region(AppConfig(), "ap-south-1") == "ap-south-1"

    def test_config_before_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
        config = load_config(_write_config(tmp_path, {"aws": {"region": "eu-west-2"}}))
        assert resolve_region(config) == "eu-west-2"

    def test_default_region_env(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-1")
        monkeypatch.setenv("AWS_REGION", "us-west-2")
        assert resolve_region(AppConfig()) == "us-west-1"

    def test_aws_region_env_fallback(self, monkeypatch):
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        monkeypatch.setenv("AWS_REGION", "us-west-2")
        assert resolve_region(AppConfig()) == "us-west-2"

    def test_missing_region_raises(self, monkeypatch):
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        monkeypatch.delenv("AWS_REGION", raising=False)
        with pytest.raises(ConfigError, match="region required"):
            resolve_region(AppConfig())
