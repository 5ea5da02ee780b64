"""
tests/test_config.py - Configuration loading and precedence
"""
import pytest

from resourcecounter.config import (
    BackoffConfig,
    ResourceCounterConfig,
    RunSettings,
    StorageType,
    deep_merge,
    env_to_config_dict,
    load_config,
)
from resourcecounter.errors import ConfigError
from resourcecounter.models.resource import ResourceKey, UpdateMode


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        'table_name = "from-file"\n'
        'workers = 3\n'
        '\n'
        '[aws]\n'
        'region = "eu-west-1"\n'
        'endpoint_url = "http://localhost:8000"\n'
    )
    return path


def test_defaults(tmp_path):
    config = load_config(config_file=tmp_path / "missing.toml", environ={})

    assert config.table_name == "resources"
    assert config.account_id == "10001"
    assert config.resource_id == "100"
    assert config.workers == 5
    assert config.writes_per_worker == 10
    assert config.storage_type == StorageType.DYNAMODB
    assert config.backoff.enabled is False
    assert config.aws.max_attempts == 1


def test_file_values(config_file):
    config = load_config(config_file=config_file, environ={})

    assert config.table_name == "from-file"
    assert config.workers == 3
    assert config.aws.region == "eu-west-1"
    assert config.aws.endpoint_url == "http://localhost:8000"


def test_env_beats_file(config_file):
    environ = {
        "RESCOUNT_WORKERS": "8",
        "RESCOUNT_AWS__REGION": "ap-south-1",
        "RESCOUNT_BACKOFF__ENABLED": "true",
        "UNRELATED": "ignored",
    }
    config = load_config(config_file=config_file, environ=environ)

    assert config.workers == 8
    assert config.aws.region == "ap-south-1"
    assert config.aws.endpoint_url == "http://localhost:8000"
    assert config.backoff.enabled is True
    assert config.table_name == "from-file"


def test_overrides_beat_env(config_file):
    config = load_config(
        config_file=config_file,
        environ={"RESCOUNT_WORKERS": "8"},
        overrides={"workers": 2, "resource_id": None, "backoff": {"enabled": None}},
    )

    assert config.workers == 2
    assert config.resource_id == "100"
    assert config.backoff.enabled is False


def test_logging_switches_are_not_config_fields(tmp_path):
    environ = {"RESCOUNT_DEBUG": "1", "RESCOUNT_LOGLEVEL": "DEBUG"}
    assert env_to_config_dict(environ) == {}


@pytest.mark.parametrize("overrides", [
    {"workers": 0},
    {"writes_per_worker": -1},
    {"table_name": "  "},
    {"storage_type": "postgres"},
    {"no_such_field": 1},
    {"aws": {"read_timeout": 0}},
    {"backoff": {"base_delay": 1.0, "max_delay": 0.5}},
])
def test_invalid_config(tmp_path, overrides):
    with pytest.raises(ConfigError):
        load_config(config_file=tmp_path / "missing.toml", environ={}, overrides=overrides)


def test_malformed_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("workers = = 3\n")

    with pytest.raises(ConfigError):
        load_config(config_file=path, environ={})


def test_deep_merge():
    base = {"aws": {"region": "us-east-1", "profile": "dev"}, "workers": 5}
    override = {"aws": {"region": "eu-west-1"}, "workers": 2}

    assert deep_merge(base, override) == {
        "aws": {"region": "eu-west-1", "profile": "dev"},
        "workers": 2,
    }


def test_backoff_config_validation():
    with pytest.raises(ValueError):
        BackoffConfig(jitter=1.5)


def test_run_settings_from_config():
    config = ResourceCounterConfig(resource_id="103", workers=4, writes_per_worker=6)
    settings = RunSettings.from_config(config, UpdateMode.SAFE)

    assert settings.key == ResourceKey("103", "10001")
    assert settings.mode is UpdateMode.SAFE
    assert settings.expected_commits == 24
