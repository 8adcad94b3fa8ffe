"""YAML configuration loading and validation."""

import pytest

from seedcrawl.utils.config import ConfigManager, default_config, get_config, load_config


def test_full_file_is_loaded(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "crawler:\n"
        "  max_concurrent_requests: 4\n"
        "  request_timeout: 7.5\n"
        "  user_agent: tester\n"
        "  max_seed_urls: 5\n"
        "logging:\n"
        "  level: DEBUG\n"
        "monitoring:\n"
        "  metrics_enabled: true\n"
        "  prometheus_port: 9100\n"
    )

    config = load_config(str(path))

    assert config.crawler.max_concurrent_requests == 4
    assert config.crawler.request_timeout == 7.5
    assert config.crawler.user_agent == "tester"
    assert config.crawler.engine_concurrency == 10
    assert config.logging.level == "DEBUG"
    assert config.monitoring.prometheus_port == 9100
    assert get_config() is config


def test_missing_sections_use_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("crawler:\n  max_seed_urls: 3\n")

    config = ConfigManager(str(path)).load_config()

    assert config.crawler.max_seed_urls == 3
    assert config.crawler.max_concurrent_requests == 10
    assert config.logging == default_config().logging


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert ConfigManager(str(path)).load_config() == default_config()


@pytest.mark.parametrize("body", [
    "crawler:\n  max_concurrent_requests: 0\n",
    "crawler:\n  request_timeout: 0\n",
    "crawler:\n  max_seed_urls: 0\n",
    "crawler:\n  engine_concurrency: 0\n",
    "crawler:\n  no_such_option: 1\n",
    "crawler:\n  max_concurrent_requests: ten\n",
    "crawler:\n  request_timeout: [5]\n",
    "crawler:\n  max_seed_urls: true\n",
])
def test_invalid_values_are_rejected(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(body)
    with pytest.raises(ValueError):
        ConfigManager(str(path)).load_config()


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        ConfigManager("/nonexistent/config.yaml").load_config()


def test_config_property_requires_load():
    with pytest.raises(ValueError):
        ConfigManager("unused.yaml").config
